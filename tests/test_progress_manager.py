from rich.console import Console

from helalist_client.cli.formatters import format_error_with_suggestions
from helalist_client.cli.progress_manager import ProgressManager
from helalist_client.exceptions import EnvelopeError


def test_progress_manager_tracks_downloads():
    manager = ProgressManager(Console(quiet=True))
    manager.add_download("/docs/a.pdf", total_size=1000)
    manager.add_download("/docs/stream.bin")
    assert len(manager.progress.tasks) == 1
    assert len(manager.bytes_progress.tasks) == 1

    manager.update_download("/docs/a.pdf", 50)
    assert manager.progress.tasks[0].completed == 50

    manager.advance_bytes("/docs/stream.bin", 300)
    assert manager.bytes_progress.tasks[0].completed == 300

    manager.remove_download("/docs/a.pdf")
    manager.remove_download("/docs/stream.bin", cancelled=True)
    stats = manager.get_statistics()
    assert stats["completed"] == 1
    assert stats["cancelled"] == 1
    assert stats["bytes"] == 300
    assert manager.progress.tasks == []
    assert manager.bytes_progress.tasks == []


def test_error_panel_mentions_error_and_suggestion():
    console = Console(record=True, width=120)
    console.print(format_error_with_suggestions(EnvelopeError(403, "permission denied")))
    text = console.export_text()
    assert "EnvelopeError: permission denied" in text
    assert "Suggestions" in text
