"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from helalist_client.models.config import ClientConfig
from helalist_client.utils.formatting import (
    format_duration,
    format_size,
    format_timestamp,
)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Check your username and password.",
            "• Your token may have expired. Run `helalist login` again.",
        ],
        "TransportError": [
            "• The server rejected the request.",
            "• Run `helalist whoami` to check that you are still logged in.",
        ],
        "DownloadHTTPError": [
            "• The file may have been moved or removed.",
            "• Run `helalist ls` on the parent folder to check.",
        ],
        "EnvelopeError": [
            "• The server refused the operation; see the message above.",
        ],
        "ConfigurationError": [
            "• Run `helalist init <URL>` to create a configuration file.",
            "• Run `helalist validate` to check the current settings.",
        ],
        "ClientConnectorError": [
            "• The server could not be reached.",
            "• Check `base_url` with `helalist --show-config`.",
            "• Run `helalist diagnose`.",
        ],
        "TimeoutError": [
            "• The request timed out.",
            "• Raise `request_timeout` in the configuration file.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -v for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: ClientConfig, logged_in: bool):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Server:", f"[green]{config.base_url}[/green]")
    table.add_row("Request Timeout:", f"{config.request_timeout:g}s")
    table.add_row("Chunk Size:", format_size(config.download_chunk_size))
    table.add_row("Max Connections:", str(config.max_connections))
    table.add_row("Logged In:", "✓ Yes" if logged_in else "✗ No")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_listing(path: str, listing: dict[str, Any]):
    """Displays the contents of a drive folder."""
    console = Console()
    entries = listing.get("content") or []

    table = Table(box=box.SIMPLE, title=f"[bold]{path}[/bold]", title_justify="left")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Size", justify="right", style="green")
    table.add_column("Modified", style="dim")

    dirs = sorted((e for e in entries if e.get("is_dir")), key=lambda e: e["name"])
    files = sorted((e for e in entries if not e.get("is_dir")), key=lambda e: e["name"])
    for entry in dirs:
        table.add_row(
            f"[bold blue]{entry['name']}/[/bold blue]",
            "-",
            format_timestamp(entry.get("modified")),
        )
    for entry in files:
        table.add_row(
            entry["name"],
            format_size(entry.get("size", 0)),
            format_timestamp(entry.get("modified")),
        )

    console.print(table)
    console.print(
        f"[dim]{len(dirs)} folder(s), {len(files)} file(s), "
        f"total {listing.get('total', len(entries))}[/dim]"
    )


def print_storages(storages: list[dict[str, Any]] | None):
    """Displays mounted storages."""
    console = Console()
    if not storages:
        console.print("[dim]No storages mounted yet.[/dim]")
        return

    table = Table(box=box.ROUNDED, title="[bold]Storages[/bold]")
    table.add_column("Mount Path", style="cyan")
    table.add_column("Driver")
    table.add_column("Status")
    table.add_column("ID", style="dim")

    for storage in sorted(storages, key=lambda s: s.get("order", 0)):
        status = storage.get("status") or "-"
        if storage.get("disabled"):
            status = "[red]disabled[/red]"
        table.add_row(
            storage.get("mount_path", "?"),
            storage.get("driver") or "-",
            status,
            str(storage.get("id", "")),
        )
    console.print(table)


def print_user(user: dict[str, Any]):
    """Displays the logged-in account."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Username:", user.get("username", "?"))
    table.add_row("Email:", user.get("email") or "-")
    table.add_row("Base Path:", user.get("base_path") or "/")
    table.add_row("Role:", "Admin" if user.get("identity") == 0 else "Guest")
    console.print(Panel(table, title="[bold]Account[/bold]", border_style="cyan"))


def print_download_summary(
    saved: list[tuple[Path, int]], stats: dict[str, Any], duration_s: float
) -> None:
    """Displays the files saved by a download run and its totals."""
    console = Console()
    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=14)
    stats_table.add_column(style="white", justify="left")

    for destination, size in saved:
        stats_table.add_row(
            "Saved To:", f"[green]{destination}[/green] [dim]({format_size(size)})[/dim]"
        )
    stats_table.add_row("Files:", f"[cyan]{stats['completed']}[/cyan]")
    stats_table.add_row("Total Size:", f"[cyan]{format_size(stats['bytes'])}[/cyan]")
    avg_speed = stats["bytes"] / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    console.print(
        Panel(
            stats_table,
            title="📥 [bold]Download Complete![/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
