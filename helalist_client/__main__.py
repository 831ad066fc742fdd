"""
Console entry point for ``helalist`` and ``python -m helalist_client``.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from helalist_client.cli.app import app
from helalist_client.cli.formatters import format_error_with_suggestions
from helalist_client.exceptions import HelaListError

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

log = logging.getLogger("helalist_client")


def _use_utf8_streams() -> None:
    """Windows consoles default to a legacy code page that cannot print ✓."""
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")


def main() -> None:
    if os.name == "nt":
        _use_utf8_streams()

    console = Console(stderr=True)
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except HelaListError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        log.debug("Unhandled error", exc_info=True)
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
