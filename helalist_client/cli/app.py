"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import posixpath
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from helalist_client import __version__
from helalist_client.api.client import HelaListAPIClient
from helalist_client.exceptions import DownloadCancelledError, HelaListError
from helalist_client.models.config import ClientConfig
from helalist_client.storage.config_manager import ConfigManager
from helalist_client.storage.token_store import TokenStore
from helalist_client.transfer.downloader import (
    CancellationToken,
    StreamDownloader,
    close_connection_pool,
    write_stream_to_file,
)

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_download_summary,
    print_listing,
    print_storages,
    print_user,
    print_validation_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("helalist_client")

app = typer.Typer(
    name="helalist",
    help=(
        "Command-line client for a HelaList cloud drive. Use 'helalist"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

T = TypeVar("T")


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "helalist"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config() -> ClientConfig:
    return ConfigManager(CONFIG_FILE).load_config()


def _make_client(config: ClientConfig) -> HelaListAPIClient:
    return HelaListAPIClient(
        config.base_url,
        credentials=TokenStore(CONFIG_DIR),
        timeout=config.request_timeout,
        max_connections=config.max_connections,
    )


def _run_with_client(action: Callable[[HelaListAPIClient], Awaitable[T]]) -> T:
    """Loads the config, opens a client, runs ``action`` and maps errors to exits."""

    async def _runner() -> T:
        config = _load_config()
        async with _make_client(config) as client:
            return await action(client)

    try:
        return asyncio.run(_runner())
    except HelaListError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Show debug logging.",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """HelaList Drive CLI"""
    if version:
        console.print(f"[bold]helalist[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("helalist_client").setLevel("DEBUG" if verbose else "INFO")

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]helalist init <URL>[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config = _load_config()
        print_config(
            CONFIG_FILE,
            config.model_dump(include=ClientConfig.get_ini_keys()),
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: str = typer.Argument(..., help="Server address, e.g. http://nas:8080"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    config_manager = ConfigManager(CONFIG_FILE)
    try:
        ClientConfig(base_url=base_url, config_path=str(CONFIG_DIR))
        config_manager.save_new_config({"base_url": base_url.rstrip("/")})
    except (HelaListError, ValueError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Next: [cyan]helalist login <USERNAME>[/cyan]")


@app.command()
def login(
    username: str = typer.Argument(..., help="Account name."),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Account password."
    ),
):
    """Log in and store the access token."""

    async def _login(client: HelaListAPIClient) -> dict[str, Any]:
        return await client.authenticator.login(username, password)

    result = _run_with_client(_login)
    user = result.get("user") or {}
    console.print(
        f"[green]✓ Logged in as [bold]{user.get('username', username)}[/bold].[/green]"
    )


@app.command()
def logout():
    """Forget the stored access token."""

    async def _logout(client: HelaListAPIClient) -> None:
        await client.authenticator.logout()

    _run_with_client(_logout)
    console.print("[green]✓ Logged out.[/green]")


@app.command()
def whoami():
    """Show the logged-in account."""

    async def _whoami(client: HelaListAPIClient) -> dict[str, Any]:
        return await client.authenticator.current_user()

    print_user(_run_with_client(_whoami))


@app.command(name="ls")
def list_command(path: str = typer.Argument("/", help="Folder to list.")):
    """List a folder."""

    async def _list(client: HelaListAPIClient) -> dict[str, Any]:
        return await client.fs.list_dir(path)

    print_listing(path, _run_with_client(_list) or {})


@app.command()
def mkdir(path: str = typer.Argument(..., help="Folder to create.")):
    """Create a folder."""

    async def _mkdir(client: HelaListAPIClient) -> Any:
        return await client.fs.mkdir(path)

    _run_with_client(_mkdir)
    console.print(f"[green]✓ Created '{path}'.[/green]")


@app.command(name="mv")
def move_command(
    src_path: str = typer.Argument(..., help="Source path."),
    dst_path: str = typer.Argument(..., help="Destination folder."),
):
    """Move a file or folder."""

    async def _move(client: HelaListAPIClient) -> Any:
        return await client.fs.move(src_path, dst_path)

    _run_with_client(_move)
    console.print(f"[green]✓ Moved '{src_path}' to '{dst_path}'.[/green]")


@app.command()
def rename(
    path: str = typer.Argument(..., help="Path to rename."),
    name: str = typer.Argument(..., help="New name."),
):
    """Rename a file or folder."""

    async def _rename(client: HelaListAPIClient) -> Any:
        return await client.fs.rename(path, name)

    _run_with_client(_rename)
    console.print(f"[green]✓ Renamed '{path}' to '{name}'.[/green]")


@app.command(name="rm")
def remove_command(
    path: str = typer.Argument(..., help="Path to remove."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask first."),
):
    """Remove a file or folder."""
    if not force and not typer.confirm(f"Remove '{path}'?"):
        raise typer.Abort()

    async def _remove(client: HelaListAPIClient) -> Any:
        return await client.fs.remove(path)

    _run_with_client(_remove)
    console.print(f"[green]✓ Removed '{path}'.[/green]")


@app.command()
def upload(
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Local file to upload."
    ),
    dst_dir: str = typer.Argument("/", help="Destination folder on the drive."),
):
    """Upload a local file."""

    async def _upload(client: HelaListAPIClient) -> Any:
        with open(file, "rb") as f:
            return await client.fs.upload(dst_dir, file.name, f)

    _run_with_client(_upload)
    console.print(f"[green]✓ Uploaded '{file.name}' to '{dst_dir}'.[/green]")


def plan_destinations(paths: list[str], output_dir: Path) -> list[tuple[str, Path]]:
    """
    Pairs each drive path with a local file in ``output_dir``.

    Paths that share a file name get ``name (1).ext``, ``name (2).ext`` and so
    on, so no two downloads write to the same file.
    """
    taken: set[str] = set()
    plan = []
    for path in paths:
        name = posixpath.basename(path.rstrip("/")) or "download"
        candidate = name
        stem, suffix = posixpath.splitext(name)
        n = 1
        while candidate in taken:
            candidate = f"{stem} ({n}){suffix}"
            n += 1
        taken.add(candidate)
        plan.append((path, output_dir / candidate))
    return plan


@app.command()
def download(
    paths: list[str] = typer.Argument(..., help="One or more drive paths."),  # noqa: B008
    output_dir: Path = typer.Option(  # noqa: B008
        Path("."), "--output", "-o", file_okay=False, help="Local folder to save into."
    ),
):
    """Download files with live progress."""
    output_dir.mkdir(parents=True, exist_ok=True)
    plan = plan_destinations(paths, output_dir)

    async def _download_all(
        client: HelaListAPIClient,
    ) -> tuple[list[tuple[Path, int]], dict[str, int]]:
        config = _load_config()
        downloader = StreamDownloader(
            credentials=client.credentials,
            chunk_size=config.download_chunk_size,
            max_connections=config.max_connections,
        )
        token = CancellationToken()
        saved: list[tuple[Path, int]] = []

        async with ProgressManager(console) as progress_manager:

            async def _one(path: str, destination: Path) -> None:
                name = destination.name
                stream = await downloader.download(
                    client.fs.download_url(path),
                    lambda percent: progress_manager.update_download(name, percent),
                    token,
                )
                progress_manager.add_download(name, stream.total)
                try:
                    written = await write_stream_to_file(
                        stream,
                        destination,
                        lambda n: progress_manager.advance_bytes(name, n),
                    )
                except DownloadCancelledError:
                    progress_manager.remove_download(name, cancelled=True)
                    raise
                except BaseException:
                    progress_manager.remove_download(name, success=False)
                    raise
                progress_manager.remove_download(name)
                saved.append((destination, written))

            tasks = [asyncio.create_task(_one(p, d)) for p, d in plan]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                # Cancel the rest and wait for their partial files to be removed.
                token.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            finally:
                await close_connection_pool()
        return saved, progress_manager.get_statistics()

    start_time = time.monotonic()
    saved, stats = _run_with_client(_download_all)
    print_download_summary(saved, stats, time.monotonic() - start_time)


@app.command()
def storages():
    """List mounted storages."""

    async def _storages(client: HelaListAPIClient) -> list[dict[str, Any]]:
        return await client.storage.get_all()

    print_storages(_run_with_client(_storages))


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = _load_config()
    except HelaListError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
    print_validation_table(config, TokenStore(CONFIG_DIR).get_token() is not None)


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[red]✗ Config file not found.[/] Run [cyan]helalist init <URL>[/cyan]."
        )
        raise typer.Exit(code=1)
    try:
        config = _load_config()
        console.print("[green]✓[/] Configuration file is valid and can be loaded.")
    except HelaListError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    if TokenStore(CONFIG_DIR).get_token():
        console.print("[green]✓[/] An access token is stored.")
    else:
        console.print("[yellow]⚠️  No access token stored.[/] Run `helalist login`.")
        issues_found = True

    console.print(f"\n[dim]Testing connectivity to {config.base_url}...[/dim]")

    async def test_connection() -> bool:
        try:
            async with _make_client(config) as client:
                await client.authenticator.current_user()
            console.print("[green]✓[/] Server reachable and token accepted.")
            return True
        except HelaListError as e:
            console.print(f"[red]✗ Server rejected the request: {e}[/red]")
            return False
        except Exception as e:
            console.print(f"[red]✗ Connection test failed: {e}[/red]")
            return False

    if not asyncio.run(test_connection()):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
