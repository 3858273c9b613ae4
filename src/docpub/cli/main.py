"""CLI application using Typer for the document pub."""

from pathlib import Path
from typing import Optional
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config.settings import Settings
from ..store.sqlite import discover_workspaces
from ..utils.logging import get_logger, set_log_level
from ..web.app import start_server

app = typer.Typer(
    name="docpub",
    help="Document pub - host workspaces for browsers and sync peers",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.command()
def serve(
    port: int = typer.Option(3333, "--port", "-p", help="Port for the web server."),
    host: str = typer.Option("127.0.0.1", "--host", help="Hostname to bind the web server to."),
    readonly: bool = typer.Option(False, "--readonly", help="Reject all document uploads."),
    allow_push_to_new_workspaces: bool = typer.Option(
        True,
        "--allow-push-to-new-workspaces/--no-allow-push-to-new-workspaces",
        help="Let uploads create workspaces this pub does not host yet.",
    ),
    discoverable: bool = typer.Option(
        True,
        "--discoverable/--unlisted",
        help="List hosted workspaces on the home page.",
    ),
    storage: str = typer.Option("memory", "--storage", help="Storage backend: memory or sqlite."),
    data_folder: Optional[Path] = typer.Option(None, "--data-folder", help="Folder for .sqlite files (sqlite only)."),
    title: Optional[str] = typer.Option(None, "--title", help="Title shown on the home page."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Notes shown on the home page."),
    demo: bool = typer.Option(True, "--demo/--no-demo", help="Create the demo workspace at startup."),
    log_level: str = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
) -> None:
    """Start the pub server."""
    try:
        settings = Settings(
            host=host,
            port=port,
            readonly=readonly,
            allow_push_to_new_workspaces=allow_push_to_new_workspaces,
            discoverable_workspaces=discoverable,
            storage_type=storage,
            data_folder=data_folder,
            title=title,
            notes=notes,
            demo_workspace_enabled=demo,
            log_level=log_level,
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(1)
    set_log_level(settings.log_level)

    table = Table(title="Pub configuration")
    table.add_column("Option", style="cyan")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)
    console.print(f"[bold blue]Listening on[/bold blue] http://{settings.host}:{settings.port}")

    try:
        start_server(settings)
    except FileNotFoundError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)


@app.command()
def workspaces(
    data_folder: Path = typer.Argument(..., help="Folder holding .sqlite workspace files."),
) -> None:
    """List the workspaces stored in a SQLite data folder."""
    if not data_folder.is_dir():
        console.print(f"[red]Not a folder: {data_folder}[/red]")
        raise typer.Exit(1)
    found = discover_workspaces(data_folder)
    if not found:
        console.print("[yellow]No workspaces found[/yellow]")
        return
    table = Table(title=f"Workspaces in {data_folder}")
    table.add_column("Workspace", style="cyan")
    table.add_column("File")
    for workspace, db_path in found.items():
        table.add_row(workspace, db_path.name)
    console.print(table)


if __name__ == "__main__":
    app()
