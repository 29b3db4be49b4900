"""
SQLShift CLI - Command-line interface for SQLShift.

Covers the lifecycle operations useful from a terminal or a script:
uploading a folder of Sybase files, converting them, and inspecting or
clearing migration history. For review and deployment, use the API or web UI.
"""

from pathlib import Path
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from sqlshift.db.connection import db_session
from sqlshift.exceptions import SQLShiftError
from sqlshift.lifecycle import FileUpload, LifecycleController
from sqlshift.logging_config import setup_logging

app = typer.Typer(
    name="sqlshift",
    help="SQLShift - Sybase to Oracle migration tracker",
    no_args_is_help=True,
)

console = Console()


def _init_logging() -> None:
    # Fallback to console if file logging not permitted
    try:
        setup_logging(context="cli")
    except PermissionError:
        import logging

        logging.basicConfig(level=logging.INFO)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _collect_files(path: Path, extensions: list[str]) -> list[Path]:
    if path.is_file():
        return [path]
    wanted = {ext.lower() for ext in extensions}
    return sorted(
        p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in wanted
    )


@app.command("init-db")
def init_db() -> None:
    """Create all tables (development only; use Alembic in production)."""
    from sqlshift.db.connection import init_db as create_tables

    _init_logging()
    create_tables()
    console.print("[green]✓ Database tables created[/green]")


@app.command()
def upload(
    path: str = typer.Argument(..., help="SQL file or folder to upload"),
    user: UUID = typer.Option(..., "--user", help="Acting user id"),
    project: Optional[UUID] = typer.Option(
        None, "--project", help="Target project (defaults to the active project)"
    ),
) -> None:
    """
    Upload Sybase files into a migration project.

    Folders are searched recursively for files with a supported extension.
    """
    from sqlshift.config import settings

    _init_logging()

    root = Path(path)
    if not root.exists():
        console.print(f"[bold red]Error:[/bold red] Path not found: {path}")
        raise typer.Exit(1)

    console.print(f"[bold blue]Uploading from:[/bold blue] {path}")

    files = _collect_files(root, settings.supported_extensions)
    if not files:
        console.print("[yellow]No supported files found[/yellow]")
        return

    console.print(f"Found {len(files)} file(s)\n")

    uploads = []
    unreadable = []
    for file_path in files:
        try:
            content = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            unreadable.append(file_path.name)
            continue
        relative = file_path.name if root.is_file() else str(file_path.relative_to(root))
        uploads.append(
            FileUpload(file_name=file_path.name, content=content, file_path=relative)
        )

    try:
        with db_session() as session:
            outcome = LifecycleController(session).upload_files(user, project, uploads)
    except SQLShiftError as e:
        _fail(e)

    for record in outcome.created:
        console.print(f"[green]✓[/green] {record.file_path} ({record.file_type.value})")
    for failure in outcome.failed:
        console.print(f"[red]✗[/red] {failure.file_name}: {failure.reason}")
    for name in unreadable:
        console.print(f"[red]✗[/red] {name}: not UTF-8 text")

    console.print(f"\n[bold]Project:[/bold] {outcome.project.id}")
    console.print(f"  Uploaded: {len(outcome.created)}")
    console.print(f"  Failed: {len(outcome.failed) + len(unreadable)}")


@app.command()
def convert(
    file_id: UUID = typer.Argument(..., help="File record to convert"),
    user: UUID = typer.Option(..., "--user", help="Acting user id"),
) -> None:
    """Convert one uploaded file and store the result."""
    _init_logging()

    try:
        with db_session() as session:
            record = LifecycleController(session).convert_file(user, file_id)
    except SQLShiftError as e:
        _fail(e)

    if record.error_message:
        console.print(f"[red]✗ {record.file_name}: {record.error_message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Converted {record.file_name}[/green]")


@app.command()
def summary(
    project_id: UUID = typer.Argument(..., help="Migration project"),
    user: UUID = typer.Option(..., "--user", help="Acting user id"),
) -> None:
    """Show the per-status file counts of a project."""
    try:
        with db_session() as session:
            controller = LifecycleController(session)
            project = controller.get_project(user, project_id)
            result = controller.project_summary(user, project_id)
    except SQLShiftError as e:
        _fail(e)

    table = Table(title=project.project_name)
    table.add_column("Status")
    table.add_column("Files", justify="right")
    table.add_row("success", str(result.success_count))
    table.add_row("failed", str(result.failed_count))
    table.add_row("pending", str(result.pending_count))
    table.add_row("pending_review", str(result.pending_review_count))
    table.add_row("deployed", str(result.deployed_count))
    table.add_row("[bold]total[/bold]", f"[bold]{result.file_count}[/bold]")
    console.print(table)


@app.command()
def history(
    user: UUID = typer.Option(..., "--user", help="Acting user id"),
    status: str = typer.Option(
        "all", "--status", help="all, success, failed or pending_review"
    ),
) -> None:
    """List projects with converted files, newest first."""
    try:
        with db_session() as session:
            entries = LifecycleController(session).list_history(
                user, status_filter=status
            )
    except SQLShiftError as e:
        _fail(e)

    if not entries:
        console.print("[yellow]No migration history[/yellow]")
        return

    table = Table(title="Migration History")
    table.add_column("Project")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Review", justify="right")
    for entry in entries:
        table.add_row(
            entry.project_name,
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            str(entry.summary.file_count),
            str(entry.summary.success_count),
            str(entry.summary.failed_count),
            str(entry.summary.pending_review_count),
        )
    console.print(table)


@app.command("clear-history")
def clear_history(
    user: UUID = typer.Option(..., "--user", help="Acting user id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete all file records, projects and deployment logs of a user."""
    if not yes:
        typer.confirm("Delete all migration history for this user?", abort=True)

    _init_logging()

    try:
        with db_session() as session:
            result = LifecycleController(session).clear_all_history(user)
    except SQLShiftError as e:
        _fail(e)

    console.print("[green]✓ History cleared[/green]")
    console.print(f"  Files: {result.files_deleted}")
    console.print(f"  Projects: {result.projects_deleted}")
    console.print(f"  Deployment logs: {result.deployments_deleted}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Runs the SQLShift API server for the migration web UI.
    """
    import uvicorn

    console.print("[bold green]Starting SQLShift API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "sqlshift.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
