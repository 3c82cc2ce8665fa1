"""codelens import / index / projects / remove — project lifecycle.

  codelens import ./my-app            read, save and index a source tree
  codelens import ./my-app --no-index save only
  codelens index <project-id>         rebuild the semantic index
  codelens projects                   list stored projects
  codelens remove <project-id>        delete a project and its index
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from codelens.cli.common import (
    load_cli_config,
    open_db,
    open_service,
    print_notice,
    require_api_keys,
    resolve_db,
)
from codelens.cli.errors import err_no_files, err_project_not_found, err_too_large
from codelens.db.models import Project
from codelens.db.repository import Repository
from codelens.errors import CodelensError, ProjectNotFoundError, ProjectTooLargeError
from codelens.service import ProjectService
from codelens.workspace.files import read_directory
from codelens.workspace.workspace import Workspace

console = Console()

_STAGE_LABELS = {"embed": "Embedding chunks", "store": "Writing index"}


def import_cmd(
    directory: Annotated[
        Path,
        typer.Argument(help="Source directory to import.", exists=True, file_okay=False),
    ],
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Project name. Defaults to the directory name."),
    ] = None,
    no_index: Annotated[
        bool,
        typer.Option("--no-index", help="Save the project without building its index."),
    ] = False,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db (created if missing)."),
    ] = None,
) -> None:
    """Import a source directory as a new project."""
    cfg = load_cli_config()
    directory = directory.resolve()

    files, skipped = read_directory(directory, cfg.workspace.max_file_size)
    if not files:
        console.print(err_no_files(str(directory)))
        raise typer.Exit(1)
    console.print(f"  [green]✓[/] {len(files)} files read" + (f" [dim]({skipped} skipped)[/]" if skipped else ""))

    if not no_index:
        require_api_keys(cfg.embedding.model)

    conn = open_db(resolve_db(db, cfg))
    service = ProjectService(Repository(conn), cfg)
    workspace = Workspace(notify=print_notice)
    workspace.load_files(files)
    workspace.project_name = name or directory.name

    try:
        if no_index:
            project = service.store(_as_new_project(workspace))
            workspace.project_id = project.id
            console.print("  [green]✓[/] Project saved")
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True,
                console=console,
            ) as prog:
                prog.add_task("Saving and indexing…", total=None)
                result = asyncio.run(service.save(workspace))
            if result.chunks_indexed is not None:
                console.print(f"  [green]✓[/] {result.chunks_indexed} chunks indexed")
    except ProjectTooLargeError as exc:
        console.print(err_too_large(str(exc)))
        raise typer.Exit(1)
    except CodelensError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)
    finally:
        conn.close()

    console.print(f"\n[bold green]✓ Imported '{workspace.project_name}'[/]  id: [bold]{workspace.project_id}[/]")


def index_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id to (re)index.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db."),
    ] = None,
) -> None:
    """Rebuild a project's semantic index from its stored files."""
    cfg = load_cli_config()
    require_api_keys(cfg.embedding.model)
    conn, service = open_service(db, cfg)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as prog:
            task = prog.add_task("Chunking…", total=None)

            def _on_progress(stage: str, done: int, total: int) -> None:
                prog.update(task, description=_STAGE_LABELS.get(stage, stage), completed=done, total=total)

            count = asyncio.run(service.index(project_id, on_progress=_on_progress))
    except ProjectNotFoundError:
        console.print(err_project_not_found(project_id))
        raise typer.Exit(1)
    except CodelensError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)
    finally:
        conn.close()

    if count == 0:
        console.print("[yellow]Project has no files — index is empty.[/]")
    else:
        console.print(f"[green]✓[/] {count} chunks indexed")


def projects_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db."),
    ] = None,
) -> None:
    """List stored projects, most recently updated first."""
    cfg = load_cli_config()
    conn, service = open_service(db, cfg)
    try:
        summaries = service.list_projects()
        rows = [(s, service.count_chunks(s.id)) for s in summaries]
    finally:
        conn.close()

    if not rows:
        console.print("[dim]No projects yet. Run:  codelens import <dir>[/]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Files", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_column("Updated")
    for summary, chunks in rows:
        table.add_row(
            summary.id,
            summary.name,
            str(summary.file_count),
            str(chunks) if chunks else "[yellow]0[/]",
            summary.updated_at or "",
        )
    console.print(table)


def remove_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id to remove.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a project and its index."""
    cfg = load_cli_config()
    conn, service = open_service(db, cfg)
    try:
        try:
            project = service.get_project(project_id)
        except ProjectNotFoundError:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)

        chunk_count = service.count_chunks(project_id)
        console.print(f"\nRemove project: [bold]{project.name}[/] ({project_id})")
        console.print(f"  Files: {len(project.file_contents)}  |  Chunks: {chunk_count}")

        if not yes and not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        service.delete(project_id)
        console.print(f"\n[green]✓[/] Removed: {project.name}")
    finally:
        conn.close()


def _as_new_project(workspace: Workspace) -> Project:
    return Project(
        id="",
        name=workspace.project_name,
        file_tree=workspace.file_tree,
        file_contents=workspace.snapshot(),
    )

