"""codelens ask — one grounded question, answer streamed to the terminal.

  codelens ask <project-id> "Where is the retry logic?"
  codelens ask <project-id> "Fix the off-by-one" --file src/utils/range.py
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from codelens.chat import ChatSession
from codelens.cli.common import load_cli_config, open_service, require_api_keys
from codelens.cli.errors import err_not_indexed, err_project_not_found
from codelens.cli.render import AnswerView, blocks_table
from codelens.edit.codeblocks import parse
from codelens.errors import ProjectNotFoundError
from codelens.workspace.workspace import Workspace

console = Console()


def ask_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id to ask about.")],
    question: Annotated[str, typer.Argument(help="Question about the code.")],
    file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Project path to send as the currently open file."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db."),
    ] = None,
) -> None:
    """Ask a question about a project and stream the answer."""
    if not question.strip():
        console.print("[red]Error:[/] Question is empty.")
        raise typer.Exit(1)

    cfg = load_cli_config()
    require_api_keys(cfg.embedding.model, cfg.generation.model)
    conn, service = open_service(db, cfg)

    try:
        workspace = Workspace()
        try:
            if file:
                service.load(project_id, workspace)
                workspace.select_file(file)
            else:
                service.get_project(project_id)
                workspace.project_id = project_id
        except ProjectNotFoundError:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
        except KeyError:
            console.print(f"[red]Error:[/] No file '{file}' in project {project_id}.")
            raise typer.Exit(1)

        if service.count_chunks(project_id) == 0:
            console.print(err_not_indexed(project_id))

        with AnswerView(console) as view:
            session = ChatSession(service, workspace, on_update=view.update, frame_interval=cfg.chat.frame_interval)
            answer = asyncio.run(session.send(question))
    finally:
        conn.close()

    if answer is None or answer.content.startswith("Error:"):
        raise typer.Exit(1)

    blocks = parse(answer.content)
    if blocks:
        console.print(blocks_table(blocks, workspace.selected_path))
