"""codelens chat — interactive session over one project.

Plain lines are questions. Slash commands act on the code blocks of the
most recent answer and on the in-memory workspace:

  /files              list project files (active one marked)
  /open PATH          make PATH the active file
  /blocks             list code blocks of the last answer
  /review N           show block N as a diff against its target
  /accept | /reject   commit or discard the pending diff
  /apply N            write block N to its target directly (undoable)
  /undo               revert the last /apply
  /rename PATH NAME   rename a file in place
  /save               save the workspace and re-index it
  /quit               leave (unsaved edits are discarded)
"""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from codelens.chat import ChatSession
from codelens.cli.common import load_cli_config, open_service, print_notice, require_api_keys
from codelens.cli.errors import err_no_block, err_project_not_found
from codelens.cli.render import AnswerView, blocks_table, render_diff
from codelens.edit.codeblocks import CodeBlock, parse
from codelens.edit.review import CodeReview
from codelens.errors import CodelensError, NoTargetFileError, ProjectNotFoundError
from codelens.rag.streamer import ChatMessage
from codelens.service import ProjectService
from codelens.workspace.tree import leaf_paths
from codelens.workspace.workspace import Workspace

console = Console()

_HELP = __doc__.split("\n\n", 1)[1]


class ChatRepl:
    """Line-driven front end over a ChatSession and a CodeReview."""

    def __init__(self, service: ProjectService, workspace: Workspace) -> None:
        self.service = service
        self.workspace = workspace
        self.review = CodeReview(workspace)
        self.session = ChatSession(
            service,
            workspace,
            on_update=self._repaint,
            frame_interval=service.config.chat.frame_interval,
        )
        self._view: AnswerView | None = None

    def blocks(self) -> list[CodeBlock]:
        answer = self.session.last_answer()
        return parse(answer.content) if answer else []

    async def handle(self, line: str) -> bool:
        """Process one input line. Returns False when the session should end."""
        line = line.strip()
        if not line:
            return True
        if not line.startswith("/"):
            await self._ask(line)
            return True

        try:
            parts = shlex.split(line)
        except ValueError as exc:
            console.print(f"[red]Error:[/] {exc}")
            return True
        command, args = parts[0].lower(), parts[1:]

        if command in ("/quit", "/exit"):
            return False
        handler = self._commands().get(command)
        if handler is None:
            console.print(f"[yellow]Unknown command {command}.[/] Type /help.")
            return True
        await handler(args)
        return True

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    async def _ask(self, question: str) -> None:
        with AnswerView(console) as view:
            self._view = view
            task = asyncio.ensure_future(self.session.send(question))
            try:
                # Shielded so Ctrl-C ends only this answer, not the session.
                answer = await asyncio.shield(task)
            except (asyncio.CancelledError, KeyboardInterrupt):
                self.session.cancel()
                answer = await task
                console.print("[yellow]Answer cancelled.[/]")
            finally:
                self._view = None
        if answer is None:
            return
        blocks = self.blocks()
        if blocks:
            console.print(blocks_table(blocks, self.workspace.selected_path))
            console.print("[dim]/review N to preview, /apply N to write.[/]")

    def _repaint(self, message: ChatMessage) -> None:
        if self._view is not None:
            self._view.update(message)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _commands(self):
        return {
            "/help": self._cmd_help,
            "/files": self._cmd_files,
            "/open": self._cmd_open,
            "/blocks": self._cmd_blocks,
            "/review": self._cmd_review,
            "/accept": self._cmd_accept,
            "/reject": self._cmd_reject,
            "/apply": self._cmd_apply,
            "/undo": self._cmd_undo,
            "/rename": self._cmd_rename,
            "/save": self._cmd_save,
        }

    async def _cmd_help(self, args: list[str]) -> None:
        console.print(_HELP, markup=False, highlight=False)

    async def _cmd_files(self, args: list[str]) -> None:
        for path in leaf_paths(self.workspace.file_tree) or list(self.workspace.file_contents):
            marker = "[bold green]●[/]" if path == self.workspace.selected_path else " "
            console.print(f" {marker} {path}")

    async def _cmd_open(self, args: list[str]) -> None:
        if len(args) != 1:
            console.print("[yellow]Usage:[/] /open PATH")
            return
        try:
            self.workspace.select_file(args[0])
        except KeyError:
            console.print(f"[red]Error:[/] No file '{args[0]}' in this project.")
            return
        console.print(f"[green]✓[/] Opened {self.workspace.selected_path} ({self.workspace.language})")

    async def _cmd_blocks(self, args: list[str]) -> None:
        blocks = self.blocks()
        if not blocks:
            console.print(err_no_block(0, 0))
            return
        console.print(blocks_table(blocks, self.workspace.selected_path))

    async def _cmd_review(self, args: list[str]) -> None:
        block = self._pick_block(args)
        if block is None:
            return
        diff = self.review.review(block.code, block.target_path)
        console.print(f"[bold]Review:[/] {diff.target_path or '(unsaved buffer)'}")
        console.print(render_diff(diff))
        console.print("[dim]/accept to commit, /reject to discard.[/]")

    async def _cmd_accept(self, args: list[str]) -> None:
        if not self.review.reviewing:
            console.print("[yellow]Nothing to accept.[/]")
            return
        path = self.review.accept()
        console.print(f"[green]✓[/] Accepted changes to {path or 'the editor buffer'}")

    async def _cmd_reject(self, args: list[str]) -> None:
        if not self.review.reviewing:
            console.print("[yellow]Nothing to reject.[/]")
            return
        self.review.reject()
        console.print("[dim]Diff discarded.[/]")

    async def _cmd_apply(self, args: list[str]) -> None:
        block = self._pick_block(args)
        if block is None:
            return
        try:
            self.review.apply(block.code, block.target_path)
        except NoTargetFileError:
            # Already reported through the workspace notifier.
            return

    async def _cmd_undo(self, args: list[str]) -> None:
        if not self.review.undo():
            console.print("[yellow]Nothing to undo.[/]")

    async def _cmd_rename(self, args: list[str]) -> None:
        if len(args) != 2:
            console.print("[yellow]Usage:[/] /rename PATH NEW_NAME")
            return
        try:
            new_path = self.workspace.rename_file(args[0], args[1])
        except KeyError:
            console.print(f"[red]Error:[/] No file '{args[0]}' in this project.")
            return
        except ValueError as exc:
            console.print(f"[red]Error:[/] {exc}")
            return
        console.print(f"[green]✓[/] Renamed to {new_path}")

    async def _cmd_save(self, args: list[str]) -> None:
        try:
            result = await self.service.save(self.workspace)
        except CodelensError as exc:
            console.print(f"[red]Error:[/] {exc}")
            return
        if result.chunks_indexed is not None:
            console.print(f"[green]✓[/] {result.chunks_indexed} chunks indexed")

    def _pick_block(self, args: list[str]) -> CodeBlock | None:
        blocks = self.blocks()
        if len(args) != 1 or not args[0].isdigit():
            if not blocks:
                console.print(err_no_block(0, 0))
            else:
                console.print("[yellow]Usage:[/] /review N  or  /apply N")
            return None
        index = int(args[0])
        if not 1 <= index <= len(blocks):
            console.print(err_no_block(index, len(blocks)))
            return None
        return blocks[index - 1]


def chat_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id to chat about.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db."),
    ] = None,
) -> None:
    """Start an interactive question-and-edit session on a project."""
    cfg = load_cli_config()
    require_api_keys(cfg.embedding.model, cfg.generation.model)
    conn, service = open_service(db, cfg)

    try:
        workspace = Workspace(notify=print_notice)
        try:
            project = service.load(project_id, workspace)
        except ProjectNotFoundError:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)

        console.print(
            f"[bold]{project.name}[/]  {len(project.file_contents)} files"
            + (f"  ·  open: {workspace.selected_path}" if workspace.selected_path else "")
        )
        console.print("[dim]Ask a question, or /help for commands.[/]\n")
        asyncio.run(_run(ChatRepl(service, workspace)))
    finally:
        conn.close()


async def _run(repl: ChatRepl) -> None:
    while True:
        try:
            line = console.input("[bold cyan]›[/] ")
        except (EOFError, KeyboardInterrupt):
            console.print()
            return
        if not await repl.handle(line):
            return
