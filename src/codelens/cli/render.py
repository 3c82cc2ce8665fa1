"""Terminal rendering for answers, code blocks and pending diffs."""

from __future__ import annotations

import difflib

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from codelens.edit.codeblocks import CodeBlock
from codelens.edit.review import DiffState
from codelens.rag.streamer import ChatMessage


def diff_text(diff: DiffState) -> str:
    """Unified diff of a pending review, ``a/`` → ``b/`` on the target path."""
    path = diff.target_path or "untitled"
    lines = difflib.unified_diff(
        diff.original.splitlines(keepends=True),
        diff.modified.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    # Files without a trailing newline would otherwise run into the next hunk line.
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def render_diff(diff: DiffState) -> Syntax | Text:
    text = diff_text(diff)
    if not text:
        return Text("(no changes)", style="dim")
    return Syntax(text, "diff", theme="ansi_dark", word_wrap=True)


def blocks_table(blocks: list[CodeBlock], fallback_path: str) -> Table:
    table = Table(title="Code blocks", show_lines=False, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Language")
    table.add_column("Target")
    table.add_column("Lines", justify="right")
    for i, block in enumerate(blocks, start=1):
        if block.target_path:
            target = block.target_path
        elif fallback_path:
            target = f"[dim]{fallback_path} (open file)[/]"
        else:
            target = "[red]none[/]"
        table.add_row(str(i), block.language, target, str(block.code.count("\n") + 1))
    return table


class AnswerView:
    """Live-updating panel for a streaming answer.

    Pass ``view.update`` as the streamer's ``on_update`` callback; the
    streamer already coalesces fragments, so every call repaints.
    """

    def __init__(self, console: Console) -> None:
        self._live = Live(Text(""), console=console, auto_refresh=False, transient=False)

    def __enter__(self) -> AnswerView:
        self._live.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        self._live.__exit__(*args)

    def update(self, message: ChatMessage) -> None:
        self._live.update(Markdown(message.content), refresh=True)
