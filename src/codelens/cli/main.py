"""Codelens CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from codelens.cli.ask import ask_cmd
from codelens.cli.chat import chat_cmd
from codelens.cli.init import init_cmd
from codelens.cli.projects import import_cmd, index_cmd, projects_cmd, remove_cmd
from codelens.cli.serve import serve_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("codelens")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"codelens {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="codelens",
    help=(
        "Codelens — ask questions about a code project and apply AI-proposed edits.\n\n"
        "  codelens import DIR   Load, save and index a source tree.\n"
        "  codelens chat ID      Interactive Q&A with review / apply / undo."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log pipeline details to stderr."),
    ] = False,
) -> None:
    """Codelens — ask questions about a code project and apply AI-proposed edits."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # LiteLLM and httpx log every request at DEBUG.
    for noisy in ("LiteLLM", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


app.command("init")(init_cmd)
app.command("import")(import_cmd)
app.command("index")(index_cmd)
app.command("projects")(projects_cmd)
app.command("ask")(ask_cmd)
app.command("chat")(chat_cmd)
app.command("remove")(remove_cmd)
app.command("serve")(serve_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Codelens version."""
    typer.echo(f"codelens {_installed_version()}")


if __name__ == "__main__":
    app()
