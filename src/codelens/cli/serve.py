"""codelens serve — run the HTTP API with uvicorn."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console

from codelens.cli.common import load_cli_config, open_service, require_api_keys
from codelens.server.app import create_app

console = Console()


def serve_cmd(
    host: Annotated[
        str | None,
        typer.Option("--host", help="Bind address. Defaults to server.host from config."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Bind port. Defaults to server.port from config."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .codelens.db."),
    ] = None,
) -> None:
    """Serve /api/embeddings, /api/chat and the project endpoints over HTTP."""
    cfg = load_cli_config()
    require_api_keys(cfg.embedding.model, cfg.generation.model)
    conn, service = open_service(db, cfg)

    bind_host = host or cfg.server.host
    bind_port = port or cfg.server.port
    console.print(f"[bold]Codelens API[/] on http://{bind_host}:{bind_port}  [dim](Ctrl+C to stop)[/]")
    try:
        uvicorn.run(create_app(service), host=bind_host, port=bind_port, log_level="info")
    finally:
        conn.close()
