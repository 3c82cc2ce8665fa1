"""codelens init — create the project store and a starter config.

Creates:
  .codelens.db             — empty project store with schema
  codelens.yaml            — per-directory config (commented defaults)
  ~/.codelens/config.yaml  — global model config (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from codelens.cli.common import open_db
from codelens.config import DEFAULT_DB, ensure_global_config

console = Console()

_CONFIG_TEMPLATE = """\
# Codelens project configuration. Uncomment to override defaults.
# API keys are read from the environment (e.g. OPENAI_API_KEY), never from here.

# embedding:
#   model: openai/text-embedding-3-small
#   batch_size: 100
# generation:
#   model: openai/gpt-4o-mini
#   max_tokens: 4096
# retrieval:
#   top_k: 8
#   similarity_threshold: 0.3
# chunking:
#   chunk_size: 200
#   overlap: 20
# chat:
#   history_limit: 20
# server:
#   host: 127.0.0.1
#   port: 8000
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override global config path (for testing)."),
    ] = None,
) -> None:
    """Create the Codelens database and config in a directory."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    db_path = project_dir / DEFAULT_DB
    if db_path.exists():
        console.print(f"[yellow]⚠[/]  {db_path} already exists — schema checked, data kept.")
    conn = open_db(db_path)
    conn.close()
    console.print(f"  [green]✓[/] {DEFAULT_DB}")

    cfg_path = project_dir / "codelens.yaml"
    if not cfg_path.exists():
        cfg_path.write_text(_CONFIG_TEMPLATE, encoding="utf-8")
        console.print("  [green]✓[/] codelens.yaml")

    global_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {global_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. codelens import <dir>        (load and index a source tree)")
    console.print("  2. codelens chat <project-id>   (ask questions, apply edits)")
