"""Shared plumbing for CLI commands: config, database and service setup."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from codelens.cli.errors import err_config, err_no_api_key, err_no_db
from codelens.config import CodelensConfig, ConfigError, load_config
from codelens.db.connection import Database
from codelens.db.repository import Repository
from codelens.db.schema import initialize
from codelens.rag.llm_client import provider_of, validate_api_key
from codelens.service import ProjectService

console = Console()


def load_cli_config() -> CodelensConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: CodelensConfig) -> Path:
    return db if db is not None else Path(cfg.database.path)


def open_db(db_path: Path) -> sqlite3.Connection:
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def open_service(
    db: Path | None,
    cfg: CodelensConfig,
) -> tuple[sqlite3.Connection, ProjectService]:
    """Open an existing database and wrap it in a ProjectService. Exits if missing."""
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    conn = open_db(db_path)
    return conn, ProjectService(Repository(conn), cfg)


def require_api_keys(*models: str) -> None:
    for model in models:
        try:
            validate_api_key(model)
        except EnvironmentError:
            console.print(err_no_api_key(provider_of(model)))
            raise typer.Exit(1)


def print_notice(message: str, level: str) -> None:
    """Workspace notifier: one coloured line per success/warning/error."""
    style = {"success": "green", "warning": "yellow", "error": "red"}.get(level, "white")
    console.print(f"  [{style}]•[/] {message}")
