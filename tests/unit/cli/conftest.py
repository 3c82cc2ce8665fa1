"""Fixtures isolating CLI runs from the user's config and environment."""

from __future__ import annotations

from pathlib import Path

import pytest

from codelens.db.connection import Database
from codelens.db.repository import Repository
from codelens.db.schema import initialize


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("codelens.config._GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml")
    for var in ("CODELENS_DB", "CODELENS_GENERATION_MODEL", "CODELENS_EMBEDDING_MODEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / ".codelens.db"
    conn = Database(path).connect()
    initialize(conn)
    conn.close()
    return path


@pytest.fixture
def cli_repo(db_path: Path):
    conn = Database(db_path).connect()
    yield Repository(conn)
    conn.close()
