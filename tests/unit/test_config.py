"""Tests for the layered YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from codelens.config import (
    CodelensConfig,
    ConfigError,
    ensure_global_config,
    load_config,
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for var in ("CODELENS_GENERATION_MODEL", "CODELENS_EMBEDDING_MODEL", "CODELENS_DB"):
        monkeypatch.delenv(var, raising=False)


def _load(tmp_path: Path, project_yaml: str | None = None, global_yaml: str | None = None) -> CodelensConfig:
    global_path = tmp_path / "global" / "config.yaml"
    if global_yaml is not None:
        global_path.parent.mkdir(parents=True, exist_ok=True)
        global_path.write_text(global_yaml, encoding="utf-8")
    if project_yaml is not None:
        (tmp_path / "codelens.yaml").write_text(project_yaml, encoding="utf-8")
    return load_config(tmp_path, global_config_path=global_path)


# ------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------


def test_defaults_when_no_files(tmp_path):
    cfg = _load(tmp_path)
    assert cfg.embedding.batch_size == 100
    assert cfg.indexing.insert_batch_size == 50
    assert cfg.retrieval.top_k == 8
    assert cfg.retrieval.similarity_threshold == 0.3
    assert cfg.chunking.chunk_size == 200
    assert cfg.chunking.overlap == 20
    assert cfg.chat.history_limit == 20
    assert cfg.database.path == ".codelens.db"


def test_empty_project_file_gives_defaults(tmp_path):
    cfg = _load(tmp_path, project_yaml="")
    assert cfg == CodelensConfig()


# ------------------------------------------------------------------
# Layering
# ------------------------------------------------------------------


def test_project_overrides_global(tmp_path):
    cfg = _load(
        tmp_path,
        global_yaml="generation:\n  model: anthropic/claude-3-5-haiku\n",
        project_yaml="generation:\n  model: openai/gpt-4o\n",
    )
    assert cfg.generation.model == "openai/gpt-4o"


def test_partial_section_keeps_other_defaults(tmp_path):
    cfg = _load(tmp_path, project_yaml="retrieval:\n  top_k: 4\n")
    assert cfg.retrieval.top_k == 4
    assert cfg.retrieval.similarity_threshold == 0.3


def test_env_overrides_files(tmp_path, monkeypatch):
    monkeypatch.setenv("CODELENS_GENERATION_MODEL", "ollama/llama3")
    monkeypatch.setenv("CODELENS_DB", "/tmp/other.db")
    cfg = _load(tmp_path, project_yaml="generation:\n  model: openai/gpt-4o\n")
    assert cfg.generation.model == "ollama/llama3"
    assert cfg.database.path == "/tmp/other.db"


def test_unknown_key_warns(tmp_path):
    with pytest.warns(UserWarning, match="Unknown config key 'telemetry'"):
        _load(tmp_path, project_yaml="telemetry: true\n")


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


def test_api_key_in_global_config_rejected(tmp_path):
    with pytest.raises(ConfigError, match="forbidden key"):
        _load(tmp_path, global_yaml="generation:\n  api_key: sk-123\n")


def test_max_tokens_is_not_mistaken_for_a_key(tmp_path):
    cfg = _load(tmp_path, global_yaml="generation:\n  max_tokens: 1024\n")
    assert cfg.generation.max_tokens == 1024


def test_overlap_must_be_smaller_than_chunk_size(tmp_path):
    with pytest.raises(ConfigError, match="overlap"):
        _load(tmp_path, project_yaml="chunking:\n  chunk_size: 10\n  overlap: 10\n")


def test_threshold_out_of_range(tmp_path):
    with pytest.raises(ConfigError, match="similarity_threshold"):
        _load(tmp_path, project_yaml="retrieval:\n  similarity_threshold: 1.5\n")


def test_non_numeric_value_is_config_error(tmp_path):
    with pytest.raises(ConfigError, match="Invalid config value"):
        _load(tmp_path, project_yaml="embedding:\n  batch_size: lots\n")


# ------------------------------------------------------------------
# ensure_global_config
# ------------------------------------------------------------------


def test_ensure_global_config_creates_file_once(tmp_path):
    target = tmp_path / "home" / ".codelens" / "config.yaml"
    path = ensure_global_config(target)
    assert path == target
    assert "NEVER store API keys" in target.read_text(encoding="utf-8")
    assert oct(target.stat().st_mode & 0o777) == oct(0o600)

    target.write_text("generation:\n  model: custom\n", encoding="utf-8")
    ensure_global_config(target)
    assert "custom" in target.read_text(encoding="utf-8")
