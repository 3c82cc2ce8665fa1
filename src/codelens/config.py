"""Codelens configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (CODELENS_GENERATION_MODEL, CODELENS_EMBEDDING_MODEL, CODELENS_DB)
  3. Per-project codelens.yaml  (in the working directory)
  4. Global ~/.codelens/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".codelens"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "codelens.yaml"

DEFAULT_DB: str = ".codelens.db"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "database",
        "embedding",
        "generation",
        "retrieval",
        "chunking",
        "indexing",
        "chat",
        "server",
        "workspace",
    ]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DatabaseCfg:
    """Project store location (codelens.yaml: database:)."""

    path: str = DEFAULT_DB


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (codelens.yaml: embedding:).

    Attributes:
        model: LiteLLM embedding model string (provider/model format).
        batch_size: Number of chunks sent per embedding request.
    """

    model: str = "openai/text-embedding-3-small"
    batch_size: int = 100


@dataclass
class GenerationCfg:
    """Answer generation configuration (codelens.yaml: generation:)."""

    model: str = "openai/gpt-4o-mini"
    max_tokens: int = 4_096
    temperature: float = 0.2


@dataclass
class RetrievalCfg:
    """Similarity search configuration (codelens.yaml: retrieval:).

    Attributes:
        top_k: Maximum number of chunks returned per question.
        similarity_threshold: Chunks must score strictly above this (0-1 scale).
    """

    top_k: int = 8
    similarity_threshold: float = 0.3


@dataclass
class ChunkingCfg:
    """Line-window chunker configuration (codelens.yaml: chunking:)."""

    chunk_size: int = 200
    overlap: int = 20


@dataclass
class IndexingCfg:
    """Index write configuration (codelens.yaml: indexing:)."""

    insert_batch_size: int = 50


@dataclass
class ChatCfg:
    """Chat session configuration (codelens.yaml: chat:).

    Attributes:
        history_limit: Most recent turns forwarded to the model.
        frame_interval: Minimum seconds between coalesced UI updates while streaming.
    """

    history_limit: int = 20
    frame_interval: float = 1 / 60


@dataclass
class ServerCfg:
    """HTTP server bind address (codelens.yaml: server:)."""

    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class WorkspaceCfg:
    """Import limits (codelens.yaml: workspace:)."""

    max_file_size: int = 512 * 1024
    max_project_size: int = 4 * 1024 * 1024


@dataclass
class CodelensConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    indexing: IndexingCfg = field(default_factory=IndexingCfg)
    chat: ChatCfg = field(default_factory=ChatCfg)
    server: ServerCfg = field(default_factory=ServerCfg)
    workspace: WorkspaceCfg = field(default_factory=WorkspaceCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: CodelensConfig) -> None:
    """Raise ConfigError for values the pipeline cannot run with."""
    ch = cfg.chunking
    if ch.chunk_size < 1:
        raise ConfigError(f"chunking.chunk_size must be >= 1, got {ch.chunk_size}")
    if not 0 <= ch.overlap < ch.chunk_size:
        raise ConfigError(
            f"chunking.overlap must be in [0, chunk_size), got {ch.overlap} "
            f"(chunk_size={ch.chunk_size})"
        )
    if not 0.0 <= cfg.retrieval.similarity_threshold <= 1.0:
        raise ConfigError(
            "retrieval.similarity_threshold must be in [0, 1], "
            f"got {cfg.retrieval.similarity_threshold}"
        )
    for name, value in (
        ("retrieval.top_k", cfg.retrieval.top_k),
        ("embedding.batch_size", cfg.embedding.batch_size),
        ("indexing.insert_batch_size", cfg.indexing.insert_batch_size),
        ("chat.history_limit", cfg.chat.history_limit),
    ):
        if value < 1:
            raise ConfigError(f"{name} must be >= 1, got {value}")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> CodelensConfig:
    """Build a *CodelensConfig* from a merged raw YAML dict."""
    cfg = CodelensConfig()

    if "database" in data:
        d = data["database"]
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
        )

    if "generation" in data:
        g = data["generation"]
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(
            top_k=int(r.get("top_k", cfg.retrieval.top_k)),
            similarity_threshold=float(
                r.get("similarity_threshold", cfg.retrieval.similarity_threshold)
            ),
        )

    if "chunking" in data:
        c = data["chunking"]
        cfg.chunking = ChunkingCfg(
            chunk_size=int(c.get("chunk_size", cfg.chunking.chunk_size)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )

    if "indexing" in data:
        i = data["indexing"]
        cfg.indexing = IndexingCfg(
            insert_batch_size=int(
                i.get("insert_batch_size", cfg.indexing.insert_batch_size)
            ),
        )

    if "chat" in data:
        ct = data["chat"]
        cfg.chat = ChatCfg(
            history_limit=int(ct.get("history_limit", cfg.chat.history_limit)),
            frame_interval=float(ct.get("frame_interval", cfg.chat.frame_interval)),
        )

    if "server" in data:
        s = data["server"]
        cfg.server = ServerCfg(
            host=str(s.get("host", cfg.server.host)),
            port=int(s.get("port", cfg.server.port)),
        )

    if "workspace" in data:
        w = data["workspace"]
        cfg.workspace = WorkspaceCfg(
            max_file_size=int(w.get("max_file_size", cfg.workspace.max_file_size)),
            max_project_size=int(
                w.get("max_project_size", cfg.workspace.max_project_size)
            ),
        )

    return cfg


def _apply_env_overrides(cfg: CodelensConfig) -> CodelensConfig:
    """Apply CODELENS_* environment variable overrides."""
    if model := os.environ.get("CODELENS_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("CODELENS_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("CODELENS_DB"):
        cfg.database.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> CodelensConfig:
    """Load and return a merged *CodelensConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *codelens.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    try:
        cfg = _cfg_from_dict(merged)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.codelens/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Codelens global configuration — model defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o-mini\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
