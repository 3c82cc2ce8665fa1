"""File filtering and language detection for imported projects."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 512 * 1024  # per file
MAX_PROJECT_SIZE = 4 * 1024 * 1024  # total characters across all files

_BINARY_EXTENSIONS = re.compile(
    r"\.(png|jpg|jpeg|gif|svg|ico|webp|bmp|woff2?|ttf|eot|otf|mp[34]|wav|ogg|webm|avi|mov"
    r"|zip|tar|gz|bz2|xz|7z|rar|exe|dll|so|dylib|bin|pdf|doc|docx|xls|xlsx|ppt|pptx"
    r"|db|sqlite|class|jar|pyc|pyo|o|obj|DS_Store)$",
    re.IGNORECASE,
)
_SKIP_DIRS = re.compile(
    r"^(node_modules|\.git|\.next|dist|build|out|coverage|\.cache|__pycache__|\.venv"
    r"|vendor|\.idea|\.vscode)$"
)
_SKIP_FILES = re.compile(
    r"^(package-lock\.json|yarn\.lock|pnpm-lock\.yaml|bun\.lockb|composer\.lock"
    r"|Gemfile\.lock|Cargo\.lock|\.env\.local|\.env)$"
)

_EXT_TO_LANGUAGE: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "h": "c",
    "go": "go",
    "rs": "rust",
    "rb": "ruby",
    "php": "php",
    "sh": "shell",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "html": "html",
    "css": "css",
    "sql": "sql",
    "md": "markdown",
}


def language_for(file_name: str) -> str:
    """Return the editor language id for *file_name* ("plaintext" if unknown)."""
    base = file_name.rsplit("/", 1)[-1]
    if "." not in base:
        return "plaintext"
    ext = base.rsplit(".", 1)[-1].lower()
    return _EXT_TO_LANGUAGE.get(ext, "plaintext")


def extension_of(file_name: str) -> str | None:
    return file_name.rsplit(".", 1)[-1] if "." in file_name else None


def should_skip_file(name: str, size: int, max_size: int = MAX_FILE_SIZE) -> bool:
    """True for binaries, lockfiles, env files and anything over *max_size* bytes."""
    if size > max_size:
        return True
    if _BINARY_EXTENSIONS.search(name):
        return True
    return bool(_SKIP_FILES.match(name))


def should_skip_dir(name: str) -> bool:
    return bool(_SKIP_DIRS.match(name))


def read_directory(
    root: Path,
    max_file_size: int = MAX_FILE_SIZE,
) -> tuple[list[tuple[str, str]], int]:
    """Read every importable text file under *root*.

    Paths are relative to the parent of *root* and joined with ``/``, so the
    top-level folder name is kept as the first path segment.

    Returns:
        ``(files, skipped)`` where files is a sorted list of (path, content).
    """
    root = Path(root)
    files: list[tuple[str, str]] = []
    skipped = 0
    for dirpath, dirnames, filenames in os.walk(root):
        kept_dirs = [d for d in sorted(dirnames) if not should_skip_dir(d)]
        skipped += len(dirnames) - len(kept_dirs)
        dirnames[:] = kept_dirs
        for name in sorted(filenames):
            path = Path(dirpath) / name
            try:
                size = path.stat().st_size
            except OSError:
                skipped += 1
                continue
            if should_skip_file(name, size, max_file_size):
                skipped += 1
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping unreadable file %s: %s", path, exc)
                skipped += 1
                continue
            rel = path.relative_to(root.parent).as_posix()
            files.append((rel, content))
    return files, skipped


def total_size(file_contents: dict[str, str]) -> int:
    return sum(len(c) for c in file_contents.values())
