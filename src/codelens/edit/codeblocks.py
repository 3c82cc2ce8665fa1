"""Extract actionable code blocks from an AI answer.

Only fenced blocks tagged with a language are actionable. If the first line
of a block is a file marker (``// file: path``, ``# file: path``, ...), the
marker is stripped from the code and its path becomes the block's target.
Without a marker the caller falls back to the active file.

CRLF line endings are read as LF.

A trailing fence that has not been closed yet (answer still streaming) is
treated as running to the end of the text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_FENCE_RE = re.compile(
    r"^[ \t]*```(?P<lang>[\w+#.\-]+)[^\n]*\n(?P<body>.*?)(?:^[ \t]*```[ \t]*$|\Z)",
    re.MULTILINE | re.DOTALL,
)

_MARKER_RE = re.compile(
    r"^\s*(?://|#|--|;|/\*|<!--)\s*file:\s*(?P<path>[^\s*][^\n]*?)\s*(?:\*/|-->)?\s*$",
    re.IGNORECASE,
)


@dataclass
class CodeBlock:
    language: str
    code: str
    target_path: str | None = None


def parse(answer_text: str) -> list[CodeBlock]:
    """Return every language-tagged fenced block in *answer_text*, in order."""
    answer_text = answer_text.replace("\r\n", "\n")
    blocks: list[CodeBlock] = []
    for match in _FENCE_RE.finditer(answer_text):
        body = match.group("body")
        if body.endswith("\n"):
            body = body[:-1]
        target_path, code = split_marker(body)
        blocks.append(CodeBlock(language=match.group("lang").lower(), code=code, target_path=target_path))
    return blocks


def split_marker(code: str) -> tuple[str | None, str]:
    """Split a leading ``file:`` marker off *code*. Returns ``(path, rest)``."""
    first, sep, rest = code.partition("\n")
    match = _MARKER_RE.match(first)
    if match is None:
        return None, code
    path = match.group("path").strip()
    if path.startswith("./"):
        path = path[2:]
    return path, rest if sep else ""
