"""Line-window chunker for source files.

Small files (≤ chunk_size lines) become a single chunk headed ``// <path>``.
Larger files are cut into windows of ``chunk_size`` lines that advance by
``chunk_size - overlap`` lines, each headed ``// <path> (lines a-b)`` with a
1-based inclusive range. The final window may be shorter.
"""

from __future__ import annotations

from collections.abc import Mapping

from codelens.db.models import CodeChunk

CHUNK_SIZE = 200
OVERLAP = 20


class CodeChunker:
    """Split file text into overlapping, path-annotated line windows.

    Pure: the same (path, content) always yields the same chunk sequence.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, overlap: int = OVERLAP) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, file_path: str, content: str) -> list[CodeChunk]:
        lines = content.split("\n")

        if len(lines) <= self.chunk_size:
            return [CodeChunk(file_path=file_path, chunk_index=0, content=f"// {file_path}\n{content}")]

        step = self.chunk_size - self.overlap
        chunks: list[CodeChunk] = []
        start = 0
        while start < len(lines):
            end = min(start + self.chunk_size, len(lines))
            header = f"// {file_path} (lines {start + 1}-{end})"
            body = "\n".join(lines[start:end])
            chunks.append(
                CodeChunk(file_path=file_path, chunk_index=len(chunks), content=f"{header}\n{body}")
            )
            start += step
        return chunks

    def chunk_project(self, file_contents: Mapping[str, str]) -> list[CodeChunk]:
        """Chunk every file in *file_contents*, preserving map order."""
        chunks: list[CodeChunk] = []
        for path, content in file_contents.items():
            chunks.extend(self.chunk(path, content))
        return chunks


def chunk_file(file_path: str, content: str) -> list[CodeChunk]:
    """Chunk one file with the default window (200 lines, 20 overlap)."""
    return CodeChunker().chunk(file_path, content)


def chunk_project(file_contents: Mapping[str, str]) -> list[CodeChunk]:
    return CodeChunker().chunk_project(file_contents)
