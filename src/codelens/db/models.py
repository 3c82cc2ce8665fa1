"""Domain models for the Codelens project store."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class FileNode:
    """One entry in a project's file tree. Folders carry ``children``."""

    name: str
    type: str  # file | folder
    extension: str | None = None
    children: list[FileNode] | None = None

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.extension is not None:
            data["extension"] = self.extension
        if self.children is not None:
            data["children"] = [c.to_dict() for c in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileNode:
        children = data.get("children")
        return cls(
            name=str(data["name"]),
            type=str(data.get("type", "file")),
            extension=data.get("extension"),
            children=[cls.from_dict(c) for c in children] if children is not None else None,
        )


def tree_to_json(tree: list[FileNode]) -> str:
    return json.dumps([n.to_dict() for n in tree])


def tree_from_json(raw: str) -> list[FileNode]:
    return [FileNode.from_dict(n) for n in json.loads(raw or "[]")]


@dataclass
class Project:
    id: str
    name: str
    file_tree: list[FileNode] = field(default_factory=list)
    file_contents: dict[str, str] = field(default_factory=dict)
    updated_at: str | None = None


@dataclass
class ProjectSummary:
    id: str
    name: str
    updated_at: str | None
    file_count: int = 0


@dataclass
class CodeChunk:
    """A line-bounded slice of one file, prefixed with its path header."""

    file_path: str
    chunk_index: int
    content: str


@dataclass
class RetrievedChunk:
    """A stored chunk returned by similarity search.

    Attributes:
        similarity: Cosine similarity to the query vector (1.0 = identical).
        rowid: Row id of the stored chunk (shared with its vec table entry).
    """

    file_path: str
    chunk_index: int
    content: str
    similarity: float
    rowid: int | None = None
