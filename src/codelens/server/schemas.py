"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class IndexRequest(BaseModel):
    project_id: str | None = None


class IndexResponse(BaseModel):
    chunksIndexed: int


class HistoryItem(BaseModel):
    # Unknown roles are accepted here and dropped when the prompt is built.
    role: str
    content: str = ""


class CurrentFileBody(BaseModel):
    path: str
    content: str = ""


class ChatRequest(BaseModel):
    project_id: str | None = None
    question: str | None = None
    history: list[HistoryItem] = Field(default_factory=list)
    current_file: CurrentFileBody | None = None


class ProjectBody(BaseModel):
    """Full project document as saved by a client (PUT /api/projects)."""

    id: str | None = None
    name: str = "my-project"
    file_tree: list[dict[str, Any]] = Field(default_factory=list)
    file_contents: dict[str, str] = Field(default_factory=dict)


class ProjectSummaryBody(BaseModel):
    id: str
    name: str
    updated_at: str | None = None
    file_count: int = 0


class SaveResponse(BaseModel):
    id: str
    chunksIndexed: int | None = None
    indexError: str | None = None
