"""HTTP API over the project service.

  POST   /api/embeddings       {project_id} → {chunksIndexed}
  POST   /api/chat             {project_id, question, history?, current_file?}
                               → text/plain stream of answer fragments
  GET    /api/projects         project summaries, most recently updated first
  GET    /api/projects/{id}    full project document
  PUT    /api/projects         save (create when id is empty), then re-index
  DELETE /api/projects/{id}    remove the project and its index

Failures are returned as ``{"error": "..."}`` with a non-2xx status. Once a
chat stream has started the status line is already sent, so a later
generation failure can only abort the connection.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from codelens.db.models import FileNode, Project
from codelens.errors import (
    EmbeddingError,
    GenerationError,
    ProjectNotFoundError,
    ProjectTooLargeError,
    SearchError,
    StorageError,
)
from codelens.rag.assembler import CurrentFile, HistoryTurn
from codelens.server.schemas import (
    ChatRequest,
    IndexRequest,
    IndexResponse,
    ProjectBody,
    ProjectSummaryBody,
    SaveResponse,
)
from codelens.service import ProjectService

logger = logging.getLogger(__name__)

_TEXT_STREAM = "text/plain; charset=utf-8"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _service(request: Request) -> ProjectService:
    return request.app.state.service


def create_app(service: ProjectService) -> FastAPI:
    """Build the FastAPI application bound to *service*."""
    app = FastAPI(title="Codelens", version="0.1.0")
    app.state.service = service

    @app.post("/api/embeddings", response_model=IndexResponse)
    async def index_project(body: IndexRequest, request: Request):
        if not body.project_id:
            return _error(400, "Missing project_id")
        try:
            count = await _service(request).index(body.project_id)
        except ProjectNotFoundError as exc:
            return _error(404, str(exc))
        except (EmbeddingError, StorageError) as exc:
            logger.error("Indexing %s failed: %s", body.project_id, exc)
            return _error(500, str(exc))
        return IndexResponse(chunksIndexed=count)

    @app.post("/api/chat")
    async def chat(body: ChatRequest, request: Request):
        if not body.project_id or not body.question:
            return _error(400, "Missing project_id or question")

        history = [HistoryTurn(role=h.role, content=h.content) for h in body.history]
        current_file = (
            CurrentFile(path=body.current_file.path, content=body.current_file.content)
            if body.current_file is not None
            else None
        )
        try:
            stream = await _service(request).ask(
                body.project_id, body.question, history=history, current_file=current_file
            )
        except (EmbeddingError, SearchError) as exc:
            logger.error("Retrieval for %s failed: %s", body.project_id, exc)
            return _error(500, str(exc))

        # Pull the first fragment before committing to a 200 so a request
        # the generator rejects outright still gets a JSON error.
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            first = ""
        except GenerationError as exc:
            logger.error("Generation for %s failed: %s", body.project_id, exc)
            return _error(500, str(exc))

        return StreamingResponse(
            _relay(body.project_id, first, stream), media_type=_TEXT_STREAM
        )

    @app.get("/api/projects", response_model=list[ProjectSummaryBody])
    async def list_projects(request: Request):
        try:
            summaries = _service(request).list_projects()
        except StorageError as exc:
            return _error(500, str(exc))
        return [
            ProjectSummaryBody(
                id=s.id, name=s.name, updated_at=s.updated_at, file_count=s.file_count
            )
            for s in summaries
        ]

    @app.get("/api/projects/{project_id}")
    async def get_project(project_id: str, request: Request):
        try:
            project = _service(request).get_project(project_id)
        except ProjectNotFoundError as exc:
            return _error(404, str(exc))
        except StorageError as exc:
            return _error(500, str(exc))
        return _project_body(project)

    @app.put("/api/projects", response_model=SaveResponse)
    async def save_project(body: ProjectBody, request: Request):
        service = _service(request)
        project = Project(
            id=body.id or "",
            name=body.name,
            file_tree=[FileNode.from_dict(n) for n in body.file_tree],
            file_contents=dict(body.file_contents),
        )
        try:
            stored = service.store(project)
        except ProjectTooLargeError as exc:
            return _error(413, str(exc))
        except ProjectNotFoundError as exc:
            return _error(404, str(exc))
        except StorageError as exc:
            return _error(500, str(exc))

        result = await service.save_and_index(stored.id)
        return SaveResponse(
            id=stored.id,
            chunksIndexed=result.chunks_indexed,
            indexError=result.index_error,
        )

    @app.delete("/api/projects/{project_id}")
    async def delete_project(project_id: str, request: Request):
        try:
            _service(request).delete(project_id)
        except ProjectNotFoundError as exc:
            return _error(404, str(exc))
        except StorageError as exc:
            return _error(500, str(exc))
        return {"deleted": project_id}

    return app


async def _relay(project_id: str, first: str, stream: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        if first:
            yield first
        async for fragment in stream:
            yield fragment
    except GenerationError as exc:
        logger.error("Answer stream for %s aborted: %s", project_id, exc)
        raise


def _project_body(project: Project) -> ProjectBody:
    return ProjectBody(
        id=project.id,
        name=project.name,
        file_tree=[n.to_dict() for n in project.file_tree],
        file_contents=project.file_contents,
    )
