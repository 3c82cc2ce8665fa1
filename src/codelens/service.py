"""Project service: save/load projects and run the question-answering pipeline.

Used by both the HTTP server and the CLI so the two surfaces share one
definition of "save then re-index" and of the retrieval → prompt →
generation chain.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass

from codelens.config import CodelensConfig
from codelens.db.models import Project, ProjectSummary
from codelens.db.repository import Repository
from codelens.errors import (
    CodelensError,
    ProjectNotFoundError,
    ProjectTooLargeError,
    StorageError,
)
from codelens.ingest.indexer import Indexer, IndexerConfig
from codelens.rag.assembler import CurrentFile, HistoryTurn, build_prompt
from codelens.rag.llm_client import stream_completion
from codelens.rag.retriever import RetrieverConfig, retrieve
from codelens.workspace.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    project_id: str
    chunks_indexed: int | None = None
    index_error: str | None = None


class ProjectService:
    """Facade over the project store, the indexer and the answer pipeline."""

    def __init__(self, repo: Repository, config: CodelensConfig | None = None) -> None:
        self._repo = repo
        self._config = config or CodelensConfig()
        self._index_locks: dict[str, asyncio.Lock] = {}

    @property
    def config(self) -> CodelensConfig:
        return self._config

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> list[ProjectSummary]:
        try:
            return self._repo.list_projects()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def get_project(self, project_id: str) -> Project:
        try:
            project = self._repo.get_project(project_id)
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def load(self, project_id: str, workspace: Workspace) -> Project:
        project = self.get_project(project_id)
        workspace.load_project(project)
        return project

    def store(self, project: Project) -> Project:
        """Create (empty id) or overwrite a project row. No indexing."""
        limit = self._config.workspace.max_project_size
        size = sum(len(c) for c in project.file_contents.values())
        if size > limit:
            raise ProjectTooLargeError(size, limit)
        try:
            if not project.id:
                return self._repo.create_project(
                    project.name, project.file_tree, project.file_contents
                )
            if not self._repo.update_project(project):
                raise ProjectNotFoundError(project.id)
            stored = self._repo.get_project(project.id)
        except sqlite3.Error as exc:
            raise StorageError(f"Save failed: {exc}") from exc
        if stored is None:
            raise ProjectNotFoundError(project.id)
        return stored

    async def save(self, workspace: Workspace, name: str | None = None) -> SaveResult:
        """Persist the workspace (live buffer merged) and re-index it.

        An indexing failure does not undo the save; it is reported on the
        result so the caller can surface it.
        """
        project = Project(
            id=workspace.project_id or "",
            name=name or workspace.project_name,
            file_tree=workspace.file_tree,
            file_contents=workspace.snapshot(),
        )
        stored = self.store(project)
        workspace.project_id = stored.id
        workspace.project_name = stored.name
        workspace.notify("Project saved", "success")

        result = await self.save_and_index(stored.id)
        if result.index_error:
            workspace.notify(f"Indexing failed: {result.index_error}", "error")
        return result

    async def save_and_index(self, project_id: str) -> SaveResult:
        result = SaveResult(project_id=project_id)
        try:
            result.chunks_indexed = await self.index(project_id)
        except CodelensError as exc:
            logger.warning("Indexing after save failed for %s: %s", project_id, exc)
            result.index_error = str(exc)
        return result

    def delete(self, project_id: str) -> None:
        try:
            deleted = self._repo.delete_project(project_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Delete failed: {exc}") from exc
        if not deleted:
            raise ProjectNotFoundError(project_id)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def index(
        self,
        project_id: str,
        on_progress: Callable[[str, int, int], None] | None = None,
    ) -> int:
        """Rebuild the project's index. Runs for the same project are serialized."""
        lock = self._index_locks.setdefault(project_id, asyncio.Lock())
        async with lock:
            indexer = Indexer(self._repo, self._indexer_config(), on_progress=on_progress)
            return await indexer.index(project_id)

    def count_chunks(self, project_id: str) -> int:
        try:
            return self._repo.count_chunks(project_id)
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def _indexer_config(self) -> IndexerConfig:
        cfg = self._config
        return IndexerConfig(
            embedding_model=cfg.embedding.model,
            embed_batch_size=cfg.embedding.batch_size,
            insert_batch_size=cfg.indexing.insert_batch_size,
            chunk_size=cfg.chunking.chunk_size,
            overlap=cfg.chunking.overlap,
        )

    # ------------------------------------------------------------------
    # Question answering
    # ------------------------------------------------------------------

    async def ask(
        self,
        project_id: str,
        question: str,
        history: Sequence[HistoryTurn] | None = None,
        current_file: CurrentFile | None = None,
    ) -> AsyncIterator[str]:
        """Retrieve grounding context and start the answer stream.

        Retrieval errors are raised here, before any text is produced;
        generation errors surface while iterating the returned stream.

        Raises:
            EmbeddingError: The question could not be embedded.
            SearchError: The similarity search failed.
        """
        cfg = self._config
        chunks = await retrieve(
            project_id,
            question,
            self._repo,
            RetrieverConfig(
                embedding_model=cfg.embedding.model,
                top_k=cfg.retrieval.top_k,
                similarity_threshold=cfg.retrieval.similarity_threshold,
            ),
        )
        messages = build_prompt(
            question,
            chunks,
            current_file=current_file,
            history=history,
            history_limit=cfg.chat.history_limit,
        )
        logger.debug(
            "Asking %s with %d chunks, %d messages", cfg.generation.model, len(chunks), len(messages)
        )
        return stream_completion(
            cfg.generation.model,
            messages,
            max_tokens=cfg.generation.max_tokens,
            temperature=cfg.generation.temperature,
        )
