"""Project indexer: chunk → embed (batched) → replace stored index.

Pipeline for one run:
  1. Load the project's file-content map and chunk every file.
     No chunks → return 0 without touching storage.
  2. Embed all chunks in batches of ``embed_batch_size`` (order preserved).
     Any failed batch aborts the run before storage is touched.
  3. Delete every stored chunk row + vector for the project.
  4. Insert new rows in batches of ``insert_batch_size``.
     A failed batch leaves the project with an empty index, never a stale
     or mixed one.

The whole project is re-chunked on every run; boundaries shift when any file
changes, so chunk-level diffing is not attempted.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass

from codelens.db.models import CodeChunk
from codelens.db.repository import Repository
from codelens.db.vectors import ensure_vec_table, model_to_slug
from codelens.errors import ProjectNotFoundError, StorageError
from codelens.ingest.chunker import CHUNK_SIZE, OVERLAP, CodeChunker
from codelens.rag.llm_client import embed_texts

logger = logging.getLogger(__name__)


@dataclass
class IndexerConfig:
    """Configuration for an indexing run.

    Attributes:
        embedding_model: LiteLLM embedding model string (provider/model format).
        embed_batch_size: Chunks per embedding request.
        insert_batch_size: Rows per storage write.
    """

    embedding_model: str = "openai/text-embedding-3-small"
    embed_batch_size: int = 100
    insert_batch_size: int = 50
    chunk_size: int = CHUNK_SIZE
    overlap: int = OVERLAP


class Indexer:
    """Build (or rebuild) the semantic index of a project.

    Args:
        repo: Open Repository instance.
        config: Model and batch configuration.
        on_progress: Optional callback ``(stage, done, total)`` where stage is
            ``"embed"`` or ``"store"``; used by the CLI progress bar.
    """

    def __init__(
        self,
        repo: Repository,
        config: IndexerConfig | None = None,
        on_progress: Callable[[str, int, int], None] | None = None,
    ) -> None:
        self._repo = repo
        self._config = config or IndexerConfig()
        self._chunker = CodeChunker(self._config.chunk_size, self._config.overlap)
        self._on_progress = on_progress

    async def index(self, project_id: str) -> int:
        """Index *project_id* and return the number of chunks stored.

        Raises:
            ProjectNotFoundError: Unknown project id.
            EmbeddingError: The embedding service failed on any batch.
            StorageError: Reading the project or writing the index failed.
        """
        try:
            file_contents = self._repo.get_file_contents(project_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not load project {project_id}: {exc}") from exc
        if file_contents is None:
            raise ProjectNotFoundError(project_id)

        chunks = self._chunker.chunk_project(file_contents)
        if not chunks:
            logger.info("Project %s has no files; nothing to index", project_id)
            return 0

        embeddings = await self._embed_all(chunks)
        self._replace_index(project_id, chunks, embeddings)

        logger.info("Indexed project %s: %d chunks", project_id, len(chunks))
        return len(chunks)

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    async def _embed_all(self, chunks: list[CodeChunk]) -> list[list[float]]:
        """Embed chunk contents in fixed-size batches; i-th vector ↔ i-th chunk."""
        size = self._config.embed_batch_size
        embeddings: list[list[float]] = []
        for start in range(0, len(chunks), size):
            batch = chunks[start : start + size]
            vectors = await embed_texts(
                self._config.embedding_model, [c.content for c in batch]
            )
            embeddings.extend(vectors)
            self._report("embed", len(embeddings), len(chunks))
        return embeddings

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _replace_index(
        self,
        project_id: str,
        chunks: list[CodeChunk],
        embeddings: list[list[float]],
    ) -> None:
        """Delete the old index, then insert the new one batch by batch."""
        model = self._config.embedding_model
        size = self._config.insert_batch_size

        try:
            vec_table = ensure_vec_table(
                self._repo.conn, model_to_slug(model), len(embeddings[0])
            )
            removed = self._repo.delete_chunks(project_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not clear old index for {project_id}: {exc}") from exc
        logger.debug("Removed %d stale chunks for project %s", removed, project_id)

        for start in range(0, len(chunks), size):
            try:
                self._repo.add_chunks(
                    project_id,
                    chunks[start : start + size],
                    embeddings[start : start + size],
                    vec_table,
                    model,
                )
            except sqlite3.Error as exc:
                self._discard_partial(project_id)
                raise StorageError(f"Insert failed: {exc}") from exc
            self._report("store", min(start + size, len(chunks)), len(chunks))

    def _discard_partial(self, project_id: str) -> None:
        """Drop batches already written so a failed run leaves an empty index."""
        try:
            self._repo.delete_chunks(project_id)
        except sqlite3.Error as exc:
            logger.error("Could not discard partial index for %s: %s", project_id, exc)

    def _report(self, stage: str, done: int, total: int) -> None:
        if self._on_progress is not None:
            self._on_progress(stage, done, total)
