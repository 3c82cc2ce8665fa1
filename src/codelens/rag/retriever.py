"""Dense retriever over a project's stored chunk embeddings.

The question is embedded with the same model used at index time, then a
KNN search scoped to the project returns up to ``top_k`` chunks whose cosine
similarity exceeds ``similarity_threshold``, best first.

No matches (or no index yet) is a normal outcome: the caller answers without
grounded context.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from codelens.db.models import RetrievedChunk
from codelens.db.repository import Repository
from codelens.db.vectors import model_to_slug, vec_table_exists, vec_table_name
from codelens.errors import SearchError
from codelens.rag.llm_client import embed_text

logger = logging.getLogger(__name__)


@dataclass
class RetrieverConfig:
    """Configuration for the retriever.

    Attributes:
        embedding_model: LiteLLM embedding model string; must match the index.
        top_k: Maximum number of chunks to return.
        similarity_threshold: Minimum (exclusive) cosine similarity, 0-1 scale.
    """

    embedding_model: str = "openai/text-embedding-3-small"
    top_k: int = 8
    similarity_threshold: float = 0.3


async def retrieve(
    project_id: str,
    question: str,
    repo: Repository,
    config: RetrieverConfig,
) -> list[RetrievedChunk]:
    """Return the project's chunks most similar to *question*, best first.

    Raises:
        EmbeddingError: If the question could not be embedded.
        SearchError: If the similarity search failed.
    """
    query_embedding = await embed_text(config.embedding_model, question)

    vec_table = vec_table_name(model_to_slug(config.embedding_model))
    try:
        if not vec_table_exists(repo.conn, vec_table):
            logger.debug("No vec table for %s yet; nothing to retrieve", config.embedding_model)
            return []
        matches = repo.search_similar(
            vec_table,
            project_id,
            query_embedding,
            threshold=config.similarity_threshold,
            limit=config.top_k,
        )
    except sqlite3.Error as exc:
        raise SearchError(f"Search failed: {exc}") from exc

    logger.debug(
        "Retrieved %d chunks for project %s (threshold %.2f)",
        len(matches),
        project_id,
        config.similarity_threshold,
    )
    return matches
