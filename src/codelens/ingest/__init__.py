"""Codelens ingest pipeline — chunker and project indexer."""

from codelens.ingest.chunker import CodeChunker, chunk_file, chunk_project
from codelens.ingest.indexer import Indexer, IndexerConfig

__all__ = [
    "CodeChunker",
    "Indexer",
    "IndexerConfig",
    "chunk_file",
    "chunk_project",
]
