"""Exception taxonomy shared by the indexing, retrieval, generation and edit layers.

Collaborator failures (LiteLLM, sqlite3) are translated into these types at
the adapter boundary with ``raise ... from exc`` so callers only ever handle
the classes below.
"""

from __future__ import annotations


class CodelensError(Exception):
    """Base class for all Codelens errors."""


class ProjectNotFoundError(CodelensError):
    """The requested project id does not exist in the store."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class EmbeddingError(CodelensError):
    """The embedding service failed (including a failure on any single batch)."""


class SearchError(CodelensError):
    """The similarity search over stored chunk vectors failed."""


class StorageError(CodelensError):
    """A read or write against the project store failed."""


class GenerationError(CodelensError):
    """The text-generation stream failed before completing."""


class ProjectTooLargeError(CodelensError):
    """The project exceeds the configured total size limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Project too large ({size / 1024 / 1024:.1f} MB). "
            f"Max is {limit / 1024 / 1024:.0f} MB. Remove some files and try again."
        )
        self.size = size
        self.limit = limit


class NoTargetFileError(CodelensError):
    """Apply was requested but no destination file could be resolved."""

    def __init__(self) -> None:
        super().__init__("No file to apply to. Open a file first.")
