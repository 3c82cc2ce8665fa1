"""Repository pattern for all Codelens database operations.

Single interface for: projects (file tree + file contents), code chunk rows,
and vec embeddings keyed by chunk row id. Vec tables are model-managed
(ensure_vec_table); the repository handles read + write.

sqlite3 errors propagate unchanged; the indexing and retrieval layers
translate them into StorageError / SearchError.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Sequence

from codelens.db.models import (
    CodeChunk,
    FileNode,
    Project,
    ProjectSummary,
    RetrievedChunk,
    tree_from_json,
    tree_to_json,
)
from codelens.db.vectors import list_vec_tables


class Repository:
    """Data access layer for projects, chunk rows and chunk embeddings.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see codelens.db.schema.initialize).
        """
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        name: str,
        file_tree: list[FileNode],
        file_contents: dict[str, str],
    ) -> Project:
        """Insert a new project and return it with its generated id."""
        project_id = str(uuid.uuid4())
        self._conn.execute(
            """
            INSERT INTO projects (id, name, file_tree, file_contents)
            VALUES (?, ?, ?, ?)
            """,
            (project_id, name, tree_to_json(file_tree), json.dumps(file_contents)),
        )
        self._conn.commit()
        project = self.get_project(project_id)
        if project is None:
            raise sqlite3.DatabaseError(f"Project {project_id} missing right after insert")
        return project

    def get_project(self, project_id: str) -> Project | None:
        """Return a project by id, or None if not found."""
        row = self._conn.execute(
            "SELECT id, name, file_tree, file_contents, updated_at FROM projects WHERE id = ?",
            (project_id,),
        ).fetchone()
        return _row_to_project(row) if row else None

    def get_file_contents(self, project_id: str) -> dict[str, str] | None:
        """Return only the file-content map of a project, or None if not found."""
        row = self._conn.execute(
            "SELECT file_contents FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return json.loads(row["file_contents"] or "{}") if row else None

    def update_project(self, project: Project) -> bool:
        """Overwrite name, tree and contents of an existing project.

        Returns:
            False if no project with ``project.id`` exists.
        """
        cur = self._conn.execute(
            """
            UPDATE projects
            SET name = ?, file_tree = ?, file_contents = ?, updated_at = datetime('now')
            WHERE id = ?
            """,
            (
                project.name,
                tree_to_json(project.file_tree),
                json.dumps(project.file_contents),
                project.id,
            ),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def list_projects(self) -> list[ProjectSummary]:
        """Return all projects, most recently updated first."""
        rows = self._conn.execute(
            """
            SELECT id, name, updated_at, file_contents
            FROM projects ORDER BY updated_at DESC, rowid DESC
            """
        ).fetchall()
        return [
            ProjectSummary(
                id=r["id"],
                name=r["name"],
                updated_at=r["updated_at"],
                file_count=len(json.loads(r["file_contents"] or "{}")),
            )
            for r in rows
        ]

    def delete_project(self, project_id: str) -> bool:
        """Delete a project together with its chunk rows and embeddings."""
        self.delete_chunks(project_id)
        cur = self._conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        self._conn.commit()
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Chunks + embeddings
    # ------------------------------------------------------------------

    def count_chunks(self, project_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM code_chunks WHERE project_id = ?", (project_id,)
        ).fetchone()[0]

    def delete_chunks(self, project_id: str) -> int:
        """Delete every chunk row and vec entry for *project_id*.

        Returns the number of chunk rows removed.
        """
        rowids = [
            (r[0],)
            for r in self._conn.execute(
                "SELECT id FROM code_chunks WHERE project_id = ?", (project_id,)
            ).fetchall()
        ]
        if not rowids:
            return 0
        for table in list_vec_tables(self._conn):
            self._conn.executemany(
                f"DELETE FROM {table} WHERE rowid = ?",  # noqa: S608
                rowids,
            )
        self._conn.execute("DELETE FROM code_chunks WHERE project_id = ?", (project_id,))
        self._conn.commit()
        return len(rowids)

    def add_chunks(
        self,
        project_id: str,
        chunks: Sequence[CodeChunk],
        embeddings: Sequence[list[float]],
        vec_table: str,
        embedding_model: str,
    ) -> list[int]:
        """Insert one batch of chunk rows + embeddings in a single transaction.

        The batch is all-or-nothing: on any error the transaction is rolled
        back and the error re-raised.

        Returns:
            The new chunk row ids, in input order.
        """
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"chunk/embedding count mismatch: {len(chunks)} != {len(embeddings)}"
            )
        rowids: list[int] = []
        try:
            for chunk, embedding in zip(chunks, embeddings):
                cur = self._conn.execute(
                    """
                    INSERT INTO code_chunks (project_id, file_path, chunk_index, content, embedding_model)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (project_id, chunk.file_path, chunk.chunk_index, chunk.content, embedding_model),
                )
                rowid = cur.lastrowid
                self._conn.execute(
                    f"INSERT INTO {vec_table}(rowid, project_id, embedding) VALUES (?, ?, ?)",
                    (rowid, project_id, json.dumps(embedding)),
                )
                rowids.append(rowid)
            self._conn.commit()
        except sqlite3.Error:
            self._conn.rollback()
            raise
        return rowids

    def search_similar(
        self,
        vec_table: str,
        project_id: str,
        embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[RetrievedChunk]:
        """Nearest-neighbour search within one project.

        Returns at most *limit* chunks whose cosine similarity is strictly
        above *threshold*, best first.
        """
        vec_rows = self._conn.execute(
            f"""
            SELECT rowid, distance FROM {vec_table}
            WHERE embedding MATCH ? AND k = ? AND project_id = ?
            ORDER BY distance
            """,
            (json.dumps(embedding), limit, project_id),
        ).fetchall()

        results: list[RetrievedChunk] = []
        for vec_row in vec_rows:
            similarity = 1.0 - float(vec_row["distance"])
            if similarity <= threshold:
                continue
            row = self._conn.execute(
                "SELECT id, file_path, chunk_index, content FROM code_chunks WHERE id = ?",
                (vec_row["rowid"],),
            ).fetchone()
            if row is not None:
                results.append(
                    RetrievedChunk(
                        file_path=row["file_path"],
                        chunk_index=row["chunk_index"],
                        content=row["content"],
                        similarity=similarity,
                        rowid=row["id"],
                    )
                )
        return results


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        file_tree=tree_from_json(row["file_tree"]),
        file_contents=json.loads(row["file_contents"] or "{}"),
        updated_at=row["updated_at"],
    )
