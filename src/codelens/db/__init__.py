"""Codelens project store."""

from codelens.db.connection import Database
from codelens.db.repository import Repository
from codelens.db.schema import MIGRATIONS, initialize, run_migrations
from codelens.db.vectors import ensure_vec_table, model_to_slug, vec_table_name

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "ensure_vec_table",
    "model_to_slug",
    "vec_table_name",
]
