"""Dealroom database layer."""

from dealroom.db.connection import Database
from dealroom.db.migrations import MIGRATIONS, run_migrations
from dealroom.db.repository import Repository
from dealroom.db.schema import initialize
from dealroom.db.vectors import check_vector, from_blob, to_blob

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "check_vector",
    "from_blob",
    "to_blob",
]
