"""Tests for the forward-only migration runner."""

from __future__ import annotations

from unittest.mock import patch

from dealroom.db.connection import Database
from dealroom.db.migrations import MIGRATIONS, run_migrations


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    return Database(tmp_path / "test.db").connect()


def _table_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
    ).fetchone() is not None


# --- Bootstrap ---

def test_run_migrations_creates_schema_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, "schema_version")
    conn.close()


def test_run_migrations_records_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()


# --- Idempotency ---

def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    run_migrations(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


# --- Tables created ---

def test_run_migrations_creates_all_tables(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    for table in ("documents", "chunks", "links", "conversations", "messages"):
        assert _table_exists(conn, table), table
    conn.close()


# --- Forward-only ---

def test_pending_migration_applied_once(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)

    extra = MIGRATIONS + [(99, "CREATE TABLE IF NOT EXISTS extra_table (x INTEGER);")]
    with patch("dealroom.db.migrations.MIGRATIONS", extra):
        run_migrations(conn)
        run_migrations(conn)

    assert _table_exists(conn, "extra_table")
    versions = [r[0] for r in conn.execute("SELECT version FROM schema_version ORDER BY version")]
    assert versions == [v for v, _ in MIGRATIONS] + [99]
    conn.close()
