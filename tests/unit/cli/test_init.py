"""Tests for dealroom init."""

from __future__ import annotations

from pathlib import Path

import yaml
from typer.testing import CliRunner

from dealroom.cli.main import app
from dealroom.db.connection import Database
from dealroom.db.schema import CURRENT_VERSION, schema_version

runner = CliRunner()


def test_init_exits_zero(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", "--no-global-config"])
    assert result.exit_code == 0, result.output


def test_init_creates_database(tmp_path: Path) -> None:
    runner.invoke(app, ["init", "--no-global-config"])
    conn = Database(tmp_path / ".dealroom.db").connect()
    try:
        assert schema_version(conn) == CURRENT_VERSION
    finally:
        conn.close()


def test_init_respects_db_option(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", "--no-global-config", "--db", "data.db"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "data.db").exists()
    assert not (tmp_path / ".dealroom.db").exists()


def test_init_creates_upload_dir(tmp_path: Path) -> None:
    runner.invoke(app, ["init", "--no-global-config"])
    assert (tmp_path / "uploads").is_dir()


def test_init_writes_loadable_project_config(tmp_path: Path) -> None:
    runner.invoke(app, ["init", "--no-global-config"])
    data = yaml.safe_load((tmp_path / "dealroom.yaml").read_text(encoding="utf-8"))
    assert data["chat"]["model"] == "gpt-4o"
    assert data["retrieval"]["top_k"] == 5


def test_init_keeps_existing_project_config(tmp_path: Path) -> None:
    (tmp_path / "dealroom.yaml").write_text("retrieval:\n  top_k: 3\n", encoding="utf-8")
    runner.invoke(app, ["init", "--no-global-config"])
    assert "top_k: 3" in (tmp_path / "dealroom.yaml").read_text(encoding="utf-8")


def test_init_twice_is_safe(tmp_path: Path) -> None:
    runner.invoke(app, ["init", "--no-global-config"])
    result = runner.invoke(app, ["init", "--no-global-config"])
    assert result.exit_code == 0
    assert "migrated" in result.output


def test_init_creates_global_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "home" / "config.yaml").exists()


def test_init_rejects_invalid_config(tmp_path: Path) -> None:
    (tmp_path / "dealroom.yaml").write_text("retrieval:\n  top_k: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["init", "--no-global-config"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
