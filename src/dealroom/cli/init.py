"""dealroom init: create the database, the upload directory and config files.

Creates:
  .dealroom.db             empty database with the current schema
  uploads/                 stored upload bytes
  dealroom.yaml            per-project config template (kept if present)
  ~/.dealroom/config.yaml  global defaults (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from dealroom.cli.context import load_cli_config, open_db
from dealroom.config import ensure_global_config
from dealroom.db.schema import schema_version

console = Console()

_PROJECT_CONFIG_TEMPLATE = """\
# Dealroom project configuration.
# API keys are read from OPENAI_API_KEY / ANTHROPIC_API_KEY / GEMINI_API_KEY.

embedding:
  model: openai/text-embedding-3-large
  dimensions: 3072

chunking:
  max_chunk_chars: 1000

retrieval:
  top_k: 5

chat:
  model: gpt-4o
  history_limit: 20
"""


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: storage.db_path)."),
    ] = None,
    global_config: Annotated[
        bool,
        typer.Option("--global-config/--no-global-config", help="Create ~/.dealroom/config.yaml."),
    ] = True,
) -> None:
    """Create the dealroom database and config scaffold in the current directory."""
    cfg = load_cli_config(db)
    db_path = Path(cfg.storage.db_path)
    existed = db_path.exists()

    conn = open_db(db_path, create=True)
    try:
        version = schema_version(conn)
    finally:
        conn.close()
    verb = "migrated" if existed else "created"
    console.print(f"  [green]✓[/] {db_path} ({verb}, schema v{version})")

    upload_dir = Path(cfg.storage.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    console.print(f"  [green]✓[/] {upload_dir}/")

    project_cfg = Path("dealroom.yaml")
    if not project_cfg.exists():
        project_cfg.write_text(_PROJECT_CONFIG_TEMPLATE, encoding="utf-8")
        console.print(f"  [green]✓[/] {project_cfg}")

    if global_config:
        cfg_path = ensure_global_config()
        console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. dealroom ingest --project <id> --file <path>")
    console.print("  2. dealroom links create --project <id> --name <name>")
    console.print("  3. dealroom chat --link <slug> --message <question>")
