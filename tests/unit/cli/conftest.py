"""CLI test isolation: temp working dir, temp global config, fake embedder."""

from __future__ import annotations

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Run every command from tmp_path with no real global config or env overrides."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("dealroom.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    for var in (
        "DEALROOM_EMBEDDING_MODEL",
        "DEALROOM_CHAT_MODEL",
        "DEALROOM_UPLOAD_DIR",
        "DEALROOM_DB",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    # Wide rich output so table cells and status lines never wrap.
    monkeypatch.setenv("COLUMNS", "200")
    return tmp_path


@pytest.fixture
def fake_embedder(embedder):
    """Make every command embed with the hashed bag-of-words test embedder."""
    with patch("dealroom.cli.context.LiteLLMEmbedder", return_value=embedder):
        yield embedder
