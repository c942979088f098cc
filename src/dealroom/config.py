"""Dealroom configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (DEALROOM_EMBEDDING_MODEL, DEALROOM_CHAT_MODEL,
                             DEALROOM_UPLOAD_DIR, DEALROOM_DB)
  3. Per-project dealroom.yaml
  4. Global ~/.dealroom/config.yaml  (defaults only, no API keys)
  5. Hardcoded defaults

API keys live in provider environment variables only.
All YAML reads use yaml.safe_load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dealroom.chat.pricing import DEFAULT_CHAT_COST_MODEL, PLATFORM_RATES
from dealroom.ingest.chunker import DEFAULT_MAX_CHUNK_CHARS
from dealroom.rag.retriever import DEFAULT_TOP_K

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".dealroom"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "dealroom.yaml"

# Key names that look like credentials. Does not match max_tokens or top_k.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "chunking", "retrieval", "chat", "storage", "ingestion", "pricing"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding provider (dealroom.yaml: embedding:).

    Attributes:
        model: LiteLLM embedding model string.
        dimensions: Vector length the model returns; other lengths are rejected.
        num_retries: LiteLLM transport retries per embedding call.
    """

    model: str = "openai/text-embedding-3-large"
    dimensions: int = 3072
    num_retries: int = 0


@dataclass
class ChunkingCfg:
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS


@dataclass
class RetrievalCfg:
    top_k: int = DEFAULT_TOP_K


@dataclass
class ChatCfg:
    """Investor chat defaults (dealroom.yaml: chat:)."""

    model: str = "gpt-4o"
    history_limit: int = 20


@dataclass
class StorageCfg:
    db_path: str = ".dealroom.db"
    upload_dir: str = "uploads"


@dataclass
class IngestionCfg:
    workers: int = 2


@dataclass
class PricingCfg:
    """Platform rates in USD per 1K tokens (dealroom.yaml: pricing:)."""

    rates: dict[str, float] = field(default_factory=lambda: dict(PLATFORM_RATES))
    chat_cost_model: str = DEFAULT_CHAT_COST_MODEL


@dataclass
class DealroomConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    chat: ChatCfg = field(default_factory=ChatCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    ingestion: IngestionCfg = field(default_factory=IngestionCfg)
    pricing: PricingCfg = field(default_factory=PricingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: DealroomConfig) -> None:
    checks = [
        (cfg.embedding.dimensions >= 1, "embedding.dimensions must be >= 1"),
        (cfg.embedding.num_retries >= 0, "embedding.num_retries must be >= 0"),
        (cfg.chunking.max_chunk_chars >= 1, "chunking.max_chunk_chars must be >= 1"),
        (cfg.retrieval.top_k >= 1, "retrieval.top_k must be >= 1"),
        (cfg.chat.history_limit >= 0, "chat.history_limit must be >= 0"),
        (cfg.ingestion.workers >= 1, "ingestion.workers must be >= 1"),
        (
            cfg.pricing.chat_cost_model in cfg.pricing.rates,
            f"pricing.chat_cost_model '{cfg.pricing.chat_cost_model}' "
            f"has no entry in pricing.rates",
        ),
    ]
    for ok, message in checks:
        if not ok:
            raise ConfigError(message)


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DealroomConfig:
    """Build a *DealroomConfig* from a merged raw YAML dict."""
    cfg = DealroomConfig()

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
        )

    if "chunking" in data:
        cfg.chunking = ChunkingCfg(
            max_chunk_chars=int(
                data["chunking"].get("max_chunk_chars", cfg.chunking.max_chunk_chars)
            ),
        )

    if "retrieval" in data:
        cfg.retrieval = RetrievalCfg(
            top_k=int(data["retrieval"].get("top_k", cfg.retrieval.top_k)),
        )

    if "chat" in data:
        c = data["chat"]
        cfg.chat = ChatCfg(
            model=str(c.get("model", cfg.chat.model)),
            history_limit=int(c.get("history_limit", cfg.chat.history_limit)),
        )

    if "storage" in data:
        s = data["storage"]
        cfg.storage = StorageCfg(
            db_path=str(s.get("db_path", cfg.storage.db_path)),
            upload_dir=str(s.get("upload_dir", cfg.storage.upload_dir)),
        )

    if "ingestion" in data:
        cfg.ingestion = IngestionCfg(
            workers=int(data["ingestion"].get("workers", cfg.ingestion.workers)),
        )

    if "pricing" in data:
        p = data["pricing"]
        rates = dict(cfg.pricing.rates)
        rates.update({str(k): float(v) for k, v in (p.get("rates") or {}).items()})
        cfg.pricing = PricingCfg(
            rates=rates,
            chat_cost_model=str(p.get("chat_cost_model", cfg.pricing.chat_cost_model)),
        )

    return cfg


def _apply_env_overrides(cfg: DealroomConfig) -> DealroomConfig:
    """Apply DEALROOM_* environment variable overrides."""
    if model := os.environ.get("DEALROOM_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("DEALROOM_CHAT_MODEL"):
        cfg.chat.model = model
    if upload_dir := os.environ.get("DEALROOM_UPLOAD_DIR"):
        cfg.storage.upload_dir = upload_dir
    if db_path := os.environ.get("DEALROOM_DB"):
        cfg.storage.db_path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DealroomConfig:
    """Load and return a merged *DealroomConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *dealroom.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.dealroom/config.yaml`` with defaults if it does not exist.

    The directory is created with mode 0o700 and the file with 0o600.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Dealroom global configuration: defaults only.\n"
            "# NEVER store API keys here; use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "#   export ANTHROPIC_API_KEY=sk-ant-...\n"
            "#   export GEMINI_API_KEY=...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-large\n"
            "  dimensions: 3072\n"
            "\n"
            "chat:\n"
            "  model: gpt-4o\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
