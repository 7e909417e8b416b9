# memory_janitor/config.py

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ValidationError

from .errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_PENDING_FILE = str(PROJECT_ROOT / "data" / "pending-dedup.json")

# Nightly cleanup deletes without asking, so it uses a strict threshold.
NIGHTLY_SIMILARITY_THRESHOLD = 0.92
# Weekly review asks the user first, so it can afford a looser one.
REVIEW_SIMILARITY_THRESHOLD = 0.85
REVIEW_MAX_DELETES = 100


class CleanupConfig(BaseModel):
    dry_run: bool = False
    max_deletes: int = 50
    similarity_threshold: float = NIGHTLY_SIMILARITY_THRESHOLD
    min_content_length: int = 10

    sqlite_path: str
    qdrant_host: str = "localhost"
    qdrant_port: int = 6333
    qdrant_collection: str = "memory"
    openai_api_key: Optional[str] = None
    embed_model: str = "text-embedding-3-small"

    search_timeout_seconds: float = 10.0
    search_top_k: int = 10
    max_concurrent_groups: int = 4
    max_archives: int = 100

    pending_path: str = DEFAULT_PENDING_FILE
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[int] = None
    telegram_topic_id: Optional[int] = None


# env var -> config field
_ENV_FIELDS = {
    "MEMORY_SQLITE_PATH": "sqlite_path",
    "CLEANUP_MAX_DELETES": "max_deletes",
    "CLEANUP_SIMILARITY_THRESHOLD": "similarity_threshold",
    "CLEANUP_MIN_CONTENT_LENGTH": "min_content_length",
    "QDRANT_HOST": "qdrant_host",
    "QDRANT_PORT": "qdrant_port",
    "QDRANT_COLLECTION": "qdrant_collection",
    "OPENAI_API_KEY": "openai_api_key",
    "EMBED_MODEL": "embed_model",
    "SEARCH_TIMEOUT_SECONDS": "search_timeout_seconds",
    "MEMORY_PENDING_PATH": "pending_path",
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "TELEGRAM_CHAT_ID": "telegram_chat_id",
    "TELEGRAM_TOPIC_ID": "telegram_topic_id",
}

_REQUIRED = ("MEMORY_SQLITE_PATH",)


def read_env(env_file: str | Path | None = None) -> dict[str, str]:
    """Process environment layered over the project's .env file (environment wins)."""
    path = Path(env_file) if env_file else PROJECT_ROOT / ".env"
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    values.update(os.environ)
    return values


def load_config(
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> CleanupConfig:
    """
    Build a CleanupConfig from environment variables.

    Raises ConfigError when required connection settings are missing or a
    value cannot be parsed. Nothing is opened or written here.
    """
    if env is None:
        env = read_env()

    missing = [name for name in _REQUIRED if not (env.get(name) or "").strip()]
    if missing:
        raise ConfigError(f"Missing required env vars: {', '.join(missing)} must be set")

    data: dict[str, Any] = {"dry_run": (env.get("DRY_RUN") or "").strip().lower() == "true"}
    for name, field in _ENV_FIELDS.items():
        value = (env.get(name) or "").strip()
        if value:
            data[field] = value
    if overrides:
        data.update(overrides)

    try:
        return CleanupConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def config_from_dict(config: dict[str, Any] | None = None) -> CleanupConfig:
    config = config or {}
    try:
        return CleanupConfig(**config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
