import pytest

from memory_janitor.config import (
    DEFAULT_PENDING_FILE,
    CleanupConfig,
    config_from_dict,
    load_config,
    read_env,
)
from memory_janitor.errors import ConfigError


def test_missing_store_path_is_a_config_error():
    with pytest.raises(ConfigError, match="MEMORY_SQLITE_PATH"):
        load_config(env={"DRY_RUN": "true"})


def test_blank_store_path_is_a_config_error():
    with pytest.raises(ConfigError):
        load_config(env={"MEMORY_SQLITE_PATH": "   "})


def test_defaults():
    cfg = load_config(env={"MEMORY_SQLITE_PATH": "/tmp/m.db"})
    assert cfg.dry_run is False
    assert cfg.max_deletes == 50
    assert cfg.similarity_threshold == 0.92
    assert cfg.min_content_length == 10
    assert cfg.search_timeout_seconds == 10.0
    assert cfg.pending_path == DEFAULT_PENDING_FILE


def test_env_values_are_parsed():
    cfg = load_config(
        env={
            "MEMORY_SQLITE_PATH": "/tmp/m.db",
            "DRY_RUN": "true",
            "CLEANUP_MAX_DELETES": "5",
            "CLEANUP_SIMILARITY_THRESHOLD": "0.9",
            "CLEANUP_MIN_CONTENT_LENGTH": "12",
            "TELEGRAM_CHAT_ID": "-100123",
            "QDRANT_PORT": "7000",
        }
    )
    assert cfg.dry_run is True
    assert (cfg.max_deletes, cfg.similarity_threshold, cfg.min_content_length) == (5, 0.9, 12)
    assert cfg.telegram_chat_id == -100123
    assert cfg.qdrant_port == 7000


def test_dry_run_only_for_literal_true():
    assert load_config(env={"MEMORY_SQLITE_PATH": "m.db", "DRY_RUN": "yes"}).dry_run is False


def test_malformed_number():
    with pytest.raises(ConfigError):
        load_config(env={"MEMORY_SQLITE_PATH": "m.db", "CLEANUP_MAX_DELETES": "lots"})


def test_overrides_win():
    cfg = load_config(env={"MEMORY_SQLITE_PATH": "m.db"}, overrides={"max_deletes": 100})
    assert cfg.max_deletes == 100


def test_config_from_dict():
    assert isinstance(config_from_dict({"sqlite_path": "m.db"}), CleanupConfig)
    with pytest.raises(ConfigError):
        config_from_dict({})


def test_read_env_prefers_process_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("MEMORY_SQLITE_PATH=/from/file.db\nCLEANUP_MAX_DELETES=7\n")
    monkeypatch.setenv("MEMORY_SQLITE_PATH", "/from/env.db")
    values = read_env(env_file)
    assert values["MEMORY_SQLITE_PATH"] == "/from/env.db"
    assert values["CLEANUP_MAX_DELETES"] == "7"
