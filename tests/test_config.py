"""Tests for configuration objects."""

import pytest

from huddle.config import ServerConfig
from huddle.session import SessionConfig
from huddle.sql import StoreConfig


class TestServerConfig:
    def test_defaults(self) -> None:
        config = ServerConfig.from_env({})
        assert config == ServerConfig()
        assert config.path == "/realtime"

    def test_reads_environment(self) -> None:
        config = ServerConfig.from_env(
            {
                "HUDDLE_HOST": "0.0.0.0",
                "HUDDLE_PORT": "9001",
                "HUDDLE_DATABASE": ":memory:",
                "HUDDLE_LOG_LEVEL": "debug",
                "HUDDLE_WS_PATH": "ws",
            }
        )
        assert config.host == "0.0.0.0"
        assert config.port == 9001
        assert config.database == ":memory:"
        assert config.log_level == "DEBUG"
        assert config.path == "/ws"

    def test_invalid_port(self) -> None:
        with pytest.raises(ValueError, match="HUDDLE_PORT"):
            ServerConfig.from_env({"HUDDLE_PORT": "eighty"})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HUDDLE_PORT", "8123")
        assert ServerConfig.from_env().port == 8123


class TestComponentDefaults:
    def test_session_defaults(self) -> None:
        config = SessionConfig()
        assert config.room_prefix == "project:"
        assert config.refuse_code == 1008
        assert config.ack_cache_size > 0

    def test_store_defaults(self) -> None:
        config = StoreConfig()
        assert config.table_prefix == "huddle_"
        assert config.auto_create_tables
