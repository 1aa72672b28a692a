"""
Unit tests for configuration and logging setup.
"""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from pulsechain.config import Settings, get_package_version
from pulsechain.logs import configure_logging, get_logger


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test away from any real .env or ADDR variables."""
    monkeypatch.chdir(tmp_path)
    for name in ("ADDR", "HTTP_ADDR", "HOST", "BROADCAST_INTERVAL",
                 "FEED_SIZE", "LOG_LEVEL", "GENESIS_TIMESTAMP"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Defaults are applied without env or .env."""
        settings = Settings()
        assert settings.addr == 9000
        assert settings.http_addr is None
        assert settings.broadcast_interval == 30.0
        assert settings.feed_size == 8

    def test_env_addr(self, monkeypatch):
        """ADDR is read from the environment."""
        monkeypatch.setenv("ADDR", "9100")
        assert Settings().addr == 9100

    def test_dotenv_file(self, isolated_env):
        """Values are loaded from .env in the working directory."""
        (isolated_env / ".env").write_text("ADDR=9200\nHTTP_ADDR=8081\n")
        settings = Settings()
        assert settings.addr == 9200
        assert settings.http_addr == 8081

    def test_env_overrides_dotenv(self, isolated_env, monkeypatch):
        """Environment beats .env."""
        (isolated_env / ".env").write_text("ADDR=9200\n")
        monkeypatch.setenv("ADDR", "9300")
        assert Settings().addr == 9300

    def test_init_overrides_env(self, monkeypatch):
        """Explicit arguments beat the environment."""
        monkeypatch.setenv("ADDR", "9300")
        assert Settings(addr=0).addr == 0

    @pytest.mark.parametrize("field, value", [
        ("addr", 70000), ("broadcast_interval", 0), ("feed_size", 0),
    ])
    def test_invalid_values(self, field, value):
        """Out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_version_string(self):
        """A version string is always available."""
        assert get_package_version()


class TestLogging:
    """Tests for the logger factory."""

    def test_module_loggers_under_package(self):
        """Module loggers are children of the package logger."""
        assert get_logger("pulsechain.blockchain.store").name == "pulsechain.blockchain.store"
        assert get_logger("demo").name == "pulsechain.demo"
        assert get_logger().name == "pulsechain"

    def test_configure_logging_once(self):
        """Repeated configuration does not stack handlers."""
        logger = configure_logging("debug")
        count = len(logger.handlers)
        configure_logging("info")
        assert len(logger.handlers) == count
        assert logger.level == logging.INFO

    def test_core_logs_without_integration_layer(self):
        """The blockchain package gets its logger without importing integration."""
        import pulsechain.blockchain as core

        for path in Path(core.__file__).parent.glob("*.py"):
            assert "integration" not in path.read_text(encoding="utf-8"), path.name
