"""Tests for kiri.config."""

import pytest

from kiri.config import AppConfig
from kiri.errors import ConfigurationError


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.port == 8000
        assert config.auth_secret == ""
        assert config.cors_allow_origins == ("*",)
        assert config.cors_max_age == 86400

    def test_frozen(self) -> None:
        config = AppConfig()
        with pytest.raises(AttributeError):
            config.port = 1  # type: ignore[misc]


class TestFromEnv:
    def test_reads_kiri_variables(self) -> None:
        config = AppConfig.from_env(
            {
                "KIRI_HOST": "0.0.0.0",
                "KIRI_PORT": "9000",
                "KIRI_DEBUG": "true",
                "KIRI_AUTH_SECRET": "s3cr3t",
                "KIRI_SSE_INTERVAL": "0.5",
            }
        )
        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.debug is True
        assert config.auth_secret == "s3cr3t"
        assert config.sse_tick_interval == 0.5

    def test_static_dir_depends_on_deployment(self) -> None:
        assert AppConfig.from_env({}).static_dir == "../dist"
        assert AppConfig.from_env({"DEPLOYMENT_ID": "abc"}).static_dir == "./dist"
        assert AppConfig.from_env({"KIRI_STATIC_DIR": "/srv/web"}).static_dir == "/srv/web"

    def test_overrides_win_and_none_is_ignored(self) -> None:
        config = AppConfig.from_env({"KIRI_PORT": "9000"}, port=7000, host=None)
        assert config.port == 7000
        assert config.host == "127.0.0.1"

    def test_bad_number(self) -> None:
        with pytest.raises(ConfigurationError, match="KIRI_PORT must be a number"):
            AppConfig.from_env({"KIRI_PORT": "eighty"})
