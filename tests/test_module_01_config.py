"""
Tests for Module 01: Configuration loading.
"""

import pytest
from unittest.mock import patch

from pipeline.config import (
    AIRKOREA_BASE_URL,
    CONCURRENCY_LIMIT,
    REQUEST_TIMEOUT,
    configure_logging,
    load_settings,
    normalize_db_url,
)
from pipeline.errors import ConfigurationError, FatalSetupError

REQUIRED = {
    "DB_CONN_URL": "postgresql://pm:pm@db:5432/pm_db",
    "AIR_QUALITY_API_KEY": "secret",
}


def _load(env):
    with patch.dict("os.environ", env, clear=True):
        with patch("pipeline.config.load_dotenv"):
            return load_settings()


class TestLoadSettings:
    def test_defaults(self):
        s = _load(REQUIRED)
        assert s.db_conn_url == "postgresql+psycopg2://pm:pm@db:5432/pm_db"
        assert s.api_key == "secret"
        assert s.base_url == AIRKOREA_BASE_URL
        assert s.request_timeout == REQUEST_TIMEOUT
        assert s.concurrency == CONCURRENCY_LIMIT == 10
        assert s.strict_timestamps is False

    def test_missing_db_url_is_fatal(self):
        with pytest.raises(ConfigurationError, match="DB_CONN_URL"):
            _load({"AIR_QUALITY_API_KEY": "secret"})

    def test_blank_api_key_is_fatal(self):
        with pytest.raises(FatalSetupError, match="AIR_QUALITY_API_KEY"):
            _load({**REQUIRED, "AIR_QUALITY_API_KEY": "   "})

    @pytest.mark.parametrize("raw", ["postgres://u:p@h/db", "postgresql://u:p@h/db"])
    def test_bare_postgres_url_pinned_to_psycopg2(self, raw):
        s = _load({**REQUIRED, "DB_CONN_URL": raw})
        assert s.db_conn_url == "postgresql+psycopg2://u:p@h/db"

    def test_explicit_driver_kept(self):
        s = _load({**REQUIRED, "DB_CONN_URL": "sqlite:////tmp/pm.db"})
        assert s.db_conn_url == "sqlite:////tmp/pm.db"

    def test_unparsable_db_url_is_fatal(self):
        with pytest.raises(ConfigurationError, match="DB_CONN_URL is not a valid database URL"):
            _load({**REQUIRED, "DB_CONN_URL": "not a url"})

    def test_overrides(self):
        s = _load({
            **REQUIRED,
            "AIRKOREA_REQUEST_TIMEOUT": "2.5",
            "INGEST_CONCURRENCY": "4",
            "INGEST_STRICT_TIMESTAMPS": "true",
        })
        assert s.request_timeout == 2.5
        assert s.concurrency == 4
        assert s.strict_timestamps is True

    def test_invalid_numbers_fall_back(self):
        s = _load({**REQUIRED, "INGEST_CONCURRENCY": "lots", "AIRKOREA_REQUEST_TIMEOUT": "-1"})
        assert s.concurrency == CONCURRENCY_LIMIT
        assert s.request_timeout == REQUEST_TIMEOUT


class TestNormalizeDbUrl:
    def test_password_survives_rendering(self):
        assert normalize_db_url("postgresql://u:s3cret@h:5432/db") == (
            "postgresql+psycopg2://u:s3cret@h:5432/db"
        )

    def test_surrounding_whitespace_ignored(self):
        assert normalize_db_url("  sqlite://  ") == "sqlite://"

    def test_garbage_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            normalize_db_url("://nope")


class TestConfigureLogging:
    def _configure(self, env, tag="PIPELINE"):
        with patch.dict("os.environ", env, clear=True), \
                patch("pipeline.config.load_dotenv"), \
                patch("pipeline.config.logging.basicConfig") as basic:
            configure_logging(tag)
        return basic.call_args.kwargs

    def test_level_from_env(self):
        kwargs = self._configure({"LOG_LEVEL": "debug"})
        assert kwargs["level"] == "DEBUG"
        assert "[PIPELINE]" in kwargs["format"]

    def test_default_level_and_tag(self):
        kwargs = self._configure({}, tag="API")
        assert kwargs["level"] == "INFO"
        assert "[API]" in kwargs["format"]

    def test_unknown_level_falls_back_to_info(self):
        assert self._configure({"LOG_LEVEL": "chatty"})["level"] == "INFO"
