"""
Runtime configuration for the ingestion pipeline.

Values come from the environment (a local .env file is loaded first).
DB_CONN_URL and AIR_QUALITY_API_KEY are mandatory; everything else has a
default.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from pipeline.errors import ConfigurationError

logger = logging.getLogger(__name__)

AIRKOREA_BASE_URL = (
    "http://apis.data.go.kr/B552584/ArpltnInforInqireSvc/getMsrstnAcctoRltmMesureDnsty"
)
REQUEST_TIMEOUT = 10.0  # seconds
CONCURRENCY_LIMIT = 10
POLL_INTERVAL = 3600  # seconds

LOG_FORMAT = "%(asctime)s [{tag}] %(levelname)s %(name)s — %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_conn_url: str
    api_key: str
    base_url: str = AIRKOREA_BASE_URL
    request_timeout: float = REQUEST_TIMEOUT
    concurrency: int = CONCURRENCY_LIMIT
    strict_timestamps: bool = False
    poll_interval: int = POLL_INTERVAL


def _read_required(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise ConfigurationError(f"{name} environment variable is missing")
    return value


def _read_str(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    return value or default


def _read_positive(name: str, default, cast=int):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        parsed = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return parsed if parsed > 0 else default


def _read_flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def normalize_db_url(raw: str) -> str:
    """
    Validate a database URL and pin bare Postgres URLs to psycopg2, the
    driver this project installs.

    Raises:
        ConfigurationError: the URL cannot be parsed.
    """
    try:
        url = make_url(raw.strip())
    except (ArgumentError, ValueError) as e:
        raise ConfigurationError(f"DB_CONN_URL is not a valid database URL: {e}") from e
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+psycopg2")
    return url.render_as_string(hide_password=False)


def configure_logging(tag: str = "PIPELINE") -> None:
    """Root logging for an entry point; the level comes from LOG_LEVEL."""
    load_dotenv()
    level = _read_str("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT.format(tag=tag),
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stdout,
    )


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment.

    Raises:
        ConfigurationError: DB_CONN_URL or AIR_QUALITY_API_KEY is unset/blank,
            or DB_CONN_URL is not a usable database URL.
    """
    load_dotenv(dotenv_path)

    return Settings(
        db_conn_url=normalize_db_url(_read_required("DB_CONN_URL")),
        api_key=_read_required("AIR_QUALITY_API_KEY"),
        base_url=_read_str("AIRKOREA_BASE_URL", AIRKOREA_BASE_URL),
        request_timeout=_read_positive("AIRKOREA_REQUEST_TIMEOUT", REQUEST_TIMEOUT, float),
        concurrency=_read_positive("INGEST_CONCURRENCY", CONCURRENCY_LIMIT),
        strict_timestamps=_read_flag("INGEST_STRICT_TIMESTAMPS"),
        poll_interval=_read_positive("POLL_INTERVAL_SECONDS", POLL_INTERVAL),
    )
