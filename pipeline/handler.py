"""
Invocation entry points: one call runs one batch and returns the reply dict.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from pipeline.config import Settings, configure_logging, load_settings, normalize_db_url
from pipeline.errors import ConfigurationError, FatalSetupError
from pipeline.orchestrator import run_batch
from pipeline.response import build_failure_response, build_success_response

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    """
    Connection pool sized so every concurrent unit can hold a session.

    Raises:
        ConfigurationError: the URL is malformed or names a missing driver.
    """
    url = normalize_db_url(settings.db_conn_url)
    try:
        return create_engine(
            url,
            pool_pre_ping=True,
            pool_size=settings.concurrency,
            max_overflow=2,
            pool_recycle=300,
        )
    except (ArgumentError, TypeError) as e:
        raise ConfigurationError(f"Cannot create database engine: {e}") from e


def ingest_external_pm(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """
    Run one ingestion batch.

    Settings and engine are built from the environment when not supplied;
    an engine built here is disposed before returning.
    """
    started = time.perf_counter()
    try:
        settings = settings or load_settings()
    except FatalSetupError as e:
        logger.error("Ingestion aborted: %s", e)
        return build_failure_response(e, time.perf_counter() - started)

    owns_engine = engine is None
    try:
        if owns_engine:
            engine = build_engine(settings)
        outcome = run_batch(engine, settings, client=client)
    except FatalSetupError as e:
        logger.error("Ingestion aborted: %s", e)
        return build_failure_response(e, time.perf_counter() - started)
    finally:
        if owns_engine and engine is not None:
            engine.dispose()

    return build_success_response(outcome)


def lambda_handler(event, context=None) -> Dict[str, Any]:
    """Scheduled-function entry point; the event payload is not used."""
    configure_logging()
    logger.info("Received event: %r", event)
    try:
        return ingest_external_pm()
    except Exception as e:
        logger.exception("Handler failed: %s", e)
        return {"statusCode": 500, "body": "Internal Server Error"}
