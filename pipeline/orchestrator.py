"""
Bounded fan-out over all ingestion targets of one batch.

    1. Load the worklist once (failure here aborts the batch)
    2. Submit one unit of work per target to a thread pool
    3. Each unit waits for a limiter slot, then runs
       fetch → normalize → upsert with its own DB session
    4. Collect results in completion order

Per-target failures are turned into "<station> : <message>" strings inside
the unit. A unit that dies with anything else is recorded as "Task failed".
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Optional

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from pipeline.config import CONCURRENCY_LIMIT, Settings
from pipeline.errors import PerTargetError, StorageError, WorklistUnavailableError
from pipeline.ingestion.airkorea_connector import fetch_reading
from pipeline.ingestion.models import (
    BatchOutcome,
    IngestionSuccess,
    Target,
    UnitResult,
)
from pipeline.ingestion.normalizer import utcnow, normalize_reading
from pipeline.storage.repository import list_targets, upsert_reading

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """
    Counting semaphore used as a context manager.

    Also records how many slots are held right now and the highest
    number held at once, so the bound can be checked after a batch.
    """

    def __init__(self, capacity: int = CONCURRENCY_LIMIT):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._slots = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self.in_use = 0
        self.peak = 0

    def __enter__(self) -> "ConcurrencyLimiter":
        self._slots.acquire()
        with self._lock:
            self.in_use += 1
            self.peak = max(self.peak, self.in_use)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        with self._lock:
            self.in_use -= 1
        self._slots.release()
        return False


def load_worklist(engine: Engine):
    """Read all targets. Any storage failure is fatal for the batch."""
    try:
        with Session(engine) as db:
            return list_targets(db)
    except StorageError as e:
        raise WorklistUnavailableError(f"Ingestion targets unavailable: {e}") from e


def _run_unit(
    target: Target,
    engine: Engine,
    client: httpx.Client,
    settings: Settings,
    limiter: ConcurrencyLimiter,
    clock: Callable[[], datetime],
) -> UnitResult:
    result = UnitResult()
    with limiter:
        try:
            raw = fetch_reading(
                target,
                settings.api_key,
                client,
                base_url=settings.base_url,
                timeout=settings.request_timeout,
            )
            reading = normalize_reading(
                target.target_id,
                raw,
                strict_timestamps=settings.strict_timestamps,
                clock=clock,
            )
            with Session(engine) as db:
                row = upsert_reading(
                    db,
                    reading.target_id,
                    reading.pm10,
                    reading.pm25,
                    reading.recorded_at_utc,
                )
        except PerTargetError as e:
            message = f"{target.external_name} : {e}"
            logger.error("%s", message)
            result.errors.append(message)
            return result

    result.success = IngestionSuccess(target=target, row=row)
    logger.info(
        "Stored reading for %s (sub_region=%d): PM10=%s PM2.5=%s at %s",
        target.external_name, target.target_id, row.pm10, row.pm25,
        row.recorded_at.isoformat(),
    )
    return result


def run_batch(
    engine: Engine,
    settings: Settings,
    client: Optional[httpx.Client] = None,
    limiter: Optional[ConcurrencyLimiter] = None,
    max_workers: Optional[int] = None,
    clock: Callable[[], datetime] = utcnow,
) -> BatchOutcome:
    """
    Ingest the latest PM reading for every target.

    Args:
        engine: SQLAlchemy engine; each unit opens its own session on it.
        settings: API key, endpoint, timeout, limiter capacity.
        client: httpx client to reuse; one is created (and closed) if omitted.
        limiter: Pre-built limiter, e.g. to inspect its peak afterwards.
        max_workers: Pool threads; defaults to the limiter capacity.
        clock: Current-time source for the timestamp fallback.

    Returns:
        BatchOutcome with successes and errors in completion order.

    Raises:
        WorklistUnavailableError: targets could not be loaded.
    """
    started = time.perf_counter()
    targets = load_worklist(engine)
    limiter = limiter or ConcurrencyLimiter(settings.concurrency)
    outcome = BatchOutcome()

    logger.info("── Ingestion batch starting — %d targets ──", len(targets))

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=settings.request_timeout)

    try:
        if targets:
            workers = max_workers or limiter.capacity
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pm-ingest") as pool:
                futures = {
                    pool.submit(_run_unit, target, engine, client, settings, limiter, clock): target
                    for target in targets
                }
                for future in as_completed(futures):
                    try:
                        unit_result = future.result()
                    except Exception as exc:
                        logger.error("Task failed: %r", exc, exc_info=exc)
                        outcome.errors.append(f"Task failed: {exc!r}")
                        continue
                    outcome.merge(unit_result)
    finally:
        if owns_client:
            client.close()

    outcome.elapsed = time.perf_counter() - started
    logger.info(
        "── Ingestion batch complete — %d stored, %d errors, %.3fs ──",
        len(outcome.successes), len(outcome.errors), outcome.elapsed,
    )
    return outcome
