"""
External PM ingestion: command line entry point.

    python -m pipeline.main              run one batch, print the reply
    python -m pipeline.main --schedule   run a batch every POLL_INTERVAL_SECONDS

Schedule mode uses an APScheduler background thread; the main thread just
waits for SIGINT/SIGTERM. A batch never overlaps the previous one.
"""

import argparse
import json
import logging
import signal
import sys
import time
from datetime import datetime, timezone

from pipeline.config import configure_logging

configure_logging("PIPELINE")
logger = logging.getLogger("pipeline.main")

# ── Graceful shutdown flag ─────────────────────────────────────────────────────
_running = True


def _shutdown(sig, frame):
    global _running
    logger.info("Shutdown signal (%s) — stopping scheduler.", sig)
    _running = False


def _poll_job(settings, engine) -> None:
    """One scheduled batch. Fatal setup errors are logged, not raised."""
    from pipeline.handler import ingest_external_pm

    reply = ingest_external_pm(settings=settings, engine=engine)
    meta = reply["body"]["meta"]
    logger.info(
        "Batch finished: status=%s %s errors=%d in %s",
        reply["statusCode"], meta["message"], len(meta["errorList"]), meta["timeTaken"],
    )


def run_once() -> int:
    from pipeline.handler import ingest_external_pm

    reply = ingest_external_pm()
    print(json.dumps(reply, ensure_ascii=False, indent=2))
    return 0 if reply["statusCode"] == 200 else 1


def run_scheduled() -> int:
    from apscheduler.schedulers.background import BackgroundScheduler
    from pipeline.config import load_settings
    from pipeline.errors import ConfigurationError
    from pipeline.handler import build_engine

    try:
        settings = load_settings()
        # One pool for the lifetime of the process
        engine = build_engine(settings)
    except ConfigurationError as e:
        logger.error("Cannot start scheduler: %s", e)
        return 1

    signal.signal(signal.SIGINT,  _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=_poll_job,
        args=[settings, engine],
        trigger="interval",
        seconds=settings.poll_interval,
        next_run_time=datetime.now(timezone.utc),  # run immediately on start
        id="external_pm_poll",
        name="External PM Poll",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Scheduler started — polling every %ds", settings.poll_interval)

    try:
        while _running:
            time.sleep(1)
    finally:
        logger.info("Stopping scheduler…")
        scheduler.shutdown(wait=False)
        engine.dispose()
        logger.info("Pipeline stopped cleanly.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ingest AirKorea PM readings")
    parser.add_argument(
        "--schedule", action="store_true",
        help="keep running and ingest every POLL_INTERVAL_SECONDS",
    )
    args = parser.parse_args(argv)
    return run_scheduled() if args.schedule else run_once()


if __name__ == "__main__":
    sys.exit(main())
