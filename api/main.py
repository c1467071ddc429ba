"""
External PM API: FastAPI Application Entry Point
"""
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from alembic.config import Config
from alembic import command as alembic_command

from fastapi import FastAPI

from api.database import DATABASE_URL, SessionLocal
from api.models.db_models import SubRegion
from api.routes import ingest, stations
from pipeline.config import configure_logging

configure_logging("API")
logger = logging.getLogger(__name__)

STATIONS_CONFIG = Path(__file__).parent.parent / "config" / "stations.json"


def seed_sub_regions() -> None:
    """Insert sub regions from config/stations.json that are not in the DB yet."""
    if not STATIONS_CONFIG.exists():
        logger.warning("stations.json not found at %s, skipping seed", STATIONS_CONFIG)
        return

    db = SessionLocal()
    try:
        seeded = 0
        for s in json.loads(STATIONS_CONFIG.read_text(encoding="utf-8")):
            exists = db.get(SubRegion, s["sub_region_id"])
            if not exists:
                db.add(SubRegion(
                    sub_region_id=s["sub_region_id"],
                    name=s.get("name"),
                    pm_station=s["pm_station"],
                ))
                seeded += 1
        db.commit()
        if seeded:
            logger.info("Seeded %d sub regions", seeded)
        else:
            logger.info("All sub regions already exist, skipping seed")
    except Exception as e:
        db.rollback()
        logger.error("Sub region seed failed: %s", e)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        alembic_cfg = Config(str(Path(__file__).parent.parent / "alembic.ini"))
        alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))
        alembic_command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations applied successfully")
    except Exception as e:
        logger.error("Migration failed: %s", e)
        raise

    seed_sub_regions()
    yield
    logger.info("External PM API shutting down")


app = FastAPI(
    title="External PM API",
    description="AirKorea PM10/PM2.5 ingestion",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(ingest.router,   prefix="/api/ingest",   tags=["Ingest"])
app.include_router(stations.router, prefix="/api/stations", tags=["Stations"])


@app.get("/api/health", tags=["Health"])
def health():
    return {"status": "ok", "service": "external-pm-api", "version": "1.0.0"}
