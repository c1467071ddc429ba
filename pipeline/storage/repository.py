"""
SQL contracts used by the pipeline (raw SQL, no ORM in worker threads).

Both statements run on PostgreSQL and SQLite.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Float, Integer, String, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pipeline.errors import StorageError
from pipeline.ingestion.models import PersistedReading, Target

logger = logging.getLogger(__name__)

LIST_TARGETS_QUERY = text("""
    SELECT sub_region_id, pm_station
    FROM sub_region
    ORDER BY sub_region_id
""").columns(sub_region_id=Integer, pm_station=String)

UPSERT_EXTERNAL_PM_QUERY = (
    text("""
        INSERT INTO external_pm (sub_region_id, pm10, pm25, recorded_at, updated_at)
        VALUES (:sub_region_id, :pm10, :pm25, :recorded_at, CURRENT_TIMESTAMP)
        ON CONFLICT (sub_region_id)
        DO UPDATE SET
            pm10        = excluded.pm10,
            pm25        = excluded.pm25,
            recorded_at = excluded.recorded_at,
            updated_at  = CURRENT_TIMESTAMP
        RETURNING sub_region_id, pm10, pm25, recorded_at, updated_at
    """)
    .bindparams(
        bindparam("sub_region_id", type_=Integer),
        bindparam("pm10", type_=Float),
        bindparam("pm25", type_=Float),
        bindparam("recorded_at", type_=DateTime(timezone=True)),
    )
    .columns(
        sub_region_id=Integer,
        pm10=Float,
        pm25=Float,
        recorded_at=DateTime(timezone=True),
        updated_at=DateTime(timezone=True),
    )
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps coming back from the driver."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def list_targets(db: Session) -> List[Target]:
    """
    Return every sub region together with its AirKorea station name.

    Raises:
        StorageError: the query could not be executed.
    """
    try:
        rows = db.execute(LIST_TARGETS_QUERY).fetchall()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to load ingestion targets: %s", e)
        raise StorageError(f"Target query failed: {e}") from e

    return [Target(target_id=row.sub_region_id, external_name=row.pm_station) for row in rows]


def upsert_reading(
    db: Session,
    target_id: int,
    pm10: Optional[float],
    pm25: Optional[float],
    recorded_at: datetime,
) -> PersistedReading:
    """
    Insert or replace the latest reading for a sub region and commit.

    Returns:
        The stored row, including the server-assigned updated_at.

    Raises:
        StorageError: the statement or the commit failed.
    """
    try:
        row = db.execute(UPSERT_EXTERNAL_PM_QUERY, {
            "sub_region_id": target_id,
            "pm10":          pm10,
            "pm25":          pm25,
            "recorded_at":   recorded_at,
        }).one()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Database query failed: {e}") from e

    return PersistedReading(
        target_id=row.sub_region_id,
        pm10=row.pm10,
        pm25=row.pm25,
        recorded_at=as_utc(row.recorded_at),
        updated_at=as_utc(row.updated_at),
    )
