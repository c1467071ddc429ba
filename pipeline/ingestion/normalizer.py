"""
Reading normalizer.

Turns the newest AirKorea item into a NormalizedReading:
- "-" and other non-numeric values become None
- dataTime ("YYYY-MM-DD HH:MM", KST) becomes a UTC hour bucket
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pipeline.errors import InvalidTimestampError, NoDataError
from pipeline.ingestion.models import NormalizedReading, RawReading

logger = logging.getLogger(__name__)

KST = timezone(timedelta(hours=9), "KST")
DATA_TIME_FORMAT = "%Y-%m-%d %H:%M"
MISSING_SENTINEL = "-"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _safe_float(val) -> Optional[float]:
    """Parse an upstream text value, returning None for gaps and garbage."""
    if not isinstance(val, str):
        return None
    val = val.strip()
    if val in ("", MISSING_SENTINEL):
        return None
    try:
        parsed = float(val)
    except ValueError:
        return None
    # float() accepts "nan"/"inf"; those are not measurements
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed


def _parse_data_time(data_time: Optional[str]) -> Optional[datetime]:
    """Parse a KST dataTime string. AirKorea writes midnight as "24:00"."""
    if not data_time:
        return None
    text = data_time.strip()
    rollover = False
    if text.endswith(" 24:00"):
        text = text[:-5] + "00:00"
        rollover = True
    try:
        local = datetime.strptime(text, DATA_TIME_FORMAT).replace(tzinfo=KST)
    except ValueError:
        return None
    if rollover:
        local += timedelta(days=1)
    return local


def to_hour_bucket(moment: datetime) -> datetime:
    """Convert to UTC and drop minutes, seconds and microseconds."""
    return moment.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def normalize_reading(
    target_id: int,
    raw: RawReading,
    strict_timestamps: bool = False,
    clock: Callable[[], datetime] = utcnow,
) -> NormalizedReading:
    """
    Extract the most recent measurement from an upstream payload.

    Args:
        target_id: sub region the reading belongs to.
        raw: Parsed upstream envelope.
        strict_timestamps: Raise instead of falling back to the current
            time when dataTime cannot be parsed.
        clock: Source of "now" for the fallback (UTC-aware).

    Raises:
        NoDataError: the payload carries no items.
        InvalidTimestampError: strict mode and dataTime is unparsable.
    """
    items = raw.items
    if not items:
        raise NoDataError("No data available in API response.")

    latest = items[0]
    recorded_at = _parse_data_time(latest.data_time)
    if recorded_at is None:
        if strict_timestamps:
            raise InvalidTimestampError(f"Unparsable dataTime: {latest.data_time!r}")
        recorded_at = clock().astimezone(KST)
        logger.warning(
            "Unparsable dataTime %r for target %s, using current time",
            latest.data_time, target_id,
        )

    return NormalizedReading(
        target_id=target_id,
        recorded_at_utc=to_hour_bucket(recorded_at),
        pm10=_safe_float(latest.pm10_value),
        pm25=_safe_float(latest.pm25_value),
    )
