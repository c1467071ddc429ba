"""
Data models for one ingestion batch.

Upstream payloads are parsed into pydantic models whose fields are all
optional, so a missing key is a None value instead of a lookup failure.
Only the keys the pipeline reads are declared; the rest of the envelope
(resultCode, totalCount, stationName, ...) is ignored whatever its type.
Everything after parsing is a plain dataclass.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

NORMAL_RESULT_MSG = "NORMAL_CODE"


# ── Upstream (AirKorea) payload ──────────────────────────────────────────────

class _Upstream(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AirKoreaItem(_Upstream):
    data_time: Optional[str] = Field(None, alias="dataTime")
    pm10_value: Optional[Union[str, float]] = Field(None, alias="pm10Value")
    pm25_value: Optional[Union[str, float]] = Field(None, alias="pm25Value")


class AirKoreaHeader(_Upstream):
    result_msg: Optional[str] = Field(None, alias="resultMsg")


class AirKoreaBody(_Upstream):
    items: Optional[List[AirKoreaItem]] = None


class AirKoreaResponse(_Upstream):
    header: Optional[AirKoreaHeader] = None
    body: Optional[AirKoreaBody] = None


class RawReading(_Upstream):
    """Top-level envelope: {"response": {"header": ..., "body": ...}}."""
    response: Optional[AirKoreaResponse] = None

    @property
    def result_msg(self) -> Optional[str]:
        if self.response is None or self.response.header is None:
            return None
        return self.response.header.result_msg

    @property
    def items(self) -> List[AirKoreaItem]:
        if self.response is None or self.response.body is None:
            return []
        return self.response.body.items or []


# ── Pipeline records ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Target:
    """One monitoring station mapped to a sub region."""
    target_id: int
    external_name: str


@dataclass(frozen=True)
class NormalizedReading:
    target_id: int
    recorded_at_utc: datetime  # hour bucket, UTC
    pm10: Optional[float] = None
    pm25: Optional[float] = None


@dataclass(frozen=True)
class PersistedReading:
    """external_pm row as returned by the upsert."""
    target_id: int
    pm10: Optional[float]
    pm25: Optional[float]
    recorded_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class IngestionSuccess:
    target: Target
    row: PersistedReading


@dataclass
class UnitResult:
    """What a single unit of work hands back to the orchestrator."""
    success: Optional[IngestionSuccess] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class BatchOutcome:
    successes: List[IngestionSuccess] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    elapsed: float = 0.0  # seconds

    def merge(self, result: UnitResult) -> None:
        if result.success is not None:
            self.successes.append(result.success)
        self.errors.extend(result.errors)
