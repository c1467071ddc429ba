"""
Stations routes: ingestion targets and their latest stored reading.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.database import get_db
from api.models.db_models import ExternalPm, SubRegion
from pipeline.storage.repository import as_utc

router = APIRouter()


def _serialize_reading(pm: ExternalPm):
    if pm is None:
        return None
    return {
        "pm10Value": pm.pm10,
        "pm25Value": pm.pm25,
        "dataTime": as_utc(pm.recorded_at).isoformat(),
        "requestedTime": as_utc(pm.updated_at).isoformat() if pm.updated_at else None,
    }


def _serialize_station(s: SubRegion):
    return {
        "sub_region_id": s.sub_region_id,
        "name": s.name,
        "pm_station": s.pm_station,
        "latest": _serialize_reading(s.external_pm),
    }


@router.get("/")
def list_stations(db: Session = Depends(get_db)):
    """List all sub regions with their latest stored PM reading (if any)."""
    stations = db.query(SubRegion).order_by(SubRegion.sub_region_id).all()
    return [_serialize_station(s) for s in stations]


@router.get("/{sub_region_id}")
def get_station(sub_region_id: int, db: Session = Depends(get_db)):
    """Get a single sub region by ID."""
    station = db.query(SubRegion).filter(SubRegion.sub_region_id == sub_region_id).first()
    if not station:
        raise HTTPException(status_code=404, detail=f"Sub region '{sub_region_id}' not found")
    return _serialize_station(station)
