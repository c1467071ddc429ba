"""Shared test fixtures for the external PM ingestion test suite."""

import json

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from api.models.db_models import Base, SubRegion
from pipeline.config import Settings

BASE_URL = "http://airkorea.test/getMsrstnAcctoRltmMesureDnsty"


@pytest.fixture()
def db_engine(tmp_path):
    """File-backed SQLite engine with the schema created, one per test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'pm.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(db_engine):
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture()
def seed_targets(db_engine):
    """Insert sub regions: seed_targets({101: "종로구", 102: "중구"})."""
    def _seed(targets):
        Session = sessionmaker(bind=db_engine)
        with Session() as db:
            for sub_region_id, station in targets.items():
                db.add(SubRegion(sub_region_id=sub_region_id, pm_station=station))
            db.commit()
    return _seed


@pytest.fixture()
def settings():
    return Settings(
        db_conn_url="sqlite://",
        api_key="test-key",
        base_url=BASE_URL,
        request_timeout=5.0,
    )


def airkorea_payload(items, result_msg="NORMAL_CODE"):
    """Build an AirKorea-shaped JSON document."""
    return {
        "response": {
            "header": {"resultCode": "00", "resultMsg": result_msg},
            "body": {"totalCount": len(items), "items": items, "pageNo": 1, "numOfRows": 1000},
        }
    }


def airkorea_item(pm10="35", pm25="18", data_time="2024-03-01 14:00", station="종로구"):
    return {
        "stationName": station,
        "dataTime": data_time,
        "pm10Value": pm10,
        "pm25Value": pm25,
        "khaiValue": "55",
    }


def make_client(handler):
    """httpx client whose requests are answered by handler(request)."""
    return httpx.Client(transport=httpx.MockTransport(handler))


def json_response(payload, status_code=200):
    return httpx.Response(
        status_code,
        content=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
        headers={"Content-Type": "application/json;charset=UTF-8"},
    )
