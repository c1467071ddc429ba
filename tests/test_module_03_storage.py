"""
Tests for Module 03: Target repository and upsert writer.
Runs the real SQL against a throw-away SQLite database.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session

from pipeline.errors import StorageError
from pipeline.ingestion.models import Target
from pipeline.storage.repository import as_utc, list_targets, upsert_reading

HOUR = datetime(2024, 3, 1, 5, 0, tzinfo=timezone.utc)


class TestListTargets:
    def test_returns_all_targets(self, db_session, seed_targets):
        seed_targets({102: "중구", 101: "종로구"})
        targets = list_targets(db_session)
        assert targets == [Target(101, "종로구"), Target(102, "중구")]

    def test_empty_table(self, db_session):
        assert list_targets(db_session) == []

    def test_missing_table_raises_storage_error(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        with Session(engine) as db:
            with pytest.raises(StorageError):
                list_targets(db)
        engine.dispose()


class TestUpsertReading:
    def test_insert_returns_stored_row(self, db_session, seed_targets):
        seed_targets({101: "종로구"})
        row = upsert_reading(db_session, 101, 35.0, None, HOUR)
        assert row.target_id == 101
        assert row.pm10 == 35.0
        assert row.pm25 is None
        assert row.recorded_at == HOUR
        assert row.updated_at.tzinfo is not None

    def test_second_write_replaces_measurements(self, db_session, seed_targets):
        seed_targets({101: "종로구"})
        upsert_reading(db_session, 101, 35.0, 12.0, HOUR)
        later = HOUR.replace(hour=6)
        row = upsert_reading(db_session, 101, 50.0, None, later)

        assert (row.pm10, row.pm25, row.recorded_at) == (50.0, None, later)
        count = db_session.execute(text("SELECT COUNT(*) FROM external_pm")).scalar()
        assert count == 1

    def test_rewrite_refreshes_updated_at(self, db_session, seed_targets):
        seed_targets({101: "종로구"})
        upsert_reading(db_session, 101, 35.0, 12.0, HOUR)
        db_session.execute(text(
            "UPDATE external_pm SET updated_at = '2000-01-01 00:00:00.000000'"
        ))
        db_session.commit()

        row = upsert_reading(db_session, 101, 35.0, 12.0, HOUR)
        assert (row.pm10, row.pm25, row.recorded_at) == (35.0, 12.0, HOUR)
        assert row.updated_at > datetime(2000, 1, 1, tzinfo=timezone.utc)

    def test_failure_raises_storage_error(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        with Session(engine) as db:
            with pytest.raises(StorageError, match="Database query failed"):
                upsert_reading(db, 101, 1.0, 1.0, HOUR)
        engine.dispose()


class TestAsUtc:
    def test_naive_is_assumed_utc(self):
        assert as_utc(datetime(2024, 1, 1, 3)) == datetime(2024, 1, 1, 3, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        from datetime import timedelta
        kst = timezone(timedelta(hours=9))
        assert as_utc(datetime(2024, 1, 1, 12, tzinfo=kst)).hour == 3
