"""
Database session management: SQLAlchemy + psycopg2.

The API only needs the store, so it reads DB_CONN_URL on its own instead of
requiring the full ingestion settings (no AirKorea key).
"""
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from pipeline.config import normalize_db_url

load_dotenv()

DATABASE_URL = normalize_db_url(
    os.environ.get("DB_CONN_URL") or "postgresql://pm:pm@localhost:5432/pm_db"
)

engine = create_engine(DATABASE_URL, pool_pre_ping=True, pool_recycle=300)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for sub_region / external_pm."""


def get_db():
    """FastAPI dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
