"""
SQLAlchemy ORM models.
Tables: sub_region (ingestion worklist), external_pm (latest reading per sub region)
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from api.database import Base


class SubRegion(Base):
    __tablename__ = "sub_region"

    sub_region_id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(200), nullable=True)
    pm_station = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    external_pm = relationship("ExternalPm", back_populates="sub_region", uselist=False)


class ExternalPm(Base):
    __tablename__ = "external_pm"

    sub_region_id = Column(
        Integer, ForeignKey("sub_region.sub_region_id"), primary_key=True, autoincrement=False
    )
    pm10 = Column(Float, nullable=True)
    pm25 = Column(Float, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    sub_region = relationship("SubRegion", back_populates="external_pm")
