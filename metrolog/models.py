from datetime import datetime, timezone

from sqlalchemy import (
    Column, DateTime, Float, ForeignKey, Index, Integer, String,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    # SQLite stores naive datetimes; keep everything in UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Folder(Base):
    __tablename__ = 'folders'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class MeasurementRecord(Base):
    __tablename__ = 'measurement_records'

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(String(32), default="")
    time = Column(String(32), default="")
    measurement_id = Column(String(255), default="", index=True)
    status = Column(String(255), default="", index=True)
    measurement_group = Column(String(255), default="")
    measurement_style = Column(String(255), default="")
    color_model = Column(String(255), default="")
    id1 = Column(Integer, default=0)
    id2 = Column(Integer, default=0)
    id3 = Column(Integer, default=0)
    x = Column(Float, default=0.0)
    y = Column(Float, default=0.0)
    z = Column(Float, default=0.0)
    rx = Column(Float, default=0.0)
    ry = Column(Float, default=0.0)
    rz = Column(Float, default=0.0)
    uncertainty = Column(Float, default=0.0)
    measurement_time = Column(Integer, default=0)
    features_ok = Column(String(255), default="")
    error_desc = Column(String(1024), default="")
    file_source = Column(String(512), nullable=False, index=True)
    folder_id = Column(Integer, ForeignKey('folders.id'), nullable=True, index=True)
    imported_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('ix_measurement_records_date_time', 'date', 'time'),
    )

    # Column order used by listings and exports
    COLUMNS = (
        "id", "date", "time", "measurement_id", "status",
        "measurement_group", "measurement_style", "color_model",
        "id1", "id2", "id3", "x", "y", "z", "rx", "ry", "rz",
        "uncertainty", "measurement_time", "features_ok", "error_desc",
        "file_source", "folder_id", "imported_at",
    )

    def to_dict(self):
        data = {name: getattr(self, name) for name in self.COLUMNS}
        if self.imported_at is not None:
            data["imported_at"] = self.imported_at.isoformat()
        return data
