# app/models/occupancy_record.py
"""
Occupancy time series. One row per entry/exit event or manual snapshot.
"""

from sqlalchemy import Column, Integer, DateTime, JSON
from app.database import Base


class OccupancyRecordRow(Base):
    __tablename__ = "occupancy_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    current_occupancy = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False)
    zone_occupancy = Column(JSON, nullable=False)   # {"<zone id>": count}

    def __repr__(self):
        return f"<OccupancyRecordRow {self.id} {self.current_occupancy}/{self.capacity}>"
