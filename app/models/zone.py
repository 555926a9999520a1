# app/models/zone.py
"""
Library zones table. Seeded at startup; occupancy and capacity change at runtime.
"""

from sqlalchemy import Column, Integer, String, JSON
from app.database import Base


class ZoneRow(Base):
    __tablename__ = "library_zones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    capacity = Column(Integer, nullable=False)
    resources = Column(JSON, nullable=False)       # ["computers", "printers", ...]
    coordinates = Column(JSON, nullable=False)     # {x, y, width, height} for the map
    current_occupancy = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<ZoneRow {self.id} {self.current_occupancy}/{self.capacity}>"
