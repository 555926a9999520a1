# app/models/entry_exit_event.py
"""
Entry/exit log. Append-only; aggregate occupancy is derived from it.
"""

from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class EntryExitEventRow(Base):
    __tablename__ = "entry_exit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(50), nullable=False, index=True)
    event_type = Column(String(10), nullable=False, index=True)   # entry | exit
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    device_id = Column(String(100))
    location = Column(String(100))

    def __repr__(self):
        return f"<EntryExitEventRow {self.id} {self.event_type} student={self.student_id}>"
