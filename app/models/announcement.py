# app/models/announcement.py
from sqlalchemy import Column, Integer, DateTime, Text, Boolean
from app.database import Base


class AnnouncementRow(Base):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message = Column(Text, nullable=False)
    expiry = Column(DateTime(timezone=True))
    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<AnnouncementRow {self.id} active={self.is_active}>"
