# app/models/seat_post.py
"""
Social seating posts. Status can lag behind end_time; reads filter on both.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON
from app.database import Base


class SeatPostRow(Base):
    __tablename__ = "seat_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    location = Column(JSON, nullable=False)        # {zone, seatId?, coordinates?}
    image_url = Column(String(500))
    duration = Column(Integer, nullable=False)     # minutes
    end_time = Column(DateTime(timezone=True), nullable=False, index=True)
    group_size = Column(Integer, default=1, nullable=False)
    message = Column(Text)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    verifications = Column(JSON, nullable=False)   # {positive, negative}
    status = Column(String(20), default="active", nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<SeatPostRow {self.id} status={self.status}>"
