# app/models/user.py
"""
Users table. Rows are created on first login and never hard-deleted.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from app.database import Base


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    external_id = Column(String(255), unique=True, nullable=False, index=True)
    profile_image = Column(String(500))
    role = Column(String(20), nullable=False, default="student")   # student | admin | staff
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=False)
    preferences = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<UserRow {self.id} student={self.student_id} role={self.role}>"
