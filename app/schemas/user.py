# app/schemas/user.py
from typing import Literal, Optional

from pydantic import Field, field_validator

from app.schemas.base import CamelModel, UtcDatetime

Role = Literal["student", "admin", "staff"]


class UserPreferences(CamelModel):
    notifications: bool = True
    notification_threshold: int = Field(75, ge=0, le=100)   # percent
    favorite_areas: list[str] = Field(default_factory=list)


class UserCreate(CamelModel):
    student_id: str = Field(min_length=1)
    email: str
    name: str
    external_id: str = Field(min_length=1)
    profile_image: Optional[str] = None
    role: Role = "student"
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class User(CamelModel):
    id: int
    student_id: str
    email: str
    name: str
    external_id: str
    profile_image: Optional[str] = None
    role: Role = "student"
    created_at: UtcDatetime
    last_login: UtcDatetime
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    def public(self) -> dict:
        """Wire form without the external-auth id."""
        return self.model_dump(mode="json", by_alias=True, exclude={"external_id"})


class LoginRequest(CamelModel):
    email: str
    external_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    student_id: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _looks_like_email(cls, value: str) -> str:
        local, sep, domain = value.strip().partition("@")
        if not local or not sep or "." not in domain:
            raise ValueError("Invalid email address")
        return value.strip().lower()
