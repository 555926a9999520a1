# app/services/auth_service.py
"""
Login callback handling. The external identity provider has already
authenticated the student; this only enforces the institutional domain and
creates the user record on first login.
"""

from typing import Optional

from app.schemas.user import LoginRequest, User, UserCreate
from app.services.errors import InvalidInputError, UnauthorizedError
from app.services.storage import Storage
from app.utils.logger import get_logger

logger = get_logger(__name__)


def login(storage: Storage, body: LoginRequest, email_domain: str) -> User:
    if not body.email.endswith(email_domain.lower()):
        logger.warning(f"[AUTH] Rejected login for non-institutional email {body.email}")
        raise InvalidInputError(f"Email must end with {email_domain}")

    user = storage.get_user_by_external_id(body.external_id)
    if user is None:
        if storage.get_user_by_student_id(body.student_id) or storage.get_user_by_email(body.email):
            raise InvalidInputError("Student ID or email already linked to another account")
        user = storage.create_user(UserCreate(
            student_id=body.student_id,
            email=body.email,
            name=body.name,
            external_id=body.external_id,
        ))
        logger.info(f"[AUTH] New user #{user.id} student={user.student_id}")
    else:
        user = storage.touch_login(user.id)
        logger.info(f"[AUTH] User #{user.id} logged in")
    return user


def current_user(storage: Storage, student_id: Optional[str]) -> User:
    user = storage.get_user_by_student_id(student_id) if student_id else None
    if user is None:
        raise UnauthorizedError()
    return user
