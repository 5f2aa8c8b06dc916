from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealhub.core.errors import ConflictError, InvalidInputError
from dealhub.models.user import User, UserRole
from dealhub.services.passwords import hash_password

logger = logging.getLogger(__name__)
USERS_PREFIX = "[USERS]"

MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def register_user(
    db: Session,
    tenant_id: int,
    email: str,
    name: str,
    password: str,
    role: str = UserRole.USER,
) -> User:
    email = normalize_email(email)
    name = (name or "").strip()
    if not email or "@" not in email or not name:
        raise InvalidInputError("Missing required fields")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = User(
        tenant_id=tenant_id,
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("%s duplicate registration tenant_id=%s", USERS_PREFIX, tenant_id)
        raise ConflictError("User already exists") from exc
    db.refresh(user)

    logger.info("%s registered user_id=%s tenant_id=%s", USERS_PREFIX, user.id, tenant_id)
    return user


def get_user_by_email(db: Session, tenant_id: int, email: str) -> User | None:
    return (
        db.query(User)
        .filter(User.tenant_id == tenant_id, User.email == normalize_email(email))
        .first()
    )


def get_user(db: Session, tenant_id: int, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id, User.tenant_id == tenant_id).first()
