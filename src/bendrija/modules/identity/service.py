from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from bendrija.core.logging import get_logger, log_event
from bendrija.core.security import hash_password, verify_password
from bendrija.modules.identity.models import User, UserRole

logger = get_logger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(session: Session, *, email: str) -> User | None:
    return session.scalar(select(User).where(User.email == _normalize_email(email)))


def create_user(
    session: Session,
    *,
    email: str,
    password: str,
    role: UserRole,
    full_name: str | None = None,
    apartment_number: str | None = None,
    phone: str | None = None,
) -> User:
    """Admin accounts run ingestion; resident accounts are what slips get linked to."""
    if get_user_by_email(session, email=email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")

    user = User(
        email=_normalize_email(email),
        full_name=full_name,
        apartment_number=(apartment_number or "").strip() or None,
        phone=(phone or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    log_event(logger, "identity.user.created", user_id=str(user.id), role=user.role.value)
    return user


def authenticate_user(session: Session, *, email: str, password: str) -> User:
    user = get_user_by_email(session, email=email)
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        log_event(logger, "identity.login.rejected", level=logging.WARNING)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    log_event(logger, "identity.login.ok", user_id=str(user.id))
    return user
