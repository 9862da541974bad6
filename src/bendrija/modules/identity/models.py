from __future__ import annotations

import enum

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from bendrija.core.models import Base, Timestamped, UUIDPrimaryKey


class UserRole(str, enum.Enum):
    """Administrators run ingestion; residents only ever own slips."""

    RESIDENT = "RESIDENT"
    ADMIN = "ADMIN"


class User(UUIDPrimaryKey, Timestamped, Base):
    """A portal account. A resident roster entry links to it through ``linked_profile_id``."""

    __tablename__ = "identity_user"

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # As typed at sign-up; the roster's own apartment number is what matching uses.
    apartment_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False), index=True, default=UserRole.RESIDENT
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
