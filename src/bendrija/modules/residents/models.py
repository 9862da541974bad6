from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bendrija.core.models import Base, Timestamped, UUIDPrimaryKey


class Resident(UUIDPrimaryKey, Timestamped, Base):
    """One apartment's account holder. Maintained by the portal's admin screens."""

    __tablename__ = "residents_resident"

    apartment_number: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    payment_code: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    full_name: Mapped[str] = mapped_column(String(200))
    linked_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), nullable=True
    )

    linked_profile = relationship("User")
