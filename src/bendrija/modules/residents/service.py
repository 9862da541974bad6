from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from bendrija.modules.residents.models import Resident


def list_residents(session: Session) -> list[Resident]:
    return list(session.scalars(select(Resident).order_by(Resident.apartment_number)))


def create_resident(
    session: Session,
    *,
    full_name: str,
    apartment_number: str | None = None,
    payment_code: str | None = None,
    linked_profile_id: uuid.UUID | None = None,
) -> Resident:
    resident = Resident(
        full_name=full_name.strip(),
        apartment_number=(apartment_number or "").strip() or None,
        payment_code=(payment_code or "").strip() or None,
        linked_profile_id=linked_profile_id,
    )
    session.add(resident)
    session.commit()
    session.refresh(resident)
    return resident
