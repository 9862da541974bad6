from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bendrija.api.deps import require_admin
from bendrija.core.db import db_session
from bendrija.modules.identity.models import User
from bendrija.modules.residents.schemas import ResidentCreate, ResidentOut
from bendrija.modules.residents.service import create_resident, list_residents

router = APIRouter(tags=["residents"])


@router.get("/residents", response_model=list[ResidentOut])
def residents(
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> list[ResidentOut]:
    return [ResidentOut.model_validate(r, from_attributes=True) for r in list_residents(session)]


@router.post("/residents", response_model=ResidentOut)
def create(
    payload: ResidentCreate,
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> ResidentOut:
    resident = create_resident(
        session,
        full_name=payload.full_name,
        apartment_number=payload.apartment_number,
        payment_code=payload.payment_code,
        linked_profile_id=payload.linked_profile_id,
    )
    return ResidentOut.model_validate(resident, from_attributes=True)
