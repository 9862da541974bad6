from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from bendrija.api.deps import get_current_user, require_admin
from bendrija.core.db import db_session
from bendrija.core.security import create_access_token
from bendrija.modules.identity.models import User
from bendrija.modules.identity.schemas import AccessToken, AccountCreate, AccountOut
from bendrija.modules.identity.service import authenticate_user, create_user

router = APIRouter(tags=["identity"])


@router.post("/auth/token", response_model=AccessToken)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(db_session),
) -> AccessToken:
    user = authenticate_user(session, email=form_data.username, password=form_data.password)
    token = create_access_token(subject=str(user.id))
    return AccessToken(access_token=token)


@router.get("/auth/me", response_model=AccountOut)
def me(user: User = Depends(get_current_user)) -> AccountOut:
    return AccountOut.model_validate(user, from_attributes=True)


@router.post("/auth/users", response_model=AccountOut, status_code=201)
def create_user_endpoint(
    payload: AccountCreate,
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> AccountOut:
    user = create_user(
        session,
        email=str(payload.email),
        password=payload.password,
        role=payload.role,
        full_name=payload.full_name,
        apartment_number=payload.apartment_number,
        phone=payload.phone,
    )
    return AccountOut.model_validate(user, from_attributes=True)
