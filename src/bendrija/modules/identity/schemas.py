from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr, Field

from bendrija.modules.identity.models import UserRole


class AccountOut(BaseModel):
    id: uuid.UUID
    email: EmailStr
    full_name: str | None
    apartment_number: str | None
    phone: str | None
    role: UserRole
    is_active: bool


class AccountCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    full_name: str | None = None
    apartment_number: str | None = Field(default=None, max_length=20)
    phone: str | None = Field(default=None, max_length=40)
    role: UserRole = UserRole.RESIDENT


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
