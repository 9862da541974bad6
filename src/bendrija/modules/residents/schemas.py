from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ResidentCreate(BaseModel):
    full_name: str = Field(min_length=1)
    apartment_number: str | None = None
    payment_code: str | None = None
    linked_profile_id: uuid.UUID | None = None


class ResidentOut(BaseModel):
    id: uuid.UUID
    full_name: str
    apartment_number: str | None
    payment_code: str | None
    linked_profile_id: uuid.UUID | None
    created_at: datetime
