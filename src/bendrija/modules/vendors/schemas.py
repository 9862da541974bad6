from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class VendorIn(BaseModel):
    id: str
    name: str


class CategoryIn(BaseModel):
    id: str
    name: str
    code: str | None = None


class AnalyzeInvoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    file_type: str | None = Field(default=None, alias="fileType")
    file_base64: str | None = Field(default=None, alias="fileBase64")
    vendors: list[VendorIn] = Field(default_factory=list)
    categories: list[CategoryIn] = Field(default_factory=list)


class PatternMatchOut(BaseModel):
    vendor_id: str | None
    cost_category_id: str | None


class VendorInvoiceAnalysis(BaseModel):
    vendor_name: str | None = None
    vendor_company_code: str | None = None
    vendor_vat_code: str | None = None
    vendor_category: str | None = None
    suggested_vendor_id: str | None = None
    invoice_number: str | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    subtotal: float | None = None
    vat_amount: float | None = None
    total_amount: float | None = None
    description: str
    suggested_category_id: str | None = None
    confidence: float = Field(ge=0, le=1)
    is_recurring: bool = False
    pattern_match: PatternMatchOut | None = None


class PatternConfirm(BaseModel):
    vendor_name: str = Field(min_length=1)
    vendor_id: str | None = None
    cost_category_id: str | None = None


class RecognitionPatternOut(BaseModel):
    id: uuid.UUID
    vendor_name: str
    significant_token: str | None
    vendor_id: str | None
    cost_category_id: str | None
    recognition_count: int
    last_used_at: datetime
