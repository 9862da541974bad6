from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bendrija.modules.slips.matching import AssignmentStatus
from bendrija.modules.slips.models import UploadBatchStatus


class IngestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parsed_text: str | None = Field(default=None, alias="parsedText")
    excel_data: list[Any] | None = Field(default=None, alias="excelData")
    period_month: str | None = Field(default=None, alias="periodMonth")
    pdf_file_name: str | None = Field(default=None, alias="pdfFileName")
    pdf_url: str | None = Field(default=None, alias="pdfUrl")
    use_ai: bool = Field(default=False, alias="useAI")
    preview: bool = False


class _CamelOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IngestStats(_CamelOut):
    total: int
    matched: int
    pending: int
    batch_id: uuid.UUID | None = None


class SlipPreview(_CamelOut):
    invoice_number: str
    apartment_number: str
    buyer_name: str
    payment_code: str | None
    total_due: Decimal
    resident_id: uuid.UUID | None
    resident_name: str | None
    assignment_status: str
    matched_by: str | None
    match_reason: str
    degraded_fields: list[str]
    extraction_method: str


class IngestResponse(_CamelOut):
    success: bool = True
    stats: IngestStats
    message: str | None = None
    slips: list[SlipPreview] | None = None


class UploadBatchOut(BaseModel):
    id: uuid.UUID
    created_by: uuid.UUID | None
    file_name: str | None
    file_type: str
    period_month: date
    slip_count: int
    matched_count: int
    pending_count: int
    extraction_method: str | None
    status: UploadBatchStatus
    created_at: datetime


class PaymentSlipOut(BaseModel):
    id: uuid.UUID
    invoice_number: str
    invoice_date: date
    due_date: date
    period_month: date
    buyer_name: str
    apartment_number: str
    payment_code: str | None
    total_due: Decimal
    line_items: list[dict[str, Any]]
    utility_readings: dict[str, Any]
    degraded_fields: list[str]
    extraction_method: str
    resident_id: uuid.UUID | None
    assignment_status: AssignmentStatus
    matched_by: str | None
    match_reason: str | None
