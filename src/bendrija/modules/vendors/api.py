from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from bendrija.api.deps import require_admin
from bendrija.core.db import db_session
from bendrija.modules.identity.models import User
from bendrija.modules.vendors.schemas import (
    AnalyzeInvoiceRequest,
    PatternConfirm,
    RecognitionPatternOut,
    VendorInvoiceAnalysis,
)
from bendrija.modules.vendors.service import analyze_vendor_invoice, confirm_pattern, list_patterns

router = APIRouter(tags=["vendor-invoices"])


@router.post("/vendor-invoices/analyze", response_model=VendorInvoiceAnalysis)
def analyze(
    payload: AnalyzeInvoiceRequest,
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> VendorInvoiceAnalysis:
    return analyze_vendor_invoice(session, request=payload)


@router.get("/vendor-invoices/patterns", response_model=list[RecognitionPatternOut])
def patterns(
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> list[RecognitionPatternOut]:
    return [
        RecognitionPatternOut.model_validate(p, from_attributes=True)
        for p in list_patterns(session)
    ]


@router.post("/vendor-invoices/patterns", response_model=RecognitionPatternOut)
def confirm(
    payload: PatternConfirm,
    response: Response,
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> RecognitionPatternOut:
    pattern, created = confirm_pattern(session, payload=payload)
    response.status_code = 201 if created else 200
    return RecognitionPatternOut.model_validate(pattern, from_attributes=True)
