from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from bendrija.api.deps import require_admin
from bendrija.core.db import db_session
from bendrija.core.logging import get_logger, log_event
from bendrija.modules.identity.models import User
from bendrija.modules.slips.schemas import (
    IngestRequest,
    IngestResponse,
    IngestStats,
    PaymentSlipOut,
    SlipPreview,
    UploadBatchOut,
)
from bendrija.modules.slips.service import (
    IngestionOutcome,
    IngestionStage,
    delete_batch,
    ingest_payment_slips,
    list_batch_slips,
    list_batches,
    read_upload,
)

router = APIRouter(tags=["payment-slips"])
logger = get_logger(__name__)


@router.post(
    "/payment-slips/ingest", response_model=IngestResponse, response_model_exclude_none=True
)
def ingest(
    payload: IngestRequest,
    session: Session = Depends(db_session),
    user: User = Depends(require_admin),
) -> IngestResponse:
    outcome = ingest_payment_slips(
        session,
        user=user,
        parsed_text=payload.parsed_text,
        excel_data=payload.excel_data,
        period_month=payload.period_month,
        pdf_file_name=payload.pdf_file_name,
        pdf_url=payload.pdf_url,
        use_ai=payload.use_ai,
        preview=payload.preview,
    )
    return _response(outcome)


@router.post(
    "/payment-slips/upload", response_model=IngestResponse, response_model_exclude_none=True
)
async def upload(
    upload: UploadFile = File(...),
    period_month: str | None = Form(default=None),
    use_ai: bool = Form(default=False),
    preview: bool = Form(default=False),
    session: Session = Depends(db_session),
    user: User = Depends(require_admin),
) -> IngestResponse:
    body = await upload.read()
    filename = upload.filename or "upload.bin"
    log_event(
        logger,
        "upload.received",
        filename=filename,
        content_type=upload.content_type,
        byte_size=len(body),
    )
    # Workbook parsing and extraction block (the latter on the document-analysis service);
    # keep both off the event loop.
    content = await run_in_threadpool(read_upload, filename=filename, body=body)
    outcome = await run_in_threadpool(
        ingest_payment_slips,
        session,
        user=user,
        parsed_text=content.parsed_text,
        excel_data=content.excel_data,
        period_month=period_month,
        pdf_file_name=filename,
        use_ai=use_ai,
        preview=preview,
        file_type=content.file_type,
    )
    return _response(outcome)


@router.get("/payment-slips/batches", response_model=list[UploadBatchOut])
def batches(
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> list[UploadBatchOut]:
    return [UploadBatchOut.model_validate(b, from_attributes=True) for b in list_batches(session)]


@router.get("/payment-slips/batches/{batch_id}/slips", response_model=list[PaymentSlipOut])
def batch_slips(
    batch_id: uuid.UUID,
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> list[PaymentSlipOut]:
    return [
        PaymentSlipOut.model_validate(s, from_attributes=True)
        for s in list_batch_slips(session, batch_id=batch_id)
    ]


@router.delete("/payment-slips/batches/{batch_id}", status_code=204)
def remove_batch(
    batch_id: uuid.UUID,
    session: Session = Depends(db_session),
    _: User = Depends(require_admin),
) -> Response:
    delete_batch(session, batch_id=batch_id)
    return Response(status_code=204)


def _response(outcome: IngestionOutcome) -> IngestResponse:
    stats = IngestStats(
        total=outcome.total,
        matched=outcome.matched,
        pending=outcome.pending,
        batch_id=outcome.batch_id,
    )
    preview = None
    if outcome.stage == IngestionStage.PREVIEWED:
        preview = [
            SlipPreview(
                invoice_number=r.slip.invoice_number,
                apartment_number=r.slip.apartment_number,
                buyer_name=r.slip.buyer_name,
                payment_code=r.slip.payment_code,
                total_due=r.slip.total_due,
                resident_id=r.match.resident.id if r.match.resident else None,
                resident_name=r.match.resident.full_name if r.match.resident else None,
                assignment_status=r.match.assignment_status.value,
                matched_by=r.match.matched_by.value if r.match.matched_by else None,
                match_reason=r.match.explanation,
                degraded_fields=list(r.slip.degraded_fields),
                extraction_method=r.slip.extraction_method,
            )
            for r in outcome.rows
        ]
    return IngestResponse(success=True, stats=stats, message=outcome.message, slips=preview)
