from __future__ import annotations

import csv
import enum
import io
import logging
import time
import uuid
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from fastapi import HTTPException, status
from openpyxl import load_workbook
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bendrija.core.config import settings
from bendrija.core.llm import UpstreamError
from bendrija.core.logging import (
    bind_context,
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_context,
)
from bendrija.modules.identity.models import User
from bendrija.modules.residents.models import Resident
from bendrija.modules.slips.extractors import (
    RowsSource,
    Source,
    build_chain,
    resolve_source,
    run_extractors,
)
from bendrija.modules.slips.matching import MatchResult, ResidentMatcher, RosterEntry
from bendrija.modules.slips.models import PaymentSlip, UploadBatch, UploadBatchStatus
from bendrija.modules.slips.normalize import coerce_period_month
from bendrija.modules.slips.parsed import ParsedSlip

logger = get_logger(__name__)

NO_SLIPS_MESSAGE = "No payment slips were found in the uploaded document"


class IngestionStage(str, enum.Enum):
    RECEIVED = "received"
    SEGMENTED = "segmented"
    TABULAR_PARSED = "tabular_parsed"
    DETERMINISTIC_EXTRACTED = "deterministic_extracted"
    FALLBACK_EXTRACTED = "fallback_extracted"
    NO_SLIPS_FOUND = "no_slips_found"
    MATCHED = "matched"
    PREVIEWED = "previewed"
    PERSISTED = "persisted"


@dataclass
class MatchedSlip:
    slip: ParsedSlip
    match: MatchResult


@dataclass
class IngestionOutcome:
    stage: IngestionStage
    batch_id: uuid.UUID | None = None
    rows: list[MatchedSlip] = field(default_factory=list)
    message: str | None = None

    @property
    def total(self) -> int:
        return len(self.rows)

    @property
    def matched(self) -> int:
        return sum(1 for r in self.rows if r.match.resident is not None)

    @property
    def pending(self) -> int:
        return self.total - self.matched


def ingest_payment_slips(
    session: Session,
    *,
    user: User,
    parsed_text: str | None,
    excel_data: Sequence[Any] | None,
    period_month: str | None = None,
    pdf_file_name: str | None = None,
    pdf_url: str | None = None,
    use_ai: bool = False,
    preview: bool = False,
    file_type: str | None = None,
) -> IngestionOutcome:
    """
    Turn one uploaded billing document into persisted, resident-bound payment slips.

    Field-level problems never fail the call; only malformed input, upstream failures
    of the last-chance generative fallback and a rejected insert do. With ``preview``
    every stage runs except persistence.
    """
    source = resolve_source(parsed_text=parsed_text, excel_data=excel_data)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either parsedText or excelData must be provided",
        )

    batch_id = uuid.uuid4()
    token = bind_context(batch_id=str(batch_id))
    t0 = time.monotonic()
    try:
        log_event(
            logger,
            "slips.ingest.start",
            stage=IngestionStage.RECEIVED.value,
            source_kind=source.kind,
            use_ai=use_ai,
            preview=preview,
            file_name=pdf_file_name,
        )
        period = coerce_period_month(period_month)

        try:
            method, slips = run_extractors(source, build_chain(use_ai=use_ai))
        except UpstreamError as e:
            log_event(
                logger,
                "slips.ai.upstream_error",
                level=logging.WARNING,
                error_type=type(e).__name__,
                upstream_status=e.upstream_status,
            )
            raise HTTPException(status_code=e.status_code, detail=e.detail) from e

        stage = _extraction_stage(source, method)
        log_event(
            logger,
            "slips.extract.result",
            stage=stage.value,
            strategy=method,
            slip_count=len(slips),
            degraded_slip_count=sum(1 for s in slips if s.degraded_fields),
        )
        if not slips:
            return IngestionOutcome(stage=IngestionStage.NO_SLIPS_FOUND, message=NO_SLIPS_MESSAGE)

        for slip in slips:
            if slip.period_month is None:
                slip.period_month = period
        _warn_duplicate_invoice_numbers(slips)

        matcher = ResidentMatcher(
            load_roster(session), fuzzy_threshold=settings.resident_fuzzy_name_threshold
        )
        rows = [MatchedSlip(slip=s, match=matcher.match(s)) for s in slips]
        outcome = IngestionOutcome(stage=IngestionStage.MATCHED, rows=rows)
        log_event(
            logger,
            "slips.match.summary",
            total=outcome.total,
            matched=outcome.matched,
            pending=outcome.pending,
            by_tier=dict(Counter(r.match.matched_by.value for r in rows if r.match.matched_by)),
        )

        if preview:
            outcome.stage = IngestionStage.PREVIEWED
            return outcome

        _persist(
            session,
            batch_id=batch_id,
            user=user,
            rows=rows,
            period=period,
            method=method,
            file_type=file_type or _default_file_type(source),
            pdf_file_name=pdf_file_name,
            pdf_url=pdf_url,
        )
        outcome.stage = IngestionStage.PERSISTED
        outcome.batch_id = batch_id
        log_event(
            logger,
            "slips.persist.finish",
            slip_count=outcome.total,
            duration_ms=monotonic_ms(t0),
        )
        return outcome
    finally:
        reset_context(token)


def load_roster(session: Session) -> list[RosterEntry]:
    return [
        RosterEntry(
            id=r.id,
            full_name=r.full_name,
            apartment_number=r.apartment_number,
            payment_code=r.payment_code,
            linked_profile_id=r.linked_profile_id,
        )
        for r in session.scalars(select(Resident).order_by(Resident.created_at))
    ]


def _extraction_stage(source: Source, method: str | None) -> IngestionStage:
    if method == "ai":
        return IngestionStage.FALLBACK_EXTRACTED
    if method is not None:
        return IngestionStage.DETERMINISTIC_EXTRACTED
    if isinstance(source, RowsSource):
        return IngestionStage.TABULAR_PARSED
    return IngestionStage.SEGMENTED


def _default_file_type(source: Source) -> str:
    return "excel" if isinstance(source, RowsSource) else "pdf"


def _warn_duplicate_invoice_numbers(slips: list[ParsedSlip]) -> None:
    counts = Counter(s.invoice_number for s in slips)
    dupes = sorted(k for k, n in counts.items() if n > 1)
    if dupes:
        log_event(
            logger,
            "slips.duplicate_invoice_numbers",
            level=logging.WARNING,
            invoice_numbers=dupes,
        )


def _persist(
    session: Session,
    *,
    batch_id: uuid.UUID,
    user: User,
    rows: list[MatchedSlip],
    period: date,
    method: str | None,
    file_type: str,
    pdf_file_name: str | None,
    pdf_url: str | None,
) -> None:
    today = date.today()
    matched = sum(1 for r in rows if r.match.resident is not None)
    batch = UploadBatch(
        id=batch_id,
        created_by=user.id,
        file_name=pdf_file_name,
        file_type=file_type,
        period_month=period,
        slip_count=len(rows),
        matched_count=matched,
        pending_count=len(rows) - matched,
        extraction_method=method,
        status=UploadBatchStatus.COMPLETED,
    )
    records = []
    for row in rows:
        slip, match = row.slip, row.match
        resident = match.resident
        records.append(
            PaymentSlip(
                upload_batch_id=batch_id,
                uploaded_by=user.id,
                invoice_number=slip.invoice_number,
                invoice_date=slip.invoice_date or today,
                due_date=slip.due_date or today,
                period_month=slip.period_month or period,
                buyer_name=slip.buyer_name,
                apartment_address=slip.apartment_address,
                apartment_number=slip.apartment_number,
                payment_code=slip.payment_code,
                previous_amount=slip.previous_amount,
                payments_received=slip.payments_received,
                balance=slip.balance,
                accrued_amount=slip.accrued_amount,
                total_due=slip.total_due,
                line_items=slip.line_items_json(),
                utility_readings=slip.utility_readings_json(),
                degraded_fields=list(slip.degraded_fields),
                extraction_method=slip.extraction_method,
                pdf_url=pdf_url,
                pdf_file_name=pdf_file_name,
                resident_id=resident.id if resident else None,
                profile_id=resident.linked_profile_id if resident else None,
                assignment_status=match.assignment_status,
                matched_by=match.matched_by.value if match.matched_by else None,
                match_reason=match.explanation or None,
            )
        )

    try:
        session.add(batch)
        session.add_all(records)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        log_exception(logger, "slips.persist.failed", slip_count=len(records))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save payment slips",
        ) from e


def list_batches(session: Session) -> list[UploadBatch]:
    return list(session.scalars(select(UploadBatch).order_by(UploadBatch.created_at.desc())))


def list_batch_slips(session: Session, *, batch_id: uuid.UUID) -> list[PaymentSlip]:
    if session.get(UploadBatch, batch_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return list(
        session.scalars(
            select(PaymentSlip)
            .where(PaymentSlip.upload_batch_id == batch_id)
            .order_by(PaymentSlip.apartment_number)
        )
    )


def delete_batch(session: Session, *, batch_id: uuid.UUID) -> None:
    batch = session.scalar(select(UploadBatch).where(UploadBatch.id == batch_id))
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    session.delete(batch)
    session.commit()
    log_event(logger, "slips.batch.deleted", batch_id=str(batch_id))


@dataclass(frozen=True)
class UploadContent:
    parsed_text: str | None
    excel_data: list[list[Any]] | None
    file_type: str


def read_upload(*, filename: str, body: bytes) -> UploadContent:
    """Turn an uploaded statement file into the text or rows the orchestrator accepts."""
    if len(body) > int(settings.max_upload_bytes):
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded file is too large",
        )
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext == "xlsx":
        return UploadContent(parsed_text=None, excel_data=_xlsx_rows(body), file_type="excel")
    if ext == "csv":
        return UploadContent(parsed_text=None, excel_data=_csv_rows(body), file_type="excel")
    if ext in {"txt", "md"}:
        return UploadContent(parsed_text=_decode_text(body), excel_data=None, file_type="pdf")
    raise HTTPException(
        status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        detail="Supported formats: .xlsx, .csv, .txt, .md",
    )


def _xlsx_rows(body: bytes) -> list[list[Any]]:
    try:
        wb = load_workbook(io.BytesIO(body), read_only=True, data_only=True)
    except Exception as e:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Unreadable spreadsheet"
        ) from e
    try:
        ws = wb.active
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _csv_rows(body: bytes) -> list[list[Any]]:
    text = _decode_text(body)
    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=";,\t")
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ","
    return [row for row in csv.reader(io.StringIO(text), delimiter=delimiter)]


def _decode_text(body: bytes) -> str:
    # Baltic exports are often cp1257 rather than UTF-8.
    try:
        return body.decode("utf-8-sig")
    except UnicodeDecodeError:
        return body.decode("cp1257", errors="replace")
