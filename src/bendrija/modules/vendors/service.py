from __future__ import annotations

import logging
import re
import time
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from bendrija.core.llm import UpstreamError
from bendrija.core.logging import get_logger, log_event, monotonic_ms
from bendrija.modules.slips.normalize import coerce_iso_date, try_parse_number
from bendrija.modules.vendors.ai import analyze_invoice_with_ai, invoice_ai_available
from bendrija.modules.vendors.models import RecognitionPattern
from bendrija.modules.vendors.recognition import (
    PatternMatch,
    PatternRepository,
    VendorPatternRecognizer,
    VendorRef,
    clean_file_name,
    match_vendor,
    suggest_category,
)
from bendrija.modules.vendors.schemas import (
    AnalyzeInvoiceRequest,
    PatternConfirm,
    PatternMatchOut,
    VendorInvoiceAnalysis,
)

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.5

_INVOICE_NO_RE = re.compile(r"(?:SF|INV|SAS|NR)?[-_]?(\d{4,})", re.I)
_FILE_DATE_RE = re.compile(r"(\d{4})[-_]?(\d{2})[-_]?(\d{2})")
_FILE_AMOUNT_RE = re.compile(r"(\d+)[,.](\d{2})(?:eur|€)?", re.I)


def analyze_vendor_invoice(
    session: Session, *, request: AnalyzeInvoiceRequest
) -> VendorInvoiceAnalysis:
    """
    Best-effort facts and suggestions for one vendor invoice.

    Never fails on inconclusive input: callers read ``confidence`` and ``is_recurring``
    instead of an error channel. Upstream analyzer failures are logged and ignored.
    """
    t0 = time.monotonic()
    vendors = [VendorRef(id=v.id, name=v.name) for v in request.vendors]
    recognizer = VendorPatternRecognizer(PatternRepository(session))
    candidate = clean_file_name(request.file_name)

    match = recognizer.recognize(candidate)
    if match:
        _log_pattern_match(match, source="file_name")
    suggested_vendor_id = match.vendor_id if match else None
    if not suggested_vendor_id:
        vendor = match_vendor(candidate, vendors)
        if vendor:
            suggested_vendor_id = vendor.id
            log_event(
                logger, "vendor_invoice.vendor.matched", vendor_id=vendor.id, source="file_name"
            )

    ai = _run_analyzer(request)
    ai_vendor_name = _str(ai.get("vendor_name"))

    if match is None and ai_vendor_name:
        match = recognizer.recognize(ai_vendor_name)
        if match:
            _log_pattern_match(match, source="vendor_name")
            suggested_vendor_id = match.vendor_id or suggested_vendor_id
    if not suggested_vendor_id and ai_vendor_name:
        vendor = match_vendor(ai_vendor_name, vendors)
        if vendor:
            suggested_vendor_id = vendor.id
            log_event(
                logger, "vendor_invoice.vendor.matched", vendor_id=vendor.id, source="vendor_name"
            )

    suggested_category_id = match.cost_category_id if match else None
    if not suggested_category_id:
        suggested_category_id = suggest_category(
            _str(ai.get("suggested_category")),
            [(c.id, c.name) for c in request.categories],
        )

    analysis = VendorInvoiceAnalysis(
        vendor_name=ai_vendor_name or vendor_from_file_name(request.file_name),
        vendor_company_code=_str(ai.get("vendor_company_code")),
        vendor_vat_code=_str(ai.get("vendor_vat_code")),
        vendor_category=_str(ai.get("vendor_category")),
        suggested_vendor_id=suggested_vendor_id,
        invoice_number=_str(ai.get("invoice_number")) or invoice_number_from_file_name(
            request.file_name
        ),
        invoice_date=coerce_iso_date(ai.get("invoice_date"))
        or date_from_file_name(request.file_name),
        due_date=coerce_iso_date(ai.get("due_date")),
        subtotal=_amount(ai.get("subtotal")),
        vat_amount=_amount(ai.get("vat_amount")),
        total_amount=_amount(ai.get("total_amount")) or amount_from_file_name(request.file_name),
        description=_str(ai.get("description")) or f"Sąskaita: {request.file_name}",
        suggested_category_id=suggested_category_id,
        confidence=_confidence(ai.get("confidence")),
        is_recurring=match is not None,
        pattern_match=(
            PatternMatchOut(vendor_id=match.vendor_id, cost_category_id=match.cost_category_id)
            if match
            else None
        ),
    )
    log_event(
        logger,
        "vendor_invoice.analyze.finish",
        is_recurring=analysis.is_recurring,
        has_vendor=bool(analysis.suggested_vendor_id),
        has_category=bool(analysis.suggested_category_id),
        used_ai=bool(ai),
        duration_ms=monotonic_ms(t0),
    )
    return analysis


def _run_analyzer(request: AnalyzeInvoiceRequest) -> dict[str, Any]:
    if not invoice_ai_available():
        return {}
    log_event(
        logger,
        "vendor_invoice.ai.start",
        file_type=request.file_type,
        with_document=bool(request.file_base64),
    )
    try:
        out = analyze_invoice_with_ai(
            file_name=request.file_name,
            file_type=request.file_type,
            file_base64=request.file_base64,
            vendors=request.vendors,
            categories=request.categories,
        )
    except UpstreamError as e:
        log_event(
            logger,
            "vendor_invoice.ai.upstream_error",
            level=logging.WARNING,
            error_type=type(e).__name__,
            upstream_status=e.upstream_status,
        )
        return {}
    log_event(logger, "vendor_invoice.ai.finish", field_count=len(out))
    return out


def _log_pattern_match(match: PatternMatch, *, source: str) -> None:
    log_event(
        logger,
        "vendor_invoice.pattern.matched",
        pattern_id=str(match.pattern_id),
        vendor_id=match.vendor_id,
        recognition_count=match.recognition_count,
        source=source,
    )


def _str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _amount(value: Any) -> float | None:
    parsed = try_parse_number(value)
    return float(parsed) if parsed is not None else None


def _confidence(value: Any) -> float:
    parsed = try_parse_number(value)
    if parsed is None or parsed <= 0:
        return DEFAULT_CONFIDENCE
    return min(float(parsed), 1.0)


def vendor_from_file_name(file_name: str) -> str | None:
    """First two words longer than two letters, title-cased."""
    clean = re.sub(r"\.[^.]+$", "", file_name or "")
    words = [w for w in re.sub(r"[-_]", " ", clean).split(" ") if len(w) > 2]
    if not words:
        return None
    return " ".join(w[:1].upper() + w[1:].lower() for w in words[:2])


def invoice_number_from_file_name(file_name: str) -> str | None:
    m = _INVOICE_NO_RE.search(file_name or "")
    if not m:
        return None
    return m.group(0).strip("-_").upper() or None


def date_from_file_name(file_name: str) -> date | None:
    m = _FILE_DATE_RE.search(file_name or "")
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def amount_from_file_name(file_name: str) -> float | None:
    m = _FILE_AMOUNT_RE.search(file_name or "")
    if not m:
        return None
    return float(f"{m.group(1)}.{m.group(2)}")


def confirm_pattern(
    session: Session, *, payload: PatternConfirm
) -> tuple[RecognitionPattern, bool]:
    pattern, created = PatternRepository(session).upsert(
        vendor_name=payload.vendor_name,
        vendor_id=payload.vendor_id,
        cost_category_id=payload.cost_category_id,
    )
    log_event(
        logger,
        "vendor_invoice.pattern.upserted",
        pattern_id=str(pattern.id),
        created=created,
        significant_token=pattern.significant_token,
        vendor_id=pattern.vendor_id,
    )
    return pattern, created


def list_patterns(session: Session) -> list[RecognitionPattern]:
    return PatternRepository(session).list_by_frequency()
