from __future__ import annotations

import json
import re
from decimal import Decimal
from typing import Any

from bendrija.core.config import settings
from bendrija.core.llm import (
    chat_completion,
    llm_available,
    strip_code_fence,
    truncate_text,
)
from bendrija.modules.slips.normalize import (
    ZERO,
    apartment_from_address,
    coerce_iso_date,
    pad_apartment,
    try_parse_number,
)
from bendrija.modules.slips.parsed import LineItem, ParsedSlip

_NUMBER_OR_NULL = {"anyOf": [{"type": "number"}, {"type": "null"}]}
_STRING_OR_NULL = {"anyOf": [{"type": "string"}, {"type": "null"}]}

_SLIP_PROPERTIES: dict[str, Any] = {
    "invoiceNumber": _STRING_OR_NULL,
    "invoiceDate": _STRING_OR_NULL,
    "dueDate": _STRING_OR_NULL,
    "buyerName": _STRING_OR_NULL,
    "apartmentAddress": _STRING_OR_NULL,
    "apartmentNumber": _STRING_OR_NULL,
    "paymentCode": _STRING_OR_NULL,
    "previousAmount": _NUMBER_OR_NULL,
    "paymentsReceived": _NUMBER_OR_NULL,
    "balance": _NUMBER_OR_NULL,
    "accruedAmount": _NUMBER_OR_NULL,
    "totalDue": _NUMBER_OR_NULL,
    "lineItems": {
        "type": "array",
        "items": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "code": _STRING_OR_NULL,
                "name": {"type": "string"},
                "unit": _STRING_OR_NULL,
                "quantity": _NUMBER_OR_NULL,
                "rate": _NUMBER_OR_NULL,
                "amount": _NUMBER_OR_NULL,
            },
            "required": ["code", "name", "unit", "quantity", "rate", "amount"],
        },
    },
}

_SLIPS_RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "payment_slips_extraction",
        "strict": True,
        "schema": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "slips": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "properties": _SLIP_PROPERTIES,
                        "required": sorted(_SLIP_PROPERTIES),
                    },
                }
            },
            "required": ["slips"],
        },
    },
}

_SYSTEM_PROMPT = (
    "You extract resident payment slips from Lithuanian utility billing statements.\n"
    "Only use information explicitly present in the text. Never guess.\n"
    "If a field is not clearly present, return null for it.\n"
    "Return JSON only."
)

_USER_PROMPT = (
    "Extract EVERY payment slip from the statement text below.\n"
    "Return JSON with this exact shape:\n"
    '{"slips": [{"invoiceNumber": "SERIES-NUMBER", "invoiceDate": "YYYY-MM-DD", '
    '"dueDate": "YYYY-MM-DD", "buyerName": string, "apartmentAddress": string, '
    '"apartmentNumber": "two digits, e.g. 01", "paymentCode": string, '
    '"previousAmount": number, "paymentsReceived": number, "balance": number, '
    '"accruedAmount": number, "totalDue": number, '
    '"lineItems": [{"code": "T1", "name": string, "unit": string, "quantity": number, '
    '"rate": number, "amount": number}]}]}\n\n'
    "Rules:\n"
    '- Invoice number is "Serija" and "Nr." joined with a dash (e.g. TAUR-000582).\n'
    '- Dates like "2025 m. gruodžio 31 d." become "2025-12-31".\n'
    '- Due date comes from "Apmokėti iki:".\n'
    '- Apartment address comes from "Obj.adresas:"; payment code from "mokėtojo kodą:".\n'
    '- totalDue is "MOKĖTINA SUMA"; accruedAmount is "Priskaityta suma".\n'
    "- Amounts use a dot as the decimal separator.\n\n"
    "Statement text:\n"
)

_SLIPS_OBJECT_RE = re.compile(r'\{\s*"slips"\s*:\s*\[')


def slip_ai_available() -> bool:
    return bool(settings.slip_ai_enabled and llm_available())


def extract_slips_with_ai(text: str) -> list[ParsedSlip]:
    """
    Ask the document-analysis service for every slip in ``text``.

    Unusable answers (timeouts, refusals, malformed JSON) yield an empty list; only
    upstream error statuses propagate, as :class:`bendrija.core.llm.UpstreamError`.
    """
    cleaned = truncate_text(text, max_chars=int(settings.slip_ai_max_chars or 0) or 15000)
    if not cleaned:
        return []

    payload = {
        "model": settings.openai_model,
        "temperature": 0,
        "response_format": _SLIPS_RESPONSE_FORMAT,
        "messages": [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": _USER_PROMPT + cleaned},
        ],
    }
    content = chat_completion(payload, timeout=float(settings.slip_ai_timeout_seconds or 60.0))
    if content is None:
        return []

    slips: list[ParsedSlip] = []
    for idx, obj in enumerate(parse_slips_response(content)):
        slip = slip_from_ai(obj, index=idx)
        if slip is not None:
            slips.append(slip)
    return slips


def parse_slips_response(content: str) -> list[dict[str, Any]]:
    """
    Read the ``{"slips": [...]}`` object out of a model answer.

    When the answer is cut off or otherwise broken, every slip object inside the array
    that is valid JSON on its own is still recovered.
    """
    text = strip_code_fence(content)
    m = _SLIPS_OBJECT_RE.search(text)
    if m:
        text = text[m.start() :]

    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("slips"), list):
        return [s for s in parsed["slips"] if isinstance(s, dict)]

    key_idx = text.find('"slips"')
    if key_idx == -1:
        return []
    array_idx = text.find("[", key_idx)
    if array_idx == -1:
        return []
    return _salvage_objects(text, array_idx)


def _salvage_objects(text: str, start: int) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    depth = 0
    in_string = False
    escaped = False
    obj_start = -1
    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            if depth == 0:
                obj_start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and obj_start != -1:
                try:
                    obj = json.loads(text[obj_start : i + 1])
                except ValueError:
                    obj = None
                if isinstance(obj, dict):
                    out.append(obj)
                obj_start = -1
    return out


def slip_from_ai(obj: dict[str, Any], *, index: int) -> ParsedSlip | None:
    def _str(key: str) -> str:
        val = obj.get(key)
        if isinstance(val, (int, float)) and not isinstance(val, bool):
            val = str(int(val)) if float(val).is_integer() else str(val)
        return val.strip() if isinstance(val, str) else ""

    invoice_number = _str("invoiceNumber")
    address = _str("apartmentAddress")
    apartment = pad_apartment(_str("apartmentNumber")) or apartment_from_address(address)
    buyer = _str("buyerName")
    payment_code = _str("paymentCode")
    if not any((invoice_number, apartment, buyer, payment_code)):
        return None

    degraded: list[str] = []

    def _amount(key: str, name: str):
        value = try_parse_number(obj.get(key))
        if value is None:
            degraded.append(name)
            return ZERO
        return value

    total_due = _amount("totalDue", "total_due")
    accrued = try_parse_number(obj.get("accruedAmount"))
    if accrued is None:
        degraded.append("accrued_amount")
        accrued = total_due

    invoice_date = coerce_iso_date(obj.get("invoiceDate"))
    if invoice_date is None:
        degraded.append("invoice_date")
    due_date = coerce_iso_date(obj.get("dueDate"))
    if due_date is None:
        degraded.append("due_date")

    items: list[LineItem] = []
    raw_items = obj.get("lineItems")
    for raw in raw_items if isinstance(raw_items, list) else []:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            continue
        quantity = try_parse_number(raw.get("quantity"))
        items.append(
            LineItem(
                code=str(raw.get("code") or "").strip(),
                name=name,
                unit=str(raw.get("unit") or "").strip() or "vnt.",
                quantity=Decimal("1") if quantity is None else quantity,
                rate=try_parse_number(raw.get("rate")) or ZERO,
                amount=try_parse_number(raw.get("amount")) or ZERO,
            )
        )

    return ParsedSlip(
        invoice_number=invoice_number or f"AI-{index + 1}",
        apartment_number=apartment,
        invoice_date=invoice_date,
        due_date=due_date,
        buyer_name=buyer,
        apartment_address=address,
        payment_code=payment_code or None,
        previous_amount=_amount("previousAmount", "previous_amount"),
        payments_received=_amount("paymentsReceived", "payments_received"),
        balance=_amount("balance", "balance"),
        accrued_amount=accrued,
        total_due=total_due,
        line_items=items,
        degraded_fields=degraded,
        extraction_method="ai",
    )
