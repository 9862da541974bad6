from __future__ import annotations

import re
from decimal import Decimal

from bendrija.modules.slips.normalize import (
    ZERO,
    apartment_from_address,
    coerce_iso_date,
    parse_lt_date,
    parse_number,
    try_parse_number,
)
from bendrija.modules.slips.parsed import LineItem, MeterReading, ParsedSlip, UtilityReadings

_AMOUNT = (
    r"(-?[ \t]*(?:\d{1,3}(?:\.\d{3})+,\d+"
    r"|\d{1,3}(?:[ \u00a0\u202f]\d{3})+(?:[.,]\d+)?"
    r"|\d+(?:[.,]\d+)?))"
)

_AMOUNT_FIELDS: tuple[tuple[str, str], ...] = (
    ("previous_amount", r"Paskutinė mokėtina suma buvo,?\s*€?:\s*" + _AMOUNT),
    ("payments_received", r"Gautos įmokos,?\s*€?:\s*" + _AMOUNT),
    ("balance", r"Skola \(\+\) / Permoka \(-\),?\s*€?:\s*" + _AMOUNT),
    ("accrued_amount", r"Priskaityta suma,?\s*€?:\s*" + _AMOUNT),
    ("total_due", r"MOKĖTINA SUMA,?\s*€?:\s*" + _AMOUNT),
)

_LINE_CODE_RE = re.compile(r"^(T\d+)$")
_LINE_CODE_NAME_RE = re.compile(r"^(T\d+)\|?\s+(.+)$")


def parse_statement(text: str) -> ParsedSlip | None:
    """
    Read one resident statement chunk (Lithuanian utility-statement layout).

    Every field has its own rule and fails on its own: a missing or unreadable value
    becomes an empty/zero default and is listed in ``degraded_fields``. Only the two
    keys needed to persist and route a slip are mandatory; without an invoice number
    or an apartment number the chunk is not a statement and ``None`` is returned.
    """
    invoice_number = _invoice_number(text)
    apartment_address = _find(r"Obj\.adresas:[ \t]*\n?[ \t]*([^\n]+)", text) or ""
    apartment_number = apartment_from_address(apartment_address)
    if not invoice_number or not apartment_number:
        return None

    degraded: list[str] = []

    invoice_date = parse_lt_date(text)
    if invoice_date is None:
        degraded.append("invoice_date")

    due_date = None
    due_raw = _find(r"Apmokėti iki:\s*(\d{4}-\d{2}-\d{2})", text)
    if due_raw:
        due_date = coerce_iso_date(due_raw)
    if due_date is None:
        degraded.append("due_date")

    buyer_name = _find(r"Pirkėjas:[ \t]*\n?[ \t]*([^\n]+)", text) or ""
    payment_code = _find(r"mokėtojo\s+kod[ąa]:?\s*(\d+)", text)

    amounts: dict[str, Decimal] = {}
    for name, pattern in _AMOUNT_FIELDS:
        value = try_parse_number(_find(pattern, text))
        if value is None:
            degraded.append(name)
            value = ZERO
        amounts[name] = value

    slip = ParsedSlip(
        invoice_number=invoice_number,
        apartment_number=apartment_number,
        invoice_date=invoice_date,
        due_date=due_date,
        buyer_name=buyer_name,
        apartment_address=apartment_address,
        payment_code=payment_code,
        line_items=parse_line_items(text),
        utility_readings=parse_utility_readings(text),
        degraded_fields=degraded,
        extraction_method="regex",
        **amounts,
    )
    if not slip.balance_consistent():
        slip.degraded_fields.append("balance_mismatch")
    return slip


def parse_line_items(text: str) -> list[LineItem]:
    """Rows of the ``| Pavadinimas | ... |`` service table; short or uncoded rows are skipped."""
    lines = text.splitlines()
    start = next(
        (i for i, ln in enumerate(lines) if "|" in ln and "Pavadinimas" in ln),
        None,
    )
    if start is None:
        return []

    items: list[LineItem] = []
    for row in lines[start + 1 :]:
        if "|" not in row:
            break
        if "---" in row:
            continue
        cells = [c.strip() for c in row.split("|")]
        cells = [c for c in cells if c]
        if len(cells) < 5:
            continue

        if _LINE_CODE_RE.match(cells[0]) and len(cells) >= 6:
            code, name, rest = cells[0], cells[1], cells[2:]
        else:
            m = _LINE_CODE_NAME_RE.match(cells[0])
            if not m:
                continue
            code, name, rest = m.group(1), m.group(2).strip(), cells[1:]

        items.append(
            LineItem(
                code=code,
                name=name,
                unit=rest[0] or "vnt.",
                quantity=parse_number(rest[1]),
                rate=parse_number(rest[2]),
                amount=parse_number(rest[3]),
            )
        )
    return items


def parse_utility_readings(text: str) -> UtilityReadings:
    readings = UtilityReadings()

    hot = _section(text, "Karštas vanduo")
    if hot:
        readings.hot_water = _first_reading(hot.splitlines())

    cold = _section(text, "Šaltas vanduo")
    if cold:
        readings.cold_water_meter = _cold_water_meter(cold)

    for heading, body in _sections(text, "Elektr"):
        rows = body.splitlines()
        heading_l = heading.lower()
        if "dien" in heading_l and readings.electricity_day is None:
            readings.electricity_day = _first_reading(rows)
            continue
        if "nakt" in heading_l and readings.electricity_night is None:
            readings.electricity_night = _first_reading(rows)
            continue
        if readings.electricity_day is None:
            readings.electricity_day = _first_reading([r for r in rows if "dien" in r.lower()])
        if readings.electricity_night is None:
            readings.electricity_night = _first_reading([r for r in rows if "nakt" in r.lower()])

    return readings


def _invoice_number(text: str) -> str | None:
    m = re.search(r"Serija:\s*(\w+)\s*Nr\.\s*(\d+)", text)
    if not m:
        return None
    return f"{m.group(1)}-{m.group(2)}"


def _find(pattern: str, text: str) -> str | None:
    m = re.search(pattern, text, re.I)
    if not m:
        return None
    value = m.group(1).strip()
    return value or None


def _sections(text: str, heading_word: str) -> list[tuple[str, str]]:
    """``(heading, body)`` for every markdown heading containing ``heading_word``."""
    out: list[tuple[str, str]] = []
    lines = text.splitlines()
    for i, ln in enumerate(lines):
        stripped = ln.strip()
        if not stripped.startswith("#") or heading_word.lower() not in stripped.lower():
            continue
        body: list[str] = []
        for nxt in lines[i + 1 :]:
            if nxt.strip().startswith("#"):
                break
            body.append(nxt)
        out.append((stripped, "\n".join(body)))
    return out


def _section(text: str, heading_word: str) -> str | None:
    found = _sections(text, heading_word)
    return found[0][1] if found else None


def _numeric_cells(row: str) -> list[Decimal]:
    out: list[Decimal] = []
    for cell in row.split("|"):
        c = cell.strip()
        if not c or not re.fullmatch(r"-?\d[\d\s.,]*", c):
            continue
        value = try_parse_number(c)
        if value is not None:
            out.append(value)
    return out


def _first_reading(rows: list[str]) -> MeterReading | None:
    # Reading rows end with: previous reading | current reading | consumption.
    for row in rows:
        if "|" not in row or "---" in row:
            continue
        nums = _numeric_cells(row)
        if len(nums) >= 3:
            reading_from, reading_to, difference = nums[-3:]
            return MeterReading(reading_from, reading_to, difference)
    return None


def _cold_water_meter(section: str) -> str | None:
    rows = section.splitlines()
    for i, row in enumerate(rows):
        if not re.search(r"Sk\.\s*Nr\.", row):
            continue
        for nxt in rows[i + 1 :]:
            if "|" not in nxt or "---" in nxt:
                continue
            m = re.search(r"\|\s*(\d+)\s*\|", nxt)
            if m:
                return m.group(1)
        break
    return None
