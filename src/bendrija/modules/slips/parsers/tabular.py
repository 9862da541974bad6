from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from bendrija.modules.slips.normalize import (
    ZERO,
    apartment_from_address,
    cell_text,
    coerce_date,
    pad_apartment,
    try_parse_number,
)
from bendrija.modules.slips.parsed import ParsedSlip

HEADER_SCAN_ROWS = 10

_AMOUNT_TOKENS = ("suma", "mokėti", "amount", "payable", "total")

# Checked in order; the first column kind whose token occurs in a header cell wins,
# so "Sąskaitos data" is a date and "Buto nr." an apartment, not an invoice number.
_HEADER_VOCABULARY: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("due_date", ("termin", "iki", "due", "deadline")),
    ("invoice_date", ("data", "date")),
    ("payment_code", ("kod", "code")),
    ("apartment", ("but", "apart", "flat")),
    ("address", ("adres", "address")),
    ("buyer", ("pirk", "vard", "name")),
    ("amount", _AMOUNT_TOKENS),
    ("invoice", ("sąskait", "invoice", "nr", "number")),
)


def row_values(row: Any) -> list[Any]:
    if row is None:
        return []
    if isinstance(row, Mapping):
        return list(row.values())
    if isinstance(row, Sequence) and not isinstance(row, (str, bytes)):
        return list(row)
    return [row]


def classify_header(cell: Any) -> str | None:
    text = cell_text(cell).lower()
    if not text:
        return None
    for kind, tokens in _HEADER_VOCABULARY:
        if any(tok in text for tok in tokens):
            return kind
    return None


def _names_amount(cell: Any) -> bool:
    text = cell_text(cell).lower()
    return any(tok in text for tok in _AMOUNT_TOKENS)


def find_header(rows: Sequence[Any]) -> tuple[int, dict[str, int]]:
    """
    Locate the header row among the first rows and map column kinds to positions.

    A deadline heading that also names a sum ("Amount due", "Mokėti iki") doubles as
    the amount column when the row has no column of its own for the amount.
    Returns ``(-1, {})`` when no row carries a recognizable heading.
    """
    for idx, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        values = row_values(row)
        columns: dict[str, int] = {}
        amount_fallback: int | None = None
        for pos, value in enumerate(values):
            kind = classify_header(value)
            if kind is None:
                continue
            if kind == "due_date" and amount_fallback is None and _names_amount(value):
                amount_fallback = pos
            if kind == "invoice_date" and "invoice_date" in columns:
                # A second date column is the payment deadline.
                columns.setdefault("due_date", pos)
                continue
            columns.setdefault(kind, pos)
        if amount_fallback is not None:
            columns.setdefault("amount", amount_fallback)
        if columns:
            return idx, columns
    return -1, {}


def parse_rows(rows: Sequence[Any]) -> list[ParsedSlip]:
    """One slip per spreadsheet data row; rows with neither apartment nor buyer are totals/notes."""
    header_idx, columns = find_header(rows)
    slips: list[ParsedSlip] = []

    for i in range(header_idx + 1, len(rows)):
        values = row_values(rows[i])
        if not values:
            continue

        def _get(kind: str) -> Any:
            pos = columns.get(kind)
            if pos is None or pos >= len(values):
                return None
            return values[pos]

        address = cell_text(_get("address"))
        apartment = pad_apartment(_get("apartment")) or apartment_from_address(address)
        buyer = cell_text(_get("buyer"))
        if not apartment and not buyer:
            continue

        degraded: list[str] = []
        total = try_parse_number(_get("amount"))
        if total is None:
            degraded.append("total_due")
            total = ZERO
        invoice_date = coerce_date(_get("invoice_date"))
        if invoice_date is None:
            degraded.append("invoice_date")
        due_date = coerce_date(_get("due_date"))
        if due_date is None:
            degraded.append("due_date")

        slips.append(
            ParsedSlip(
                invoice_number=cell_text(_get("invoice")) or f"EXCEL-{i}",
                apartment_number=apartment,
                invoice_date=invoice_date,
                due_date=due_date,
                buyer_name=buyer,
                apartment_address=address,
                payment_code=cell_text(_get("payment_code")) or None,
                accrued_amount=total,
                total_due=total,
                degraded_fields=degraded,
                extraction_method="tabular",
            )
        )
    return slips
