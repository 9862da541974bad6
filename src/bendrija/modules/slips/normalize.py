"""
Lenient value normalization for Lithuanian billing statements.

Statement layouts vary between issuers and months, so a single unreadable token must
never abort a batch. Numbers degrade to zero and dates to ``None``; callers that need
to know whether a value was actually read use the ``try_*`` variants.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")

LT_MONTHS: dict[str, int] = {
    "sausio": 1,
    "vasario": 2,
    "kovo": 3,
    "balandžio": 4,
    "gegužės": 5,
    "birželio": 6,
    "liepos": 7,
    "rugpjūčio": 8,
    "rugsėjo": 9,
    "spalio": 10,
    "lapkričio": 11,
    "gruodžio": 12,
}

_NON_NUMERIC_RE = re.compile(r"[^0-9,.\-]")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DOTTED_DATE_RE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{4})$")
_YMD_DOTTED_RE = re.compile(r"^(\d{4})[./](\d{1,2})[./](\d{1,2})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})(?:-\d{1,2})?$")
_LT_DATE_RE = re.compile(r"(\d{4})\s*m\.\s*(\w+)\s*(\d{1,2})\s*d\.")


def try_parse_number(raw: object) -> Decimal | None:
    """Parse a locale-formatted numeric token, or return ``None`` when nothing numeric is there."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        d = Decimal(str(raw))
        return d if d.is_finite() else None

    s = str(raw).replace("−", "-")
    s = re.sub(r"\s+", "", s)
    s = _NON_NUMERIC_RE.sub("", s)
    if not any(ch.isdigit() for ch in s):
        return None

    negative = s.startswith("-")
    s = s.replace("-", "").strip(",.")
    if not s:
        return None

    if "," in s and "." in s:
        decimal_sep = "," if s.rfind(",") > s.rfind(".") else "."
        thousands_sep = "." if decimal_sep == "," else ","
        s = s.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif "," in s:
        s = s.replace(",", ".") if s.count(",") == 1 else s.replace(",", "")
    elif s.count(".") > 1:
        s = s.replace(".", "")

    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    return -value if negative else value


def parse_number(raw: object) -> Decimal:
    value = try_parse_number(raw)
    return ZERO if value is None else value


def pad_apartment(raw: object) -> str:
    s = re.sub(r"\s+", "", cell_text(raw))
    if not s:
        return ""
    return s.zfill(2) if s.isdigit() else s


def apartment_from_address(address: str | None) -> str:
    """``"Vilniaus g. 10-7"`` -> ``"07"``: the unit part of a ``building-unit`` pair."""
    m = re.search(r"(\d+)\s*-\s*(\d+)", address or "")
    return m.group(2).zfill(2) if m else ""


def cell_text(raw: object) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    return str(raw).strip()


def parse_lt_date(text: str | None) -> date | None:
    """``"2025 m. gruodžio 31 d."`` -> ``date(2025, 12, 31)``."""
    m = _LT_DATE_RE.search(text or "")
    if not m:
        return None
    month = LT_MONTHS.get(m.group(2).lower())
    if not month:
        return None
    try:
        return date(int(m.group(1)), month, int(m.group(3)))
    except ValueError:
        return None


def coerce_date(raw: object) -> date | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    if not s or s.upper() == "YYYY-MM-DD":
        return None
    for pattern, order in (
        (_ISO_DATE_RE, (1, 2, 3)),
        (_YMD_DOTTED_RE, (1, 2, 3)),
        (_DOTTED_DATE_RE, (3, 2, 1)),
    ):
        m = pattern.match(s)
        if not m:
            continue
        y, mo, d = (int(m.group(i)) for i in order)
        try:
            return date(y, mo, d)
        except ValueError:
            return None
    if "m." in s:
        return parse_lt_date(s)
    return None


def coerce_iso_date(raw: object) -> date | None:
    """Strict ``YYYY-MM-DD`` only; used for values produced by the generative analyzer."""
    s = str(raw or "").strip()
    m = _ISO_DATE_RE.match(s)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def coerce_period_month(raw: object, *, today: date | None = None) -> date:
    """Billing periods are stored as the first day of the month; unusable input means this month."""
    today = today or date.today()
    fallback = today.replace(day=1)
    if isinstance(raw, date):
        return raw.replace(day=1)
    s = str(raw or "").strip()
    m = _MONTH_RE.match(s)
    if not m:
        return fallback
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return fallback
    return date(year, month, 1)
