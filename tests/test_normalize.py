from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from bendrija.modules.slips.normalize import (
    apartment_from_address,
    coerce_date,
    coerce_iso_date,
    coerce_period_month,
    pad_apartment,
    parse_lt_date,
    parse_number,
    try_parse_number,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("45,30", Decimal("45.30")),
        ("1 234,56", Decimal("1234.56")),
        ("1\u00a0234,56", Decimal("1234.56")),
        ("1\u202f234,56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("-12,5", Decimal("-12.5")),
        ("− 5,00", Decimal("-5.00")),
        ("€ 150,00", Decimal("150.00")),
        (7, Decimal("7")),
    ],
)
def test_parse_number_reads_locale_formats(raw, expected):
    assert parse_number(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "-", ",", "n/a"])
def test_parse_number_degrades_to_zero(raw):
    assert parse_number(raw) == Decimal("0")
    assert try_parse_number(raw) is None


def test_apartment_helpers_zero_pad():
    assert apartment_from_address("V.Mykolaičio-Putino g. 10-7") == "07"
    assert apartment_from_address("Vilniaus g. 5") == ""
    assert pad_apartment("3") == "03"
    assert pad_apartment(12.0) == "12"
    assert pad_apartment("12A") == "12A"


def test_dates():
    assert parse_lt_date("Data: 2025 m. gruodžio 31 d.") == date(2025, 12, 31)
    assert parse_lt_date("2025 m. nežinomo 31 d.") is None
    assert coerce_date("31.12.2025") == date(2025, 12, 31)
    assert coerce_date("2025.12.31") == date(2025, 12, 31)
    assert coerce_date("YYYY-MM-DD") is None
    assert coerce_iso_date("2025-02-30") is None
    assert coerce_iso_date("31.12.2025") is None


def test_period_month_falls_back_to_current_month():
    today = date(2026, 3, 17)
    assert coerce_period_month("2025-12", today=today) == date(2025, 12, 1)
    assert coerce_period_month("2025-12-15", today=today) == date(2025, 12, 1)
    assert coerce_period_month("gruodis", today=today) == date(2026, 3, 1)
    assert coerce_period_month("2025-13", today=today) == date(2026, 3, 1)
