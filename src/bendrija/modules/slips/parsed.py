from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from bendrija.modules.slips.normalize import ZERO

BALANCE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class LineItem:
    code: str
    name: str
    unit: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class MeterReading:
    reading_from: Decimal
    reading_to: Decimal
    difference: Decimal


@dataclass
class UtilityReadings:
    hot_water: MeterReading | None = None
    cold_water_meter: str | None = None
    electricity_day: MeterReading | None = None
    electricity_night: MeterReading | None = None

    def is_empty(self) -> bool:
        return not any(
            (self.hot_water, self.cold_water_meter, self.electricity_day, self.electricity_night)
        )


@dataclass
class ParsedSlip:
    """One resident's statement for one billing period, as read from a document."""

    invoice_number: str
    apartment_number: str
    invoice_date: date | None = None
    due_date: date | None = None
    period_month: date | None = None
    buyer_name: str = ""
    apartment_address: str = ""
    payment_code: str | None = None
    previous_amount: Decimal = ZERO
    payments_received: Decimal = ZERO
    balance: Decimal = ZERO
    accrued_amount: Decimal = ZERO
    total_due: Decimal = ZERO
    line_items: list[LineItem] = field(default_factory=list)
    utility_readings: UtilityReadings = field(default_factory=UtilityReadings)
    # Names of fields that could not be read and were defaulted.
    degraded_fields: list[str] = field(default_factory=list)
    extraction_method: str = "regex"

    def balance_consistent(self) -> bool:
        expected = self.previous_amount - self.payments_received + self.accrued_amount
        return abs(self.total_due - expected) <= BALANCE_TOLERANCE

    def line_items_json(self) -> list[dict[str, Any]]:
        return [{k: _jsonable(v) for k, v in asdict(item).items()} for item in self.line_items]

    def utility_readings_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        r = self.utility_readings
        for key, reading in (
            ("hot_water", r.hot_water),
            ("electricity_day", r.electricity_day),
            ("electricity_night", r.electricity_night),
        ):
            if reading is not None:
                out[key] = {
                    "from": _jsonable(reading.reading_from),
                    "to": _jsonable(reading.reading_to),
                    "difference": _jsonable(reading.difference),
                }
        if r.cold_water_meter:
            out["cold_water"] = {"meter_number": r.cold_water_meter}
        return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value
