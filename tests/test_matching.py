from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from bendrija.modules.slips.matching import (
    AssignmentStatus,
    MatchTier,
    ResidentMatcher,
    RosterEntry,
    name_similarity,
)
from bendrija.modules.slips.parsed import ParsedSlip


def _slip(**kwargs) -> ParsedSlip:
    data = {"invoice_number": "SF-12345", "apartment_number": ""}
    data.update(kwargs)
    return ParsedSlip(**data)


def _resident(name: str = "Ona Onaitė", **kwargs) -> RosterEntry:
    return RosterEntry(id=uuid.uuid4(), full_name=name, **kwargs)


def test_apartment_number_wins_over_differing_payment_code():
    resident = _resident(apartment_number="7", payment_code="11111")
    slip = _slip(apartment_number="07", payment_code="98765", total_due=Decimal("45.30"))

    result = ResidentMatcher([resident]).match(slip)

    assert result.resident == resident
    assert result.matched_by == MatchTier.APARTMENT_NUMBER
    assert result.assignment_status == AssignmentStatus.AUTO_MATCHED
    assert "07" in result.reason


@pytest.mark.parametrize(("slip_apt", "roster_apt"), [("01", "1"), ("1", "01"), (" 01 ", "1")])
def test_apartment_match_ignores_leading_zero(slip_apt, roster_apt):
    resident = _resident(apartment_number=roster_apt)
    result = ResidentMatcher([resident]).match(_slip(apartment_number=slip_apt))
    assert result.matched_by == MatchTier.APARTMENT_NUMBER


def test_payment_code_tier():
    resident = _resident(apartment_number="9", payment_code="12-345")
    result = ResidentMatcher([resident]).match(_slip(apartment_number="5", payment_code="12345"))
    assert result.resident == resident
    assert result.matched_by == MatchTier.PAYMENT_CODE


def test_exact_name_tier_is_case_and_space_insensitive():
    resident = _resident("Jonas  Jonaitis")
    result = ResidentMatcher([resident]).match(_slip(buyer_name="  jonas jonaitis "))
    assert result.matched_by == MatchTier.NAME_EXACT


def test_first_roster_entry_wins():
    a = _resident("A", apartment_number="3")
    b = _resident("B", apartment_number="03")
    result = ResidentMatcher([a, b]).match(_slip(apartment_number="03"))
    assert result.resident == a


def test_no_match_is_pending_with_explanation():
    resident = _resident(apartment_number="1", payment_code="111")
    result = ResidentMatcher([resident]).match(
        _slip(apartment_number="02", payment_code="222", buyer_name="Kazys Kazlauskas")
    )
    assert result.resident is None
    assert result.matched_by is None
    assert result.assignment_status == AssignmentStatus.PENDING
    assert len(result.failed_attempts) == 3
    assert 'Apartment "02"' in result.explanation


def test_fuzzy_tier_only_when_threshold_configured():
    resident = _resident("Jonaitis Jonas Petras")
    slip = _slip(buyer_name="Jonas Jonaitis")

    assert ResidentMatcher([resident]).match(slip).resident is None

    result = ResidentMatcher([resident], fuzzy_threshold=0.6).match(slip)
    assert result.matched_by == MatchTier.NAME_FUZZY
    assert "%" in result.reason


def test_name_similarity():
    assert name_similarity("Jonas Jonaitis", "jonas jonaitis") == 1.0
    assert name_similarity("Jonas", "Jonas Jonaitis") == 0.9
    assert name_similarity("", "Jonas") == 0.0
