from __future__ import annotations

from sqlalchemy import select

from bendrija.core.db import SessionLocal
from bendrija.modules.vendors.models import RecognitionPattern
from bendrija.modules.vendors.recognition import (
    PatternRepository,
    VendorPatternRecognizer,
    VendorRef,
    clean_file_name,
    match_vendor,
    normalize_vendor_name,
    pattern_hash,
    significant_token,
    suggest_category,
)


def _seed(session, vendor_name: str, *, count: int = 1, vendor_id: str | None = "v-1"):
    pattern, _ = PatternRepository(session).upsert(
        vendor_name=vendor_name, vendor_id=vendor_id, cost_category_id="c-1"
    )
    pattern.recognition_count = count
    session.commit()
    return pattern.id


def test_normalization_is_idempotent():
    once = normalize_vendor_name('  UAB  „Prologika“  ')
    assert once == "uab prologika"
    assert normalize_vendor_name(once) == once
    assert pattern_hash('UAB "Prologika"') == pattern_hash("uab   prologika")


def test_significant_token_skips_legal_forms_and_short_words():
    assert significant_token('UAB "Prologika"') == "prologika"
    assert significant_token("AB Ignitis grupė") == "ignitis"
    assert significant_token("UAB Vė") is None
    assert significant_token(None) is None


def test_clean_file_name():
    assert clean_file_name("UAB_Prologika-saskaita_2024.pdf") == "uab prologika saskaita 2024"


def test_recurring_vendor_is_recognized_from_file_name():
    with SessionLocal() as session:
        pattern_id = _seed(session, 'UAB "Prologika"', count=3)

        match = VendorPatternRecognizer(PatternRepository(session)).recognize(
            clean_file_name("UAB_Prologika_saskaita_2024.pdf")
        )

        assert match is not None
        assert match.pattern_id == pattern_id
        assert match.vendor_id == "v-1"
        assert match.cost_category_id == "c-1"
        assert match.recognition_count == 4

    with SessionLocal() as session:
        assert session.get(RecognitionPattern, pattern_id).recognition_count == 4


def test_each_recognition_counts_exactly_once():
    with SessionLocal() as session:
        pattern_id = _seed(session, "Ignitis")
        recognizer = VendorPatternRecognizer(PatternRepository(session))
        counts = [recognizer.recognize("ignitis saskaita").recognition_count for _ in range(3)]
        assert counts == [2, 3, 4]
        assert recognizer.recognize("kitas tiekejas") is None
        assert recognizer.recognize("   ") is None
        assert session.get(RecognitionPattern, pattern_id).recognition_count == 4


def test_most_frequent_pattern_wins():
    with SessionLocal() as session:
        _seed(session, "Vilniaus vandenys", count=2, vendor_id="rare")
        _seed(session, "Vilniaus šilumos tinklai", count=9, vendor_id="frequent")
        match = VendorPatternRecognizer(PatternRepository(session)).recognize("vilniaus 2025")
        assert match.vendor_id == "frequent"


def test_upsert_is_idempotent_and_keeps_the_count():
    with SessionLocal() as session:
        repo = PatternRepository(session)
        first, created = repo.upsert(
            vendor_name="UAB Prologika", vendor_id="v-1", cost_category_id=None
        )
        assert created is True
        assert first.recognition_count == 1
        assert first.significant_token == "prologika"

        first.recognition_count = 7
        session.commit()

        again, created = repo.upsert(
            vendor_name='uab "PROLOGIKA"', vendor_id="v-2", cost_category_id="c-9"
        )
        assert created is False
        assert again.id == first.id
        assert again.recognition_count == 7
        assert again.vendor_id == "v-2"
        assert again.cost_category_id == "c-9"
        assert len(list(session.scalars(select(RecognitionPattern)))) == 1


def test_match_vendor_uses_the_token_rule_without_counting():
    vendors = [VendorRef(id="1", name="UAB Ignitis"), VendorRef(id="2", name='UAB "Prologika"')]
    with SessionLocal() as session:
        pattern_id = _seed(session, "Prologika", count=5)
        assert match_vendor("uab prologika saskaita", vendors).id == "2"
        assert match_vendor("telia 2024", vendors) is None
        assert match_vendor("", vendors) is None
        assert session.get(RecognitionPattern, pattern_id).recognition_count == 5


def test_suggest_category_by_mutual_containment():
    categories = [("c-1", "Komunaliniai"), ("c-2", "Remonto darbai")]
    assert suggest_category("remonto", categories) == "c-2"
    assert suggest_category("Komunaliniai mokesčiai", categories) == "c-1"
    assert suggest_category("Draudimas", categories) is None
    assert suggest_category(None, categories) is None


def test_independent_sessions_never_lose_a_recognition():
    with SessionLocal() as setup:
        pattern_id = _seed(setup, 'UAB "Prologika"', count=3)

    with SessionLocal() as session_a, SessionLocal() as session_b:
        stale = session_a.get(RecognitionPattern, pattern_id)
        assert stale.recognition_count == 3

        other = VendorPatternRecognizer(PatternRepository(session_b)).recognize("prologika 2024")
        assert other.recognition_count == 4

        mine = VendorPatternRecognizer(PatternRepository(session_a)).recognize("uab prologika")
        assert mine.recognition_count == 5

    with SessionLocal() as session:
        assert session.get(RecognitionPattern, pattern_id).recognition_count == 5
