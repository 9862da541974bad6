from __future__ import annotations

from decimal import Decimal

from bendrija.modules.slips.parsers.statement import parse_statement
from bendrija.modules.slips.segmenter import segment_statements, split_pages


def test_split_pages_understands_common_markers():
    text = "one\f two\n--- Page 3 ---\nthree\n## Page 4\nfour\n-- 5 of 9 --\nfive"
    assert [p.strip() for p in split_pages(text)] == ["one", "two", "three", "four", "five"]


def test_each_anchor_opens_exactly_one_chunk(statement_text):
    first = statement_text(number="000001", address="Vilniaus g. 10-1")
    second = statement_text(number="000002", address="Vilniaus g. 10-2")
    third = statement_text(number="000003", address="Vilniaus g. 10-3")
    doc = "\f".join(["Cover page", first, second, "| T3 Vanduo | m3 | 1 | 1 | 1 |", third])

    chunks = segment_statements(doc)

    assert len(chunks) == 3
    assert [c.start_page_idx for c in chunks] == [1, 2, 4]
    # The continuation page stays with the statement that started before it.
    assert chunks[1].end_page_idx == 3
    assert "T3 Vanduo" in chunks[1].text
    assert "000002" in chunks[1].text and "000003" not in chunks[1].text
    assert all("SĄSKAITA - FAKTŪRA" in c.text for c in chunks)
    assert not any("Cover page" in c.text for c in chunks)


def test_two_statements_on_one_page_are_split(statement_text):
    doc = statement_text(number="000010") + "\n" + statement_text(number="000011")
    chunks = segment_statements(doc)
    assert len(chunks) == 2
    assert "000010" in chunks[0].text and "000011" not in chunks[0].text


def test_series_marker_is_used_when_heading_is_missing(statement_text):
    doc = statement_text(number="000020").replace("## SĄSKAITA - FAKTŪRA\n", "")
    doc += "\f" + statement_text(number="000021").replace("## SĄSKAITA - FAKTŪRA\n", "")
    chunks = segment_statements(doc)
    assert len(chunks) == 2
    assert chunks[0].text.startswith("Serija: TAUR Nr. 000020")


def test_text_without_anchors_yields_nothing():
    assert segment_statements("Just a cover letter\fand an appendix") == []
    assert segment_statements("") == []


def test_heading_phrase_inside_text_does_not_open_a_chunk(statement_text):
    doc = statement_text(number="000030").replace(
        "Paskutinė mokėtina suma",
        "Ši SĄSKAITA - FAKTŪRA galioja be parašo.\nPaskutinė mokėtina suma",
    )
    doc += "\f" + statement_text(number="000031")

    chunks = segment_statements(doc)

    assert len(chunks) == 2
    slip = parse_statement(chunks[0].text)
    assert slip.invoice_number == "TAUR-000030"
    assert slip.total_due == Decimal("25.55")
    assert "total_due" not in slip.degraded_fields
