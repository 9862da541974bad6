from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from bendrija.core.logging import get_logger, log_event
from bendrija.modules.slips.ai import extract_slips_with_ai, slip_ai_available
from bendrija.modules.slips.normalize import cell_text
from bendrija.modules.slips.parsed import ParsedSlip
from bendrija.modules.slips.parsers.statement import parse_statement
from bendrija.modules.slips.parsers.tabular import parse_rows, row_values
from bendrija.modules.slips.segmenter import segment_statements

logger = get_logger(__name__)


@dataclass(frozen=True)
class TextSource:
    """Plain text of a combined billing document (already converted from PDF)."""

    text: str
    kind: str = "text"


@dataclass(frozen=True)
class RowsSource:
    """Spreadsheet export rows; each row is a list of cells or a column->cell mapping."""

    rows: Sequence[Any]
    kind: str = "rows"


Source = TextSource | RowsSource


def resolve_source(*, parsed_text: str | None, excel_data: Sequence[Any] | None) -> Source | None:
    """
    Decide once which shape the upload has. Rows win over text when both are given;
    ``None`` means there is nothing to extract from.
    """
    if excel_data:
        rows = [r for r in excel_data if any(cell_text(v) for v in row_values(r))]
        if rows:
            return RowsSource(rows=rows)
    if parsed_text and parsed_text.strip():
        return TextSource(text=parsed_text)
    return None


class Extractor(Protocol):
    name: str

    def attempt(self, source: Source) -> list[ParsedSlip]: ...


class StatementTextExtractor:
    name = "regex"

    def attempt(self, source: Source) -> list[ParsedSlip]:
        if not isinstance(source, TextSource):
            return []
        chunks = segment_statements(source.text)
        slips = [s for s in (parse_statement(c.text) for c in chunks) if s is not None]
        log_event(
            logger,
            "slips.segment.finish",
            chunk_count=len(chunks),
            slip_count=len(slips),
        )
        return slips


class SpreadsheetExtractor:
    name = "tabular"

    def attempt(self, source: Source) -> list[ParsedSlip]:
        if not isinstance(source, RowsSource):
            return []
        return parse_rows(source.rows)


class GenerativeExtractor:
    """Last resort: hand the raw content to the document-analysis service."""

    name = "ai"

    def attempt(self, source: Source) -> list[ParsedSlip]:
        if isinstance(source, TextSource):
            text = source.text
        else:
            text = rows_as_text(source.rows)
        if not text.strip():
            return []
        log_event(logger, "slips.ai.start", source_kind=source.kind, text_chars=len(text))
        slips = extract_slips_with_ai(text)
        log_event(logger, "slips.ai.finish", source_kind=source.kind, slip_count=len(slips))
        return slips


def rows_as_text(rows: Sequence[Any]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=";", lineterminator="\n")
    for row in rows:
        writer.writerow([cell_text(v) for v in row_values(row)])
    return buf.getvalue()


def build_chain(*, use_ai: bool) -> list[Extractor]:
    chain: list[Extractor] = [StatementTextExtractor(), SpreadsheetExtractor()]
    if use_ai and slip_ai_available():
        chain.append(GenerativeExtractor())
    return chain


def run_extractors(
    source: Source, chain: Sequence[Extractor]
) -> tuple[str | None, list[ParsedSlip]]:
    """
    Try each extractor in order and stop at the first non-empty result.

    Returns the winning extractor's name (``None`` when every one came back empty) and
    its slips. Upstream errors from the generative extractor propagate to the caller.
    """
    for extractor in chain:
        slips = extractor.attempt(source)
        log_event(
            logger,
            "slips.extract.strategy",
            strategy=extractor.name,
            source_kind=source.kind,
            slip_count=len(slips),
        )
        if slips:
            return extractor.name, slips
    return None, []
