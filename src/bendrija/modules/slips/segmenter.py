from __future__ import annotations

import re
from dataclasses import dataclass

# Page breaks as emitted by the upstream PDF-to-text step: form feeds, or marker lines
# such as "--- Page 3 ---", "## Page 3" and "-- 3 of 12 --".
_PAGE_MARKER_RE = re.compile(
    r"^[ \t]*(?:-{2,}[ \t]*page[ \t]+\d+(?:[ \t]*(?:/|of)[ \t]*\d+)?[ \t]*-{2,}"
    r"|#{1,6}[ \t]*page[ \t]+\d+[^\n]*"
    r"|-{2,}[ \t]*\d+[ \t]+of[ \t]+\d+[ \t]*-{2,})[ \t]*$",
    re.I | re.M,
)

# Only a heading opens a statement; the phrase inside running text does not.
_HEADING_ANCHOR_RE = re.compile(r"^[ \t]*(?:#+[ \t]*)?SĄSKAITA\s*-\s*FAKTŪRA", re.M)
_SERIES_ANCHOR_RE = re.compile(r"Serija:\s*\w+\s*Nr\.")


@dataclass(frozen=True)
class StatementChunk:
    text: str
    start_page_idx: int
    end_page_idx: int


def split_pages(text: str) -> list[str]:
    normalized = (text or "").replace("\r\n", "\n").replace("\f", "\n--- Page 0 ---\n")
    pages = [p.strip("\n") for p in _PAGE_MARKER_RE.split(normalized)]
    return [p for p in pages if p.strip()]


def segment_statements(text: str) -> list[StatementChunk]:
    """
    Split a combined billing document into one chunk per resident statement.

    The statement heading is authoritative, not the page boundary: a chunk opens at each
    anchor and absorbs every following page until the next anchor, so multi-page
    statements stay whole and several statements on one page are still separated.
    Text before the first anchor is not a statement and is dropped.

    Documents without the ``SĄSKAITA - FAKTŪRA`` heading are retried with the
    ``Serija: X Nr.`` series marker as the anchor.
    """
    pages = split_pages(text)
    chunks = [
        c
        for c in _segment_pages(pages, _HEADING_ANCHOR_RE)
        if "Serija:" in c.text
    ]
    if chunks:
        return chunks
    return [
        c
        for c in _segment_pages(pages, _SERIES_ANCHOR_RE)
        if "MOKĖTINA SUMA" in c.text or "mokėtojo kod" in c.text
    ]


def _segment_pages(pages: list[str], anchor: re.Pattern[str]) -> list[StatementChunk]:
    chunks: list[StatementChunk] = []
    open_parts: list[str] = []
    open_start = -1
    open_end = -1

    def _close() -> None:
        if open_start >= 0 and open_parts:
            body = "\n".join(open_parts).strip()
            if body:
                chunks.append(StatementChunk(body, open_start, open_end))

    for page_idx, page in enumerate(pages):
        starts = [m.start() for m in anchor.finditer(page)]
        if not starts:
            if open_start >= 0:
                open_parts.append(page)
                open_end = page_idx
            continue

        head = page[: starts[0]]
        if open_start >= 0 and head.strip():
            open_parts.append(head)
            open_end = page_idx

        bounds = starts + [len(page)]
        for begin, end in zip(bounds, bounds[1:]):
            _close()
            open_parts = [page[begin:end]]
            open_start = page_idx
            open_end = page_idx

    _close()
    return chunks
