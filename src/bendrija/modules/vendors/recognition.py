"""
Vendor recognition from invoice file names and extracted vendor names.

Vendor names are reduced to one discriminating word (the "significant token") and a
pattern matches whenever that word occurs anywhere in the candidate with whitespace
removed. The containment test is loose on purpose: file names such as
``UAB_Prologika_saskaita_2024.pdf`` carry the vendor name surrounded by noise.
"""

from __future__ import annotations

import hashlib
import re
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bendrija.core.models import utcnow
from bendrija.modules.vendors.models import RecognitionPattern

# Legal-form abbreviations that never identify a vendor on their own.
LEGAL_ENTITY_STOPWORDS = frozenset({"uab", "ab", "mb", "vši", "įį", "ją"})
MIN_TOKEN_LENGTH = 4

_QUOTES_RE = re.compile(r"[\"'„“”‘’«»]")
_EXTENSION_RE = re.compile(r"\.[^.]+$")


def normalize_vendor_name(name: str | None) -> str:
    """Lower-case, drop quote characters, collapse whitespace. Idempotent."""
    s = _QUOTES_RE.sub("", (name or "").lower())
    return re.sub(r"\s+", " ", s).strip()


def significant_token(name: str | None) -> str | None:
    for word in normalize_vendor_name(name).split(" "):
        if len(word) >= MIN_TOKEN_LENGTH and word not in LEGAL_ENTITY_STOPWORDS:
            return word
    return None


def clean_file_name(file_name: str | None) -> str:
    """``"UAB_Prologika-2024.pdf"`` -> ``"uab prologika 2024"``."""
    s = _EXTENSION_RE.sub("", file_name or "")
    return re.sub(r"[-_]", " ", s).lower()


def normalize_candidate(candidate: str | None) -> str:
    """Form used for containment tests: normalized, with all whitespace removed."""
    return re.sub(r"\s+", "", normalize_vendor_name(candidate))


def pattern_hash(vendor_name: str) -> str:
    return hashlib.sha256(normalize_vendor_name(vendor_name).encode("utf-8")).hexdigest()


def token_matches(name: str | None, normalized_candidate: str) -> bool:
    token = significant_token(name)
    return bool(token and normalized_candidate and token in normalized_candidate)


@dataclass(frozen=True)
class VendorRef:
    id: str
    name: str


@dataclass(frozen=True)
class PatternMatch:
    pattern_id: uuid.UUID
    vendor_name: str
    vendor_id: str | None
    cost_category_id: str | None
    recognition_count: int


class PatternRepository:
    """Narrow access to the shared recognition-pattern store."""

    def __init__(self, session: Session):
        self.session = session

    def list_by_frequency(self) -> list[RecognitionPattern]:
        return list(
            self.session.scalars(
                select(RecognitionPattern).order_by(
                    RecognitionPattern.recognition_count.desc(),
                    RecognitionPattern.last_used_at.desc(),
                )
            )
        )

    def find_by_significant_token(self, normalized_candidate: str) -> RecognitionPattern | None:
        """Most frequently used pattern whose token occurs in the candidate."""
        for pattern in self.list_by_frequency():
            token = pattern.significant_token or significant_token(pattern.vendor_name)
            if token and token in normalized_candidate:
                return pattern
        return None

    def atomic_increment(self, pattern_id: uuid.UUID) -> RecognitionPattern | None:
        # A single UPDATE ... SET count = count + 1; concurrent recognitions never lose a hit.
        self.session.execute(
            update(RecognitionPattern)
            .where(RecognitionPattern.id == pattern_id)
            .values(
                recognition_count=RecognitionPattern.recognition_count + 1,
                last_used_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        pattern = self.session.get(RecognitionPattern, pattern_id)
        if pattern is not None:
            self.session.refresh(pattern)
        return pattern

    def upsert(
        self,
        *,
        vendor_name: str,
        vendor_id: str | None,
        cost_category_id: str | None,
    ) -> tuple[RecognitionPattern, bool]:
        """
        Create or refresh the pattern keyed by the normalized vendor name.

        Returns ``(pattern, created)``. An existing pattern keeps its recognition count;
        only its vendor/category references and timestamp are refreshed.
        """
        key = pattern_hash(vendor_name)
        pattern = self.session.scalar(
            select(RecognitionPattern).where(RecognitionPattern.pattern_hash == key)
        )
        created = False
        if pattern is None:
            candidate = RecognitionPattern(
                pattern_hash=key,
                vendor_name=vendor_name.strip(),
                significant_token=significant_token(vendor_name),
                vendor_id=vendor_id,
                cost_category_id=cost_category_id,
                recognition_count=1,
                last_used_at=utcnow(),
            )
            try:
                with self.session.begin_nested():
                    self.session.add(candidate)
                    self.session.flush()
                pattern, created = candidate, True
            except IntegrityError:
                # Another upload confirmed the same vendor first.
                pattern = self.session.scalar(
                    select(RecognitionPattern).where(RecognitionPattern.pattern_hash == key)
                )
                if pattern is None:
                    raise

        if not created:
            pattern.vendor_id = vendor_id
            pattern.cost_category_id = cost_category_id
            pattern.last_used_at = utcnow()
            self.session.add(pattern)
        self.session.commit()
        self.session.refresh(pattern)
        return pattern, created


class VendorPatternRecognizer:
    def __init__(self, repository: PatternRepository):
        self.repository = repository

    def recognize(self, candidate: str | None) -> PatternMatch | None:
        """Look the candidate up in the pattern corpus; a hit bumps the pattern's counter."""
        normalized = normalize_candidate(candidate)
        if not normalized:
            return None
        pattern = self.repository.find_by_significant_token(normalized)
        if pattern is None:
            return None
        pattern_id = pattern.id
        updated = self.repository.atomic_increment(pattern_id)
        if updated is None:
            return None
        return PatternMatch(
            pattern_id=pattern_id,
            vendor_name=updated.vendor_name,
            vendor_id=updated.vendor_id,
            cost_category_id=updated.cost_category_id,
            recognition_count=updated.recognition_count,
        )


def match_vendor(candidate: str | None, vendors: Iterable[VendorRef]) -> VendorRef | None:
    """Same token rule against the caller's live vendor list; no counters are touched."""
    normalized = normalize_candidate(candidate)
    if not normalized:
        return None
    for vendor in vendors:
        if token_matches(vendor.name, normalized):
            return vendor
    return None


def suggest_category(suggestion: str | None, categories: Sequence[tuple[str, str]]) -> str | None:
    """``categories`` are ``(id, name)`` pairs; names match by mutual containment, any case."""
    s = (suggestion or "").strip().lower()
    if not s:
        return None
    for cat_id, name in categories:
        n = (name or "").strip().lower()
        if n and (s in n or n in s):
            return cat_id
    return None
