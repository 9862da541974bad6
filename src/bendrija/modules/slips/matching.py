from __future__ import annotations

import enum
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from bendrija.modules.slips.parsed import ParsedSlip


class MatchTier(str, enum.Enum):
    APARTMENT_NUMBER = "apartment_number"
    PAYMENT_CODE = "payment_code"
    NAME_EXACT = "name_exact"
    NAME_FUZZY = "name_fuzzy"


class AssignmentStatus(str, enum.Enum):
    AUTO_MATCHED = "auto_matched"
    PENDING = "pending"


@dataclass(frozen=True)
class RosterEntry:
    id: uuid.UUID
    full_name: str
    apartment_number: str | None = None
    payment_code: str | None = None
    linked_profile_id: uuid.UUID | None = None


@dataclass
class MatchResult:
    resident: RosterEntry | None = None
    matched_by: MatchTier | None = None
    reason: str = ""
    failed_attempts: list[str] = field(default_factory=list)

    @property
    def assignment_status(self) -> AssignmentStatus:
        return AssignmentStatus.AUTO_MATCHED if self.resident else AssignmentStatus.PENDING

    @property
    def explanation(self) -> str:
        if self.resident:
            return self.reason
        return "; ".join(self.failed_attempts)


def normalize_apartment(raw: str | None) -> str:
    """``" 07 "`` and ``"7"`` compare equal."""
    return re.sub(r"\s+", "", raw or "").lstrip("0").lower()


def normalize_payment_code(raw: str | None) -> str:
    return re.sub(r"[\s-]+", "", raw or "").lower()


def normalize_name(raw: str | None) -> str:
    return re.sub(r"\s+", " ", (raw or "").strip().lower())


def name_similarity(a: str | None, b: str | None) -> float:
    """Share of words (longer than two letters) the two names have in common."""
    s1, s2 = normalize_name(a), normalize_name(b)
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.9

    words1 = [w for w in s1.split(" ") if len(w) > 2]
    words2 = [w for w in s2.split(" ") if len(w) > 2]
    if not words1 or not words2:
        return 0.0

    hits = 0
    for w1 in words1:
        for w2 in words2:
            if w1 == w2 or (len(w1) > 3 and len(w2) > 3 and (w1 in w2 or w2 in w1)):
                hits += 1
                break
    return hits / max(len(words1), len(words2))


class ResidentMatcher:
    """
    Binds a slip to a resident account. Tiers run in a fixed order and the first hit
    wins: apartment number, payment code, exact buyer name and, only when a threshold
    is configured, word-overlap name similarity.

    The roster is read once per ingestion call and never modified here.
    """

    def __init__(self, roster: Iterable[RosterEntry], *, fuzzy_threshold: float | None = None):
        self.roster = list(roster)
        self.fuzzy_threshold = fuzzy_threshold
        self._by_apartment: dict[str, RosterEntry] = {}
        self._by_code: dict[str, RosterEntry] = {}
        self._by_name: dict[str, RosterEntry] = {}
        for entry in self.roster:
            # First roster entry wins on duplicate keys.
            apt = normalize_apartment(entry.apartment_number)
            if apt:
                self._by_apartment.setdefault(apt, entry)
            code = normalize_payment_code(entry.payment_code)
            if code:
                self._by_code.setdefault(code, entry)
            name = normalize_name(entry.full_name)
            if name:
                self._by_name.setdefault(name, entry)

    def match(self, slip: ParsedSlip) -> MatchResult:
        result = MatchResult()

        apt = normalize_apartment(slip.apartment_number)
        if apt:
            hit = self._by_apartment.get(apt)
            if hit:
                return self._hit(
                    result,
                    hit,
                    MatchTier.APARTMENT_NUMBER,
                    f'Apartment "{slip.apartment_number}" matches resident apartment '
                    f'"{hit.apartment_number}"',
                )
            result.failed_attempts.append(f'Apartment "{slip.apartment_number}" not on the roster')
        else:
            result.failed_attempts.append("No apartment number on the slip")

        code = normalize_payment_code(slip.payment_code)
        if code:
            hit = self._by_code.get(code)
            if hit:
                return self._hit(
                    result,
                    hit,
                    MatchTier.PAYMENT_CODE,
                    f'Payment code "{slip.payment_code}" matches a resident',
                )
            result.failed_attempts.append(f'Payment code "{slip.payment_code}" not on the roster')
        else:
            result.failed_attempts.append("No payment code on the slip")

        name = normalize_name(slip.buyer_name)
        if not name:
            result.failed_attempts.append("No buyer name on the slip")
            return result

        hit = self._by_name.get(name)
        if hit:
            return self._hit(
                result,
                hit,
                MatchTier.NAME_EXACT,
                f'Buyer name matches "{hit.full_name}" exactly',
            )

        if self.fuzzy_threshold is not None:
            best, best_score = None, 0.0
            for entry in self.roster:
                score = name_similarity(slip.buyer_name, entry.full_name)
                if score > best_score and score >= self.fuzzy_threshold:
                    best, best_score = entry, score
            if best is not None:
                return self._hit(
                    result,
                    best,
                    MatchTier.NAME_FUZZY,
                    f'Buyer name "{slip.buyer_name}" resembles "{best.full_name}" '
                    f"({round(best_score * 100)}%)",
                )

        result.failed_attempts.append(f'Buyer name "{slip.buyer_name}" matches no resident')
        return result

    @staticmethod
    def _hit(result: MatchResult, entry: RosterEntry, tier: MatchTier, reason: str) -> MatchResult:
        result.resident = entry
        result.matched_by = tier
        result.reason = reason
        return result
