"""
matrix.py
Membership-dues contribution matrix: one row per donor, twelve month buckets.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Iterable

from models import (
    DEFAULT_CURRENCY,
    MEMBERSHIP_NATURE,
    UNKNOWN_DONOR,
    Currency,
    TransactionRecord,
)


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_MEMBERSHIP_KEY = _strip_accents(MEMBERSHIP_NATURE).casefold()


def normalize_nature(nature: str | None) -> str:
    """Strip diacritics and case-fold; an empty nature counts as membership dues."""
    text = _strip_accents(nature or "").casefold()
    return text or _MEMBERSHIP_KEY


def is_membership_dues(nature: str | None) -> bool:
    return normalize_nature(nature) == _MEMBERSHIP_KEY


def target_months(tx: TransactionRecord) -> list[int]:
    """Annual -> all twelve; else the flagged months; else January."""
    if tx.annual:
        return list(range(12))
    months = [idx for idx, flagged in enumerate(tx.months) if flagged]
    return months or [0]


@dataclass
class MonthBucket:
    value: float = 0.0
    currency: Currency = DEFAULT_CURRENCY


@dataclass
class DonorRow:
    donor_name: str
    months: list[MonthBucket] = field(default_factory=lambda: [MonthBucket() for _ in range(12)])

    @property
    def total(self) -> float:
        return sum(bucket.value for bucket in self.months)

    @property
    def currency(self) -> Currency:
        """Currency of the first non-empty month."""
        for bucket in self.months:
            if bucket.value > 0:
                return bucket.currency
        return DEFAULT_CURRENCY


@dataclass(frozen=True)
class ContributionMatrix:
    year: int
    rows: tuple[DonorRow, ...]

    @property
    def is_empty(self) -> bool:
        return not self.rows


def build_matrix(transactions: Iterable[TransactionRecord], target_year: int) -> ContributionMatrix:
    """
    Roll membership dues for ``target_year`` into per-donor monthly buckets.

    Amounts are split evenly across their target months and never converted:
    each bucket keeps the currency of the last transaction written into it.
    No matching transaction yields an empty matrix, not an error.
    """
    donors: dict[str, DonorRow] = {}
    for tx in transactions:
        if tx.year != target_year or not is_membership_dues(tx.nature):
            continue
        name = tx.donor_name or UNKNOWN_DONOR
        row = donors.get(name)
        if row is None:
            row = donors[name] = DonorRow(name)

        months = target_months(tx)
        share = tx.amount / len(months)
        for idx in months:
            bucket = row.months[idx]
            bucket.value += share
            bucket.currency = tx.currency

    return ContributionMatrix(year=target_year, rows=tuple(donors.values()))
