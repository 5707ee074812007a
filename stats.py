"""
stats.py
Donation and aid dashboard figures, and donor ranking.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Sequence

from models import UNKNOWN_DONOR, Currency, TransactionRecord, as_date, as_float
from utils import convert_amount


@dataclass(frozen=True)
class DonationStats:
    total_year: float
    total_last_year: float
    vs_last_year_pct: int | None
    active_donors: int
    donors_this_month: int
    last_amount: float | None
    last_currency: Currency | None
    days_since_last: int | None


def _year_total(transactions: Sequence[TransactionRecord], year: int, currency: Currency) -> float:
    return sum(convert_amount(t.amount, t.currency, currency) for t in transactions if t.year == year)


def donation_stats(
    transactions: Sequence[TransactionRecord],
    today: date | None = None,
    currency: Currency = Currency.EUR,
) -> DonationStats:
    """
    ``transactions`` must be ordered newest first; the first one is reported
    as the last donation.
    """
    today = today or date.today()
    total_year = _year_total(transactions, today.year, currency)
    total_last_year = _year_total(transactions, today.year - 1, currency)

    pct = None
    if total_last_year > 0:
        pct = round((total_year - total_last_year) / total_last_year * 100)

    active = {t.donor_name for t in transactions if t.amount > 0 and t.donor_name}
    this_month = {
        t.donor_name
        for t in transactions
        if t.donation_date and (t.donation_date.year, t.donation_date.month) == (today.year, today.month)
    }

    last_amount = last_currency = days_since = None
    if transactions:
        last = transactions[0]
        last_amount, last_currency = last.amount, last.currency
        if last.donation_date:
            days_since = abs((today - last.donation_date).days)

    return DonationStats(
        total_year=total_year,
        total_last_year=total_last_year,
        vs_last_year_pct=pct,
        active_donors=len(active),
        donors_this_month=len(this_month),
        last_amount=last_amount,
        last_currency=last_currency,
        days_since_last=days_since,
    )


def donor_totals(transactions: Sequence[TransactionRecord]) -> dict[str, dict[Currency, float]]:
    totals: dict[str, dict[Currency, float]] = defaultdict(lambda: defaultdict(float))
    for t in transactions:
        totals[t.donor_name or UNKNOWN_DONOR][t.currency] += t.amount
    return totals


def donor_total_in(totals: dict[Currency, float], currency: Currency) -> float:
    return sum(convert_amount(amount, curr, currency) for curr, amount in totals.items())


def sort_by_donor_weight(transactions: Sequence[TransactionRecord]) -> list[TransactionRecord]:
    """Donations of the biggest donors (cumulative, in DH) first; stable otherwise."""
    totals = donor_totals(transactions)
    weight = {name: donor_total_in(per_curr, Currency.DH) for name, per_curr in totals.items()}
    return sorted(transactions, key=lambda t: weight[t.donor_name or UNKNOWN_DONOR], reverse=True)


@dataclass(frozen=True)
class AidStats:
    total_year: float
    active_beneficiaries: int
    last_amount: float | None
    last_date: date | None


def aid_stats(aids: Sequence[Mapping], today: date | None = None) -> AidStats:
    """Figures for the aid page. Aid amounts are recorded in DH."""
    today = today or date.today()
    dated = [(as_date(a.get("aid_date")), a) for a in aids]

    total_year = sum(as_float(a.get("amount")) for d, a in dated if d and d.year == today.year)
    active = {
        (a.get("beneficiary_type"), a.get("beneficiary_id"))
        for a in aids
        if as_float(a.get("amount")) > 0 and a.get("beneficiary_id")
    }

    last_amount = last_date = None
    with_dates = [(d, a) for d, a in dated if d]
    if with_dates:
        last_date, last = max(with_dates, key=lambda pair: pair[0])
        last_amount = as_float(last.get("amount"))

    return AidStats(
        total_year=total_year,
        active_beneficiaries=len(active),
        last_amount=last_amount,
        last_date=last_date,
    )
