"""
scoring.py
Priority score for widows: six additive factors, floored at zero.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from models import BeneficiaryRecord, DependentRecord, EmploymentStatus, HousingType
from utils import calculate_age

EMPLOYMENT_POINTS = {
    EmploymentStatus.UNEMPLOYED: 5,
    EmploymentStatus.OCCASIONAL: 3,
}

HOUSING_POINTS = {
    HousingType.TENANT: 10,
    HousingType.PRECARIOUS: 8,
    HousingType.FAMILY: 6,
}

NO_SUPPORT_POINTS = 10
HEALTH_POINTS = 2

# Priority bands used to colour the score column
HIGH_PRIORITY = 40
MEDIUM_PRIORITY = 25


def income_points(income: float) -> int:
    if income == 0:
        return 10
    if income < 1000:
        return 8
    if income < 2000:
        return 6
    if income <= 3000:
        return 2
    return 0


def age_points(age: int) -> int:
    if age < 2:
        return 10
    if age < 6:
        return 8
    if age < 12:
        return 6
    if age <= 15:
        return 4
    return 0


def support_points(widow: BeneficiaryRecord) -> int:
    if widow.direct_support or widow.support_amount > 0:
        return 0
    return NO_SUPPORT_POINTS


def dependents_points(dependents: Iterable[DependentRecord], today: date | None = None) -> int:
    total = 0
    for dependent in dependents:
        age = calculate_age(dependent.birth_date, today)
        if age is not None:
            total += age_points(age)
    return total


def health_points(dependents: Iterable[DependentRecord]) -> int:
    # Once per family, not per child
    return HEALTH_POINTS if any(d.has_health_issue for d in dependents) else 0


def compute_score(
    widow: BeneficiaryRecord,
    dependents: Iterable[DependentRecord] = (),
    today: date | None = None,
) -> int:
    """
    Vulnerability score for one widow and her orphans.

    Missing or unknown fields land in the zero-point branch of their factor,
    so the function never raises. There is no upper bound: each additional
    young orphan raises the score.
    """
    dependents = list(dependents)
    score = (
        income_points(widow.monthly_income)
        + EMPLOYMENT_POINTS.get(widow.employment, 0)
        + HOUSING_POINTS.get(widow.housing, 0)
        + support_points(widow)
        + dependents_points(dependents, today)
        + health_points(dependents)
    )
    return max(0, score)


def priority_band(score: int) -> str:
    if score >= HIGH_PRIORITY:
        return "high"
    if score >= MEDIUM_PRIORITY:
        return "medium"
    return "low"
