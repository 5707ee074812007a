"""
Tests for the widow priority score.
"""

from dataclasses import replace
from datetime import date

import pytest

from models import BeneficiaryRecord, DependentRecord, EmploymentStatus, HousingType
from scoring import (
    age_points,
    compute_score,
    health_points,
    income_points,
    priority_band,
)


class TestFactors:
    """Individual factor tables."""

    @pytest.mark.parametrize(
        "income,points",
        [(0, 10), (1, 8), (999.99, 8), (1000, 6), (1999, 6), (2000, 2), (3000, 2), (3000.5, 0), (10000, 0)],
    )
    def test_income_brackets(self, income, points):
        assert income_points(income) == points

    @pytest.mark.parametrize("age,points", [(0, 10), (1, 10), (2, 8), (5, 8), (6, 6), (11, 6), (12, 4), (15, 4), (16, 0)])
    def test_age_brackets(self, age, points):
        assert age_points(age) == points

    def test_health_bonus_applies_once(self):
        sick = DependentRecord(id=1, mother_id=1, chronic_illness=True)
        disabled = DependentRecord(id=2, mother_id=1, disability=True)
        assert health_points([sick, disabled, sick]) == 2
        assert health_points([]) == 0


class TestComputeScore:
    """End-to-end scores."""

    def test_well_off_profile_scores_zero(self, well_off_widow, today):
        assert compute_score(well_off_widow, [], today=today) == 0

    def test_neediest_profile_with_infant(self, neediest_widow, infant, today):
        # 10 income + 5 employment + 10 housing + 10 no support + 10 infant
        assert compute_score(neediest_widow, [infant], today=today) == 45

    def test_health_bonus_added_once_regardless_of_count(self, neediest_widow, infant, today):
        base = compute_score(neediest_widow, [infant], today=today)
        sick_a = DependentRecord(id=11, mother_id=1, birth_date=date(2000, 1, 1), chronic_illness=True)
        sick_b = DependentRecord(id=12, mother_id=1, birth_date=date(2000, 1, 1), disability=True)

        assert compute_score(neediest_widow, [infant, sick_a], today=today) == base + 2
        assert compute_score(neediest_widow, [infant, sick_a, sick_b], today=today) == base + 2

    def test_support_amount_counts_as_support(self, neediest_widow, today):
        supported = replace(neediest_widow, support_amount=200)
        assert compute_score(neediest_widow, today=today) - compute_score(supported, today=today) == 10

    def test_dependents_without_birth_date_add_nothing(self, neediest_widow, today):
        unknown = DependentRecord(id=3, mother_id=1, birth_date=None)
        assert compute_score(neediest_widow, [unknown], today=today) == compute_score(neediest_widow, today=today)

    def test_many_young_dependents_are_not_capped(self, neediest_widow, today):
        kids = [DependentRecord(id=i, mother_id=1, birth_date=date(2023, 1, 1)) for i in range(10)]
        assert compute_score(neediest_widow, kids, today=today) == 35 + 10 * 10

    def test_record_built_from_empty_row_never_fails(self, today):
        widow = BeneficiaryRecord.from_row({})
        score = compute_score(widow, [DependentRecord.from_row({"birth_date": "not a date"})], today=today)
        # income 0 (10) + no support (10); unknown employment/housing give 0
        assert score == 20

    @pytest.mark.parametrize("employment", list(EmploymentStatus))
    @pytest.mark.parametrize("housing", list(HousingType))
    def test_score_is_never_negative(self, employment, housing, today):
        widow = BeneficiaryRecord(
            id=1, monthly_income=99999, employment=employment, housing=housing, direct_support=True
        )
        assert compute_score(widow, [], today=today) >= 0


class TestPriorityBand:
    def test_bands(self):
        assert priority_band(45) == "high"
        assert priority_band(40) == "high"
        assert priority_band(25) == "medium"
        assert priority_band(24) == "low"
