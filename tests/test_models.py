"""
Tests for record defaulting, from rows and from direct construction.
"""

from datetime import date

from exports import matrix_export_rows
from matrix import build_matrix
from models import (
    BeneficiaryRecord,
    Currency,
    DependentRecord,
    EmploymentStatus,
    HousingType,
    TransactionRecord,
)
from scoring import compute_score


class TestBeneficiaryFromRow:
    def test_full_row(self):
        widow = BeneficiaryRecord.from_row({
            "id": 3,
            "full_name": "Khadija",
            "monthly_income": "1500",
            "employment_status": "Emploi occasionnelle",
            "housing_type": "Précaire",
            "direct_support": 1,
            "support_amount": None,
        })
        assert widow.id == 3
        assert widow.monthly_income == 1500.0
        assert widow.employment is EmploymentStatus.OCCASIONAL
        assert widow.housing is HousingType.PRECARIOUS
        assert widow.direct_support is True
        assert widow.support_amount == 0.0

    def test_defaults_for_missing_and_malformed(self):
        widow = BeneficiaryRecord.from_row({"monthly_income": "n/a", "housing_type": "Château"})
        assert widow.monthly_income == 0.0
        assert widow.employment is EmploymentStatus.OTHER
        assert widow.housing is HousingType.OTHER
        assert widow.direct_support is False

    def test_enum_accepts_member_names(self):
        assert HousingType.parse("tenant") is HousingType.TENANT
        assert EmploymentStatus.parse("UNEMPLOYED") is EmploymentStatus.UNEMPLOYED


class TestDependentFromRow:
    def test_flags_and_dates(self):
        orphan = DependentRecord.from_row({
            "id": 1, "mother_id": "4", "birth_date": "2019-05-02", "chronic_illness": "true", "disability": 0,
        })
        assert orphan.mother_id == 4
        assert orphan.birth_date == date(2019, 5, 2)
        assert orphan.has_health_issue

    def test_bad_date_is_none(self):
        assert DependentRecord.from_row({"birth_date": "02/05/2019"}).birth_date is None


class TestTransactionFromRow:
    def test_month_flags(self):
        tx = TransactionRecord.from_row({
            "amount": 300, "currency": "€", "nature": "Adhésion", "year": 2024,
            "annual": "on", "month_jan": 1, "month_dec": "true",
        })
        assert tx.currency is Currency.EUR
        assert tx.annual is True
        assert tx.months[0] and tx.months[11]
        assert not any(tx.months[1:11])

    def test_year_backfilled_from_date(self):
        tx = TransactionRecord.from_row({"amount": 10, "donation_date": "2023-11-20"})
        assert tx.year == 2023

    def test_missing_currency_and_donor(self):
        tx = TransactionRecord.from_row({"amount": None, "donor_name": ""})
        assert tx.amount == 0.0
        assert tx.currency is Currency.DH
        assert tx.donor_name is None


class TestDirectConstruction:
    """Records built by hand get the same defaulting as rows."""

    def test_null_widow_fields_score_without_error(self):
        widow = BeneficiaryRecord(id=1, monthly_income=None, support_amount=None, employment=None, housing="")
        assert widow.monthly_income == 0.0
        assert widow.support_amount == 0.0
        assert widow.employment is EmploymentStatus.OTHER
        assert widow.housing is HousingType.OTHER
        # income 0 (10) + no support (10)
        assert compute_score(widow) == 20

    def test_string_fields_are_parsed(self):
        widow = BeneficiaryRecord(id=1, monthly_income="2500", employment="Sans emploi", housing="Locataire", direct_support="oui")
        assert widow.monthly_income == 2500.0
        assert widow.employment is EmploymentStatus.UNEMPLOYED
        assert widow.housing is HousingType.TENANT
        assert widow.direct_support is True

    def test_dependent_date_and_flags(self):
        orphan = DependentRecord(id=1, mother_id=1, birth_date="2020-01-31", chronic_illness=None, disability="1")
        assert orphan.birth_date == date(2020, 1, 31)
        assert orphan.chronic_illness is False
        assert orphan.has_health_issue

    def test_raw_currency_string_reaches_export(self):
        tx = TransactionRecord(id=None, amount=1200, currency="EUR", year=2024, annual=True)
        assert tx.currency is Currency.EUR
        rows = matrix_export_rows(build_matrix([tx], 2024))
        assert rows[1][-1] == "1200 €"

    def test_short_month_flags_are_padded(self):
        tx = TransactionRecord(id=None, amount=30, year=2024, months=[0, 1, "on"])
        assert len(tx.months) == 12
        assert tx.months[:3] == (False, True, True)
        assert not any(tx.months[3:])

    def test_missing_months_and_year_from_date(self):
        tx = TransactionRecord(id=None, amount=None, months=None, donation_date="2023-11-20")
        assert tx.amount == 0.0
        assert tx.months == (False,) * 12
        assert tx.year == 2023
        assert tx.donation_date == date(2023, 11, 20)
