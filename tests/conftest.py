"""
Pytest configuration and shared fixtures.
"""

from datetime import date
from pathlib import Path

import pytest

import auth
import db
from models import (
    BeneficiaryRecord,
    Currency,
    DependentRecord,
    EmploymentStatus,
    HousingType,
    TransactionRecord,
)

TODAY = date(2024, 6, 15)


@pytest.fixture(scope="session")
def admin_hash() -> str:
    """Hashing is slow; compute the default admin hash once."""
    return auth.hash_password("admin123")


@pytest.fixture
def db_file(tmp_path, admin_hash) -> Path:
    """Fresh initialized database."""
    path = tmp_path / "charity.db"
    db.init_db(path, "admin", admin_hash)
    return path


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def neediest_widow() -> BeneficiaryRecord:
    return BeneficiaryRecord(
        id=1,
        full_name="Fatima Zahra",
        monthly_income=0,
        employment=EmploymentStatus.UNEMPLOYED,
        housing=HousingType.TENANT,
        direct_support=False,
    )


@pytest.fixture
def well_off_widow() -> BeneficiaryRecord:
    return BeneficiaryRecord(
        id=2,
        full_name="Naima Benali",
        monthly_income=3001,
        employment=EmploymentStatus.PERMANENT,
        housing=HousingType.OWNER,
        direct_support=True,
    )


@pytest.fixture
def infant() -> DependentRecord:
    """A healthy orphan aged 1 on TODAY."""
    return DependentRecord(id=10, mother_id=1, full_name="Salma", birth_date=date(2023, 3, 1))


def make_transaction(**overrides) -> TransactionRecord:
    values = dict(
        id=None,
        amount=100.0,
        currency=Currency.DH,
        donor_name="Mohamed Alaoui",
        nature="Adhésion",
        year=2024,
        annual=False,
        months=(False,) * 12,
    )
    values.update(overrides)
    return TransactionRecord(**values)


@pytest.fixture
def tx_factory():
    return make_transaction


def month_flags(*indices: int) -> tuple:
    return tuple(i in indices for i in range(12))


@pytest.fixture
def months():
    return month_flags
