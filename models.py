"""
models.py
Domain records (widows, orphans, donations) and the small enumerations they use.

Rows come out of SQLite as loosely-typed mappings. Every defaulting rule is
applied here, in each record's ``__post_init__``, so a record built from a
row or by hand holds clean field types and scoring never has to guess.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping

MONTH_KEYS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
MONTH_LABELS = ("Jan", "Fév", "Mar", "Avr", "Mai", "Juin", "Juil", "Août", "Sep", "Oct", "Nov", "Déc")

# Reserved donation nature meaning "membership dues"
MEMBERSHIP_NATURE = "Adhésion"
DONATION_NATURES = ("Adhésion", "Zakat", "Sadaqa", "Autre")

UNKNOWN_DONOR = "Inconnu"


class Currency(Enum):
    DH = "DH"
    EUR = "EUR"

    @classmethod
    def parse(cls, value: Any) -> "Currency":
        """Lenient parse: unknown or missing codes fall back to the local currency."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        return _CURRENCY_ALIASES.get(text, cls.DH)


_CURRENCY_ALIASES = {
    "DH": Currency.DH,
    "MAD": Currency.DH,
    "EUR": Currency.EUR,
    "€": Currency.EUR,
}

# Value of one unit of each currency expressed in DH
DH_PER_UNIT = {
    Currency.DH: 1.0,
    Currency.EUR: 10.0,
}

DEFAULT_CURRENCY = Currency.DH


class EmploymentStatus(Enum):
    UNEMPLOYED = "Sans emploi"
    OCCASIONAL = "Emploi occasionnelle"
    PERMANENT = "Emploi permanent"
    OTHER = "Autre"

    @classmethod
    def parse(cls, value: Any) -> "EmploymentStatus":
        return _parse_enum(cls, value, cls.OTHER)


class HousingType(Enum):
    TENANT = "Locataire"
    PRECARIOUS = "Précaire"
    FAMILY = "Logement familial"
    OWNER = "Propriétaire"
    OTHER = "Autre"

    @classmethod
    def parse(cls, value: Any) -> "HousingType":
        return _parse_enum(cls, value, cls.OTHER)


def _parse_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    text = str(value or "").strip().lower()
    for member in enum_cls:
        if text in (member.value.lower(), member.name.lower()):
            return member
    return default


# ---------- boundary coercion ----------

def as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "on", "yes", "oui")
    return bool(value)


def as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _get(row: Mapping[str, Any], key: str, default: Any = None) -> Any:
    # sqlite3.Row supports keys() and [] but not .get()
    return row[key] if key in row.keys() else default


@dataclass(frozen=True)
class BeneficiaryRecord:
    """A widow eligible for aid. The priority score is derived, never stored."""

    id: int | None
    full_name: str = ""
    id_number: str | None = None
    deceased_husband: str | None = None
    phone: str | None = None
    city: str | None = None
    address: str | None = None
    monthly_income: float = 0.0
    employment: EmploymentStatus = EmploymentStatus.OTHER
    housing: HousingType = HousingType.OTHER
    direct_support: bool = False
    support_amount: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "full_name", str(self.full_name or ""))
        object.__setattr__(self, "monthly_income", as_float(self.monthly_income))
        object.__setattr__(self, "employment", EmploymentStatus.parse(self.employment))
        object.__setattr__(self, "housing", HousingType.parse(self.housing))
        object.__setattr__(self, "direct_support", as_bool(self.direct_support))
        object.__setattr__(self, "support_amount", as_float(self.support_amount))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BeneficiaryRecord":
        return cls(
            id=as_int(_get(row, "id")),
            full_name=_get(row, "full_name"),
            id_number=_get(row, "id_number"),
            deceased_husband=_get(row, "deceased_husband"),
            phone=_get(row, "phone"),
            city=_get(row, "city"),
            address=_get(row, "address"),
            monthly_income=_get(row, "monthly_income"),
            employment=_get(row, "employment_status"),
            housing=_get(row, "housing_type"),
            direct_support=_get(row, "direct_support"),
            support_amount=_get(row, "support_amount"),
        )


@dataclass(frozen=True)
class DependentRecord:
    """An orphan linked to exactly one widow through ``mother_id``."""

    id: int | None
    mother_id: int | None
    full_name: str = ""
    birth_date: date | None = None
    gender: str | None = None
    city: str | None = None
    school_level: str | None = None
    chronic_illness: bool = False
    disability: bool = False

    def __post_init__(self):
        object.__setattr__(self, "full_name", str(self.full_name or ""))
        object.__setattr__(self, "birth_date", as_date(self.birth_date))
        object.__setattr__(self, "chronic_illness", as_bool(self.chronic_illness))
        object.__setattr__(self, "disability", as_bool(self.disability))

    @property
    def has_health_issue(self) -> bool:
        return self.chronic_illness or self.disability

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DependentRecord":
        return cls(
            id=as_int(_get(row, "id")),
            mother_id=as_int(_get(row, "mother_id")),
            full_name=_get(row, "full_name"),
            birth_date=_get(row, "birth_date"),
            gender=_get(row, "gender"),
            city=_get(row, "city"),
            school_level=_get(row, "school_level"),
            chronic_illness=_get(row, "chronic_illness"),
            disability=_get(row, "disability"),
        )


@dataclass(frozen=True)
class TransactionRecord:
    """A donation. Month flags only matter for membership dues that are not annual."""

    id: int | None
    amount: float = 0.0
    currency: Currency = DEFAULT_CURRENCY
    donor_name: str | None = None
    nature: str | None = None
    year: int | None = None
    annual: bool = False
    months: tuple[bool, ...] = field(default=(False,) * 12)
    donation_date: date | None = None
    country: str | None = None
    description: str | None = None

    def __post_init__(self):
        flags = tuple(as_bool(flag) for flag in (self.months or ()))[:12]
        donation_date = as_date(self.donation_date)
        year = as_int(self.year)
        if year is None and donation_date is not None:
            year = donation_date.year
        object.__setattr__(self, "amount", as_float(self.amount))
        object.__setattr__(self, "currency", Currency.parse(self.currency))
        object.__setattr__(self, "donor_name", self.donor_name or None)
        object.__setattr__(self, "year", year)
        object.__setattr__(self, "annual", as_bool(self.annual))
        object.__setattr__(self, "months", flags + (False,) * (12 - len(flags)))
        object.__setattr__(self, "donation_date", donation_date)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TransactionRecord":
        return cls(
            id=as_int(_get(row, "id")),
            amount=_get(row, "amount"),
            currency=_get(row, "currency"),
            donor_name=_get(row, "donor_name"),
            nature=_get(row, "nature"),
            year=_get(row, "year"),
            annual=_get(row, "annual"),
            months=tuple(_get(row, f"month_{key}") for key in MONTH_KEYS),
            donation_date=_get(row, "donation_date"),
            country=_get(row, "country"),
            description=_get(row, "description"),
        )


@dataclass(frozen=True)
class ScoredWidow:
    """A widow together with her orphans and derived score, for display."""

    widow: BeneficiaryRecord
    dependents: tuple[DependentRecord, ...]
    score: int

    @property
    def orphan_count(self) -> int:
        return len(self.dependents)
