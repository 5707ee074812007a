"""
utils.py
Validation, dates, currency helpers, pagination, sample data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Sequence

import db
from models import (
    DH_PER_UNIT,
    DONATION_NATURES,
    MEMBERSHIP_NATURE,
    MONTH_KEYS,
    Currency,
    EmploymentStatus,
    HousingType,
    as_date,
)

FRENCH_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


# ---------- dates ----------

def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def calculate_age(birth: Any, today: date | None = None) -> int | None:
    """
    Whole years between birth and today, decremented when today's
    month/day precedes the birthday. None when the birth date is unknown.
    """
    born = as_date(birth)
    if born is None:
        return None
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def format_date(value: Any) -> str:
    d = as_date(value)
    if d is None:
        return ""
    return f"{d.day} {FRENCH_MONTHS[d.month - 1]} {d.year}"


# ---------- currency ----------

def convert_amount(amount: Any, from_currency: Any, to_currency: Any = Currency.DH) -> float:
    """Convert using the fixed rate table (1 EUR = 10 DH)."""
    if not amount:
        return 0
    source = Currency.parse(from_currency)
    target = Currency.parse(to_currency)
    if source is target:
        return amount
    return float(amount) * DH_PER_UNIT[source] / DH_PER_UNIT[target]


# fr-FR separators: narrow no-break space between thousands, no-break space before €
THOUSANDS_SEP = "\u202f"
NBSP = "\u00a0"


def _french_number(amount: float, decimals: int = 2) -> str:
    text = f"{amount:,.{decimals}f}"
    return text.replace(",", THOUSANDS_SEP).replace(".", ",")


def format_currency(amount: Any, currency: Any = Currency.DH) -> str:
    if amount is None or amount == "":
        return ""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return ""
    curr = Currency.parse(currency)
    if curr is Currency.EUR:
        return f"{_french_number(value)}{NBSP}€"
    return f"{_french_number(value)} DH"


def format_share(value: float, decimals: int = 1) -> str:
    """Whole values print without decimals, fractional ones with ``decimals``."""
    if value % 1 == 0:
        return str(int(value))
    return f"{value:.{decimals}f}"


# ---------- pagination ----------

@dataclass(frozen=True)
class Page:
    total_items: int
    per_page: int = 10
    current: int = 1

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return -(-self.total_items // self.per_page)

    @property
    def offset(self) -> int:
        return (self.current - 1) * self.per_page

    def go_to(self, page: int) -> "Page":
        if 1 <= page <= self.total_pages:
            return Page(self.total_items, self.per_page, page)
        return self

    def next(self) -> "Page":
        return self.go_to(self.current + 1)

    def prev(self) -> "Page":
        return self.go_to(self.current - 1)

    def slice(self, items: Sequence) -> Sequence:
        return items[self.offset:self.offset + self.per_page]

    def visible_pages(self) -> list[int | None]:
        """First, last and current +/- 2; ``None`` marks an ellipsis."""
        pages: list[int | None] = []
        for i in range(1, self.total_pages + 1):
            if i in (1, self.total_pages) or self.current - 2 <= i <= self.current + 2:
                pages.append(i)
            elif i in (self.current - 3, self.current + 3):
                pages.append(None)
        return pages


# ---------- validation ----------

def validate_widow_inputs(full_name: str, monthly_income, phone: str = "") -> list[str]:
    errors: list[str] = []
    if not full_name.strip():
        errors.append("Full name is required.")
    if str(monthly_income).strip():
        try:
            if float(monthly_income) < 0:
                errors.append("Monthly income cannot be negative.")
        except (TypeError, ValueError):
            errors.append("Monthly income must be numeric.")
    digits = phone.replace(" ", "")
    if digits and not (digits.isdigit() and len(digits) == 10):
        errors.append("Phone must contain 10 digits.")
    return errors


def validate_orphan_inputs(full_name: str, mother_id, birth_date: str) -> list[str]:
    errors: list[str] = []
    if not full_name.strip():
        errors.append("Full name is required.")
    if mother_id in (None, "", "(none)"):
        errors.append("Mother is required.")
    try:
        born = parse_iso(birth_date)
        if born > date.today():
            errors.append("Birth date cannot be in the future.")
    except (TypeError, ValueError):
        errors.append("Birth date must be a valid ISO date (YYYY-MM-DD).")
    return errors


def validate_donation_inputs(donor_name: str, amount, year) -> list[str]:
    errors: list[str] = []
    if not donor_name.strip():
        errors.append("Donor name is required.")
    try:
        if float(amount) <= 0:
            errors.append("Amount must be > 0.")
    except (TypeError, ValueError):
        errors.append("Amount must be numeric.")
    try:
        if not 1900 <= int(year) <= 2100:
            errors.append("Year is out of range.")
    except (TypeError, ValueError):
        errors.append("Year must be an integer.")
    return errors


# ---------- sample data ----------

def insert_sample_data(db_file) -> None:
    """
    Insert 3 widows, their orphans and a few donations (adds new rows each run).
    """
    today = date.today()

    widows = [
        ("Fatima Zahra", "AB123456", "Ahmed Zahra", "0600000001", "Casablanca", "12 rue des Oliviers",
         HousingType.TENANT.value, EmploymentStatus.UNEMPLOYED.value, 0, 0, 0),
        ("Khadija Amrani", "CD654321", "Youssef Amrani", "0600000002", "Rabat", "4 avenue Hassan II",
         HousingType.FAMILY.value, EmploymentStatus.OCCASIONAL.value, 1500, 0, 0),
        ("Naima Benali", None, "Karim Benali", "0600000003", "Fès", None,
         HousingType.OWNER.value, EmploymentStatus.PERMANENT.value, 3500, 1, 500),
    ]
    ids = []
    for w in widows:
        ids.append(db.execute(
            db_file,
            """
            INSERT INTO widows(full_name, id_number, deceased_husband, phone, city, address,
                housing_type, employment_status, monthly_income, direct_support, support_amount)
            VALUES(?,?,?,?,?,?,?,?,?,?,?)
            """,
            w,
        ))

    orphans = [
        (ids[0], "Salma Zahra", (today - timedelta(days=400)).isoformat(), "F", "Casablanca", 0, 0),
        (ids[0], "Omar Zahra", (today - timedelta(days=365 * 7)).isoformat(), "M", "Casablanca", 1, 0),
        (ids[1], "Yassine Amrani", (today - timedelta(days=365 * 13)).isoformat(), "M", "Rabat", 0, 1),
        (ids[2], "Hiba Benali", (today - timedelta(days=365 * 17)).isoformat(), "F", "Fès", 0, 0),
    ]
    db.executemany(
        db_file,
        """
        INSERT INTO orphans(mother_id, full_name, birth_date, gender, city, chronic_illness, disability)
        VALUES(?,?,?,?,?,?,?)
        """,
        orphans,
    )

    month_cols = ", ".join(f"month_{k}" for k in MONTH_KEYS)
    placeholders = ",".join("?" * (9 + len(MONTH_KEYS)))
    no_months = (0,) * 12
    spring = (0, 0, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0)
    donations = [
        ("Association Al Khair", 1200, "EUR", MEMBERSHIP_NATURE, today.year, 1, today.isoformat(), "France", None) + no_months,
        ("Mohamed Alaoui", 300, "DH", MEMBERSHIP_NATURE, today.year, 0, today.isoformat(), "Maroc", None) + spring,
        ("Mohamed Alaoui", 100, "DH", MEMBERSHIP_NATURE, today.year, 0, today.isoformat(), "Maroc", None) + no_months,
        ("Leila Haddad", 2000, "DH", DONATION_NATURES[1], today.year, 0, today.isoformat(), "Maroc", "Zakat al-Fitr") + no_months,
    ]
    db.executemany(
        db_file,
        f"""
        INSERT INTO donations(donor_name, amount, currency, nature, year, annual, donation_date,
            country, description, {month_cols})
        VALUES({placeholders})
        """,
        donations,
    )
