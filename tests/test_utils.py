"""
Tests for date, currency, pagination and validation helpers.
"""

from datetime import date

import pytest

from models import Currency
from utils import (
    Page,
    calculate_age,
    convert_amount,
    format_currency,
    format_date,
    format_share,
    validate_donation_inputs,
    validate_orphan_inputs,
    validate_widow_inputs,
)


class TestCalculateAge:
    """Calendar-aware age."""

    def test_day_before_first_birthday_is_zero(self):
        today = date(2024, 6, 15)
        assert calculate_age(date(2023, 6, 16), today) == 0

    def test_on_birthday(self):
        assert calculate_age(date(2023, 6, 15), date(2024, 6, 15)) == 1

    def test_earlier_month(self):
        assert calculate_age("2010-12-31", date(2024, 1, 1)) == 13

    def test_leap_day_birth(self):
        assert calculate_age(date(2020, 2, 29), date(2021, 2, 28)) == 0
        assert calculate_age(date(2020, 2, 29), date(2021, 3, 1)) == 1

    @pytest.mark.parametrize("value", [None, "", "garbage"])
    def test_unknown_birth_date(self, value):
        assert calculate_age(value, date(2024, 1, 1)) is None


class TestCurrency:
    def test_eur_to_dh(self):
        assert convert_amount(12, "EUR", "DH") == 120

    def test_dh_to_eur(self):
        assert convert_amount(120, Currency.DH, Currency.EUR) == 12

    def test_euro_symbol_alias(self):
        assert convert_amount(5, "€", "DH") == 50

    def test_same_currency_is_identity(self):
        assert convert_amount(42, "DH", "dh") == 42

    def test_missing_currency_is_local(self):
        assert convert_amount(100, None, "EUR") == 10

    def test_falsy_amount(self):
        assert convert_amount(None, "EUR", "DH") == 0
        assert convert_amount(0, "EUR", "DH") == 0

    def test_round_trip(self):
        assert convert_amount(convert_amount(37.5, "EUR", "DH"), "DH", "EUR") == pytest.approx(37.5)

    def test_parse_unknown_defaults_to_dh(self):
        assert Currency.parse("USD") is Currency.DH
        assert Currency.parse("mad") is Currency.DH


class TestFormatting:
    def test_format_currency_dh(self):
        assert format_currency(1234.5) == "1\u202f234,50 DH"

    def test_format_currency_eur(self):
        assert format_currency(100, "EUR") == "100,00\u00a0€"

    def test_format_currency_empty(self):
        assert format_currency(None) == ""
        assert format_currency(0) == "0,00 DH"

    def test_format_date_french(self):
        assert format_date("2024-03-05") == "5 mars 2024"
        assert format_date(None) == ""

    def test_format_share(self):
        assert format_share(100.0) == "100"
        assert format_share(33.333) == "33.3"
        assert format_share(12.5, 2) == "12.50"


class TestPage:
    def test_offsets_and_bounds(self):
        page = Page(total_items=25, per_page=10)
        assert page.total_pages == 3
        assert page.offset == 0
        assert page.prev() == page
        last = page.next().next()
        assert last.current == 3
        assert last.next() == last
        assert last.slice(list(range(25))) == list(range(20, 25))

    def test_go_to_out_of_range_is_ignored(self):
        page = Page(total_items=5, per_page=10)
        assert page.go_to(2) == page

    def test_visible_pages_with_gaps(self):
        page = Page(total_items=200, per_page=10, current=10)
        assert page.visible_pages() == [1, None, 8, 9, 10, 11, 12, None, 20]

    def test_empty(self):
        assert Page(total_items=0).total_pages == 0
        assert Page(total_items=0).visible_pages() == []


class TestValidation:
    def test_widow_inputs(self):
        assert validate_widow_inputs("Fatima", "0", "06 00 00 00 01") == []
        errors = validate_widow_inputs(" ", "abc", "123")
        assert len(errors) == 3

    def test_widow_income_may_be_blank(self):
        assert validate_widow_inputs("Fatima", "") == []

    def test_orphan_inputs(self):
        assert validate_orphan_inputs("Salma", 1, "2020-01-01") == []
        assert len(validate_orphan_inputs("", None, "nope")) == 3

    def test_donation_inputs(self):
        assert validate_donation_inputs("Ali", "100", "2024") == []
        assert validate_donation_inputs("Ali", "-5", "2024") == ["Amount must be > 0."]
        assert len(validate_donation_inputs("", "x", "y")) == 3
