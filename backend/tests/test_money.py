"""Денежные суммы и телефон."""
from decimal import Decimal

import pytest

from servicecenter.services.money import (
    format_phone_number,
    limit_decimal_places,
    normalize_money_input,
    parse_money,
    percent_of,
    phone_digits,
    round_money,
)


@pytest.mark.parametrize("value, expected", [
    (Decimal("1.005"), Decimal("1.01")),
    (Decimal("2.344"), Decimal("2.34")),
    (0.1, Decimal("0.10")),
    (None, Decimal("0.00")),
    ("", Decimal("0.00")),
    (15, Decimal("15.00")),
])
def test_round_money(value, expected):
    assert round_money(value) == expected


def test_round_money_is_idempotent():
    once = round_money(Decimal("10.555"))
    assert round_money(once) == once


def test_parse_money_user_input():
    assert parse_money("1 234,56 грн") == Decimal("1234.56")
    assert parse_money("12.349") == Decimal("12.34")
    assert parse_money("1.2.3") == Decimal("1.23")
    assert parse_money("abc") == Decimal("0")
    assert parse_money(".") == Decimal("0")
    assert parse_money(99.999) == Decimal("100.00")


def test_normalize_and_limit():
    assert normalize_money_input("12,5,0") == "12.50"
    assert limit_decimal_places("3.14159") == "3.14"
    assert limit_decimal_places("42") == "42"


def test_percent_of():
    assert percent_of(1000, Decimal("1.5")) == Decimal("15.00")
    assert percent_of(333, 10) == Decimal("33.30")


def test_phone():
    assert format_phone_number("+38 (067) 123-45-67") == "380-671-23-45"
    assert format_phone_number("0671234567") == "067-123-45-67"
    assert format_phone_number("0671") == "067-1"
    assert phone_digits("067-123 45 67") == "0671234567"
