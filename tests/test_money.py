from __future__ import annotations

import math
from decimal import Decimal

import pytest

from receipt_engine.money import (
    normalize,
    normalize_quantity,
    normalize_rate,
    parse_amount,
    rate_key,
    round_money,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("71,00", 71.0),
        ("0,25", 0.25),
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("$12.00", 12.0),
        ("₺160,15", 160.15),
        ("1.250.000", 1250000.0),
        ("140,00.", 140.0),
    ],
)
def test_parse_amount_handles_turkish_and_international_formats(text: str, expected: float) -> None:
    assert parse_amount(text) == pytest.approx(expected)


def test_parse_amount_returns_none_without_digits() -> None:
    assert parse_amount("no digits here") is None


@pytest.mark.parametrize("value", [None, True, math.nan, math.inf, "abc", -5, "-3,50", object()])
def test_normalize_substitutes_default_for_malformed_values(value: object) -> None:
    assert normalize(value, 7.0) == 7.0


def test_normalize_coerces_valid_numbers() -> None:
    assert normalize(12, 0.0) == 12.0
    assert normalize(Decimal("3.5"), 0.0) == 3.5
    assert normalize("12,50", 0.0) == 12.5
    assert normalize(0, 9.0) == 0.0


def test_quantity_defaults_to_one_when_missing_or_not_positive() -> None:
    assert normalize_quantity(None) == 1.0
    assert normalize_quantity(0) == 1.0
    assert normalize_quantity(-2) == 1.0
    assert normalize_quantity(2.5) == 2.5


def test_rate_defaults_to_zero() -> None:
    assert normalize_rate(None) == 0.0
    assert normalize_rate(-10) == 0.0
    assert normalize_rate("20") == 20.0


@pytest.mark.parametrize(
    ("value", "expected"),
    [(2.675, 2.68), (16.666666666666668, 16.67), (0.125, 0.13), (83.33333333333333, 83.33), (10, 10.0)],
)
def test_round_money_rounds_half_up(value: float, expected: float) -> None:
    assert round_money(value) == expected


def test_rate_key_groups_nearly_equal_rates() -> None:
    assert rate_key(18) == 1800
    assert rate_key(18.000000001) == rate_key(18.0)
    assert rate_key(1) != rate_key(10)
