"""Tests for commission arithmetic"""

import pytest

from homebase.domain.partners.commission import compute_commission, coupon_percent_off, format_cents


@pytest.mark.parametrize(
    "base_cents, rate_bp, expected",
    [
        (10000, 1000, 1000),
        (2999, 1000, 300),  # 299.9 rounds up
        (2994, 1000, 299),  # 299.4 rounds down
        (2995, 1000, 300),  # half rounds away from zero
        (0, 1000, 0),
        (10000, 0, 0),
    ],
)
def test_compute_commission(base_cents, rate_bp, expected):
    assert compute_commission(base_cents, rate_bp) == expected


def test_negative_base_mirrors_positive():
    for base in (2995, 2999, 12345, 1):
        assert compute_commission(-base, 1000) == -compute_commission(base, 1000)


def test_result_is_integer():
    assert isinstance(compute_commission(1234, 1500), int)


def test_coupon_percent_off():
    assert coupon_percent_off(1000) == 10
    assert coupon_percent_off(1550) == 15
    assert coupon_percent_off(0) == 0
    assert coupon_percent_off(-500) == 0


def test_format_cents():
    assert format_cents(5000) == "$50.00"
    assert format_cents(123456) == "$1,234.56"
    assert format_cents(-250) == "-$2.50"
