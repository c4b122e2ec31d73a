"""Rounding and display formatting helpers."""

from datetime import datetime

import pytest

from proposal_engine.utils import (
    ceil_product,
    ceil_ratio,
    ceil_to_tenth,
    format_date_display,
    format_duration_display,
    format_money,
    format_payback_period,
    round_to_increment,
)


class TestRounding:
    @pytest.mark.parametrize(
        "value, increment, expected",
        [
            (4747.5, 100, 4700),
            (1582.5, 100, 1600),
            (2110, 100, 2100),
            (450, 100, 500),
            (8730, 100, 8700),
            (12.345, 0.1, 12.3),
            (7, 0, 7),
        ],
    )
    def test_round_to_increment(self, value, increment, expected):
        assert round_to_increment(value, increment) == expected

    def test_half_up_not_bankers(self):
        assert round_to_increment(250, 100) == 300
        assert round(250, -2) == 200

    def test_ceil_helpers_use_decimal(self):
        assert ceil_product(10, 0.7) == 7
        assert ceil_product(6, 0.45) == 3
        assert ceil_ratio(8700, 5000) == 2
        assert ceil_ratio(10000, 5000) == 2

    def test_ceil_to_tenth(self):
        assert ceil_to_tenth(7.41) == 7.5
        assert ceil_to_tenth(7.5) == 7.5
        assert ceil_to_tenth(4.35) == 4.4


class TestFormatting:
    @pytest.mark.parametrize(
        "amount, expected",
        [(15000, "$15,000"), (0, "$0"), (-600, "-$600"), (4747.5, "$4,748")],
    )
    def test_format_money(self, amount, expected):
        assert format_money(amount) == expected

    def test_unknown_currency_uses_code(self):
        assert format_money(1200, "CAD") == "CAD 1,200"

    def test_payback_period(self):
        assert format_payback_period(None) == "Not applicable"
        assert format_payback_period(0.2) == "1 week"
        assert format_payback_period(0.5) == "3 weeks"
        assert format_payback_period(1) == "1 month"
        assert format_payback_period(4.35) == "4.4 months"

    def test_date_display(self):
        assert format_date_display(datetime(2025, 3, 5)) == "March 5, 2025"
        assert format_date_display("2026-02-20") == "February 20, 2026"
        assert format_date_display("last spring") == "last spring"

    def test_duration_display(self):
        assert format_duration_display(1, "weeks") == "1 week"
        assert format_duration_display(3, "weeks") == "3 weeks"
        assert format_duration_display(3, "business_days") == "3 business days"
