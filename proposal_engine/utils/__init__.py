"""Utility modules."""

from .formatting import (
    format_money,
    format_payback_period,
    format_date_display,
    format_duration_display,
    ceil_to_tenth,
)
from .rounding import round_to_increment, ceil_product, ceil_ratio

__all__ = [
    "format_money",
    "format_payback_period",
    "format_date_display",
    "format_duration_display",
    "ceil_to_tenth",
    "round_to_increment",
    "ceil_product",
    "ceil_ratio",
]
