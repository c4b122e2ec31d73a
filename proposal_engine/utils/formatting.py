"""Display formatting helpers shared by the pricing, phase and assembly layers."""

import math
from datetime import datetime
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional, Union


CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def format_money(amount: float, currency: str = "USD") -> str:
    """
    Format an amount as whole currency units.

    Examples:
        format_money(15000) -> "$15,000"
        format_money(-600) -> "-$600"
        format_money(4747.5) -> "$4,748"
    """
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    whole = Decimal(str(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    sign = "-" if whole < 0 else ""
    return f"{sign}{symbol}{abs(int(whole)):,}"


def format_payback_period(months: Optional[float]) -> str:
    """
    Human readable payback period.

    - under one month: whole weeks (months x 4.33, rounded up)
    - exactly one month: "1 month"
    - otherwise: months rounded up to one decimal
    """
    if months is None or math.isinf(months):
        return "Not applicable"
    if months < 1:
        weeks = math.ceil(months * 4.33)
        return f"{weeks} week{'s' if weeks != 1 else ''}"
    rounded = ceil_to_tenth(months)
    if rounded == 1:
        return "1 month"
    return f"{rounded:g} months"


def ceil_to_tenth(value: float) -> float:
    """Round up to one decimal place: 7.41 -> 7.5, 7.5 -> 7.5."""
    scaled = Decimal(str(value)) * 10
    return float(scaled.to_integral_value(rounding=ROUND_CEILING) / 10)


def format_date_display(value: Optional[Union[datetime, str]]) -> str:
    """Format a datetime (or ISO string) as "March 5, 2025"."""
    if value is None:
        value = datetime.now()
    elif isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_duration_display(value: int, unit: str) -> str:
    """'1 week', '3 weeks', '1 business_day' style labels (singular for 1)."""
    display_unit = unit[:-1] if value == 1 and unit.endswith("s") else unit
    return f"{value} {display_unit.replace('_', ' ')}"
