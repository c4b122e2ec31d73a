"""Decimal-backed rounding helpers.

Python's built-in round() uses banker's rounding; prices round half up.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def round_to_increment(value: float, increment: float) -> float:
    """
    Round to the nearest multiple of ``increment`` (half up).

    round_to_increment(4747.5, 100) -> 4700.0
    round_to_increment(1582.5, 100) -> 1600.0
    """
    if increment <= 0:
        return float(value)
    step = _dec(increment)
    units = (_dec(value) / step).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(units * step)


def ceil_product(value: float, factor: float) -> int:
    """ceil(value x factor) computed in decimal so 10 x 0.7 stays 7."""
    return int((_dec(value) * _dec(factor)).to_integral_value(rounding=ROUND_CEILING))


def ceil_ratio(numerator: float, denominator: float) -> int:
    """ceil(numerator / denominator) computed in decimal."""
    return int((_dec(numerator) / _dec(denominator)).to_integral_value(rounding=ROUND_CEILING))
