"""
Shared value objects used across the pricing, phase and proposal models.
"""

from pydantic import BaseModel, Field

from proposal_engine.utils.formatting import format_money, format_duration_display


class Money(BaseModel):
    """Amount with currency and a pre-rendered display string."""
    amount: float = Field(..., description="Amount in currency units")
    currency: str = Field("USD", description="ISO currency code")
    display: str = Field("", description="Display string, e.g. $15,000")

    @classmethod
    def of(cls, amount: float, currency: str = "USD") -> "Money":
        return cls(amount=amount, currency=currency, display=format_money(amount, currency))


class Duration(BaseModel):
    """Duration estimate (value + unit)."""
    value: int = Field(..., description="Duration value")
    unit: str = Field("weeks", description="weeks | business_days")
    display: str = Field("", description="Display string, e.g. 3 weeks")

    @classmethod
    def of(cls, value: int, unit: str = "weeks") -> "Duration":
        return cls(value=value, unit=unit, display=format_duration_display(value, unit))
