"""Layer 1: Pricing - RateConfig, PricingEngine, ROI and enterprise validation."""

from .rate_config import RateConfig, get_rate_config
from .pricing_engine import PricingEngine, map_effort_tier, normalize_industry
from .roi import calculate_roi, enforce_profit_floor, payback_period_months

__all__ = [
    "RateConfig",
    "get_rate_config",
    "PricingEngine",
    "map_effort_tier",
    "normalize_industry",
    "calculate_roi",
    "enforce_profit_floor",
    "payback_period_months",
]
