"""
ROI and enterprise pricing validation.

Hard labor savings (from the audited bleed) and modeled opportunity
(conversion lift estimate) are kept separate in display. All checks here
are advisory: they produce pass/fail diagnostics and never alter the price.
"""

import logging
import math
from typing import Optional

from proposal_engine.models.pricing import (
    EnterpriseValidation,
    ProfitFloorCheck,
    RoiSummary,
    ValidationCheck,
    ValidationConfig,
    ValueBreakdown,
    ValueComponent,
)
from proposal_engine.utils.formatting import ceil_to_tenth, format_money, format_payback_period
from proposal_engine.utils.rounding import round_to_increment

logger = logging.getLogger(__name__)


def _round_whole(value: float) -> float:
    return round_to_increment(value, 1)


def _round_tenth(value: float) -> float:
    return round_to_increment(value, 0.1)


def calculate_hard_labor_savings(monthly_bleed: float) -> ValueComponent:
    """Guaranteed savings: audited monthly bleed x 12."""
    return ValueComponent(
        type="hard_savings",
        label="Labor/Process Savings (from Audit)",
        monthly=_round_whole(monthly_bleed),
        annual=_round_whole(monthly_bleed * 12),
        formula="Audit bleed x 12 months",
    )


def calculate_modeled_opportunity(config: ValidationConfig) -> ValueComponent:
    """Modeled revenue impact: daily leads x 30 x lift% x average deal value."""
    monthly_leads = config.daily_leads_default * 30
    converted = monthly_leads * (config.opportunity_lift_percent / 100)
    monthly = converted * config.average_deal_value
    return ValueComponent(
        type="modeled_opportunity",
        label=f"Modeled Opportunity (Est. {config.opportunity_lift_percent:g}% Lift)",
        monthly=_round_whole(monthly),
        annual=_round_whole(monthly * 12),
        formula=(
            f"{config.daily_leads_default:g} leads/day x 30 x "
            f"{config.opportunity_lift_percent:g}% x {format_money(config.average_deal_value)}"
        ),
    )


def validate_hard_floor(
    project_price: float,
    annual_hard_savings: float,
    config: ValidationConfig,
) -> ValidationCheck:
    """Year-one hard savings must cover ``hard_floor_coverage_percent`` of the price."""
    required = project_price * (config.hard_floor_coverage_percent / 100)
    coverage = (annual_hard_savings / project_price) * 100 if project_price > 0 else 0
    passes = annual_hard_savings >= required
    if passes:
        message = (
            f"Hard floor met: {_round_whole(coverage):.0f}% coverage "
            f"(min {config.hard_floor_coverage_percent:g}%)"
        )
    else:
        message = (
            f"WARNING: Only {_round_whole(coverage):.0f}% hard coverage "
            f"(need {config.hard_floor_coverage_percent:g}%)"
        )
    return ValidationCheck(
        passes=passes,
        message=message,
        required=_round_whole(required),
        actual=_round_whole(annual_hard_savings),
    )


def validate_payback(
    project_price: float,
    total_monthly_value: float,
    config: ValidationConfig,
) -> ValidationCheck:
    """price / (hard + modeled monthly value) must not exceed ``max_payback_months``."""
    months = project_price / total_monthly_value if total_monthly_value > 0 else math.inf
    passes = months <= config.max_payback_months
    shown = "n/a" if math.isinf(months) else f"{_round_tenth(months):g}"
    if passes:
        message = f"Payback met: {shown} months (max {config.max_payback_months:g})"
    else:
        message = (
            f"WARNING: Payback {shown} months exceeds "
            f"{config.max_payback_months:g} month target"
        )
    return ValidationCheck(
        passes=passes,
        message=message,
        required=config.max_payback_months,
        actual=None if math.isinf(months) else _round_tenth(months),
    )


def payback_period_months(investment_total: float, monthly_bleed: float) -> Optional[float]:
    """ceil(price / monthly bleed x 10) / 10. None when there is no bleed."""
    if monthly_bleed <= 0:
        return None
    return ceil_to_tenth(investment_total / monthly_bleed)


def calculate_roi(
    monthly_bleed: float,
    investment_total: float,
    config: Optional[ValidationConfig] = None,
) -> RoiSummary:
    """
    ROI figures with enterprise validation.

    Args:
        monthly_bleed: audited monthly revenue bleed
        investment_total: final project price
        config: validation parameters (defaults when omitted)

    Returns:
        RoiSummary: recovery, payback (hard savings only), value breakdown, checks
    """
    config = config or ValidationConfig()

    hard = calculate_hard_labor_savings(monthly_bleed)
    modeled = calculate_modeled_opportunity(config)
    total_monthly = hard.monthly + modeled.monthly
    total_annual = hard.annual + modeled.annual

    hard_floor = validate_hard_floor(investment_total, hard.annual, config)
    payback_check = validate_payback(investment_total, total_monthly, config)
    all_pass = hard_floor.passes and payback_check.passes

    annual_roi = (
        int(_round_whole((total_annual - investment_total) / investment_total * 100))
        if investment_total > 0
        else 0
    )

    payback = payback_period_months(investment_total, monthly_bleed)
    if not all_pass:
        logger.warning(
            f"[ROI] Validation failed: {hard_floor.message}; {payback_check.message}"
        )

    return RoiSummary(
        monthly_recovery=monthly_bleed,
        annual_recovery=monthly_bleed * 12,
        payback_period_months=payback,
        payback_display=format_payback_period(
            investment_total / monthly_bleed if monthly_bleed > 0 else None
        ),
        value_breakdown=ValueBreakdown(
            hard_savings=hard,
            modeled_opportunity=modeled,
            total_monthly_value=total_monthly,
            total_annual_value=total_annual,
        ),
        validation=EnterpriseValidation(
            hard_floor=hard_floor,
            payback_check=payback_check,
            all_pass=all_pass,
            summary=(
                "All pricing validation checks passed"
                if all_pass
                else "WARNING: One or more pricing validation checks failed"
            ),
        ),
        annual_roi_percent=annual_roi,
    )


def enforce_profit_floor(
    price: float,
    internal_cost: float,
    config: Optional[ValidationConfig] = None,
) -> ProfitFloorCheck:
    """
    Compare the margin over internal cost with the configured floor.

    Reports the markup that would reach the floor; the price itself is never changed.
    """
    config = config or ValidationConfig()
    target = config.profit_floor_percent / 100
    margin = (price - internal_cost) / price if price > 0 else 0.0

    if margin >= target:
        return ProfitFloorCheck(
            internal_cost=_round_whole(internal_cost),
            margin_percent=_round_whole(margin * 100),
            target_margin_percent=config.profit_floor_percent,
            required_markup=1.0,
            required_price=price,
            passes=True,
            message=(
                f"Profit floor met: {_round_whole(margin * 100):.0f}% margin "
                f"(min {config.profit_floor_percent:g}%)"
            ),
        )

    required_price = internal_cost / (1 - target)
    markup = required_price / price if price > 0 else math.inf
    markup_display = "n/a" if math.isinf(markup) else f"{round_to_increment(markup, 0.01):g}x"
    logger.warning(
        f"[ProfitFloor] Margin {margin * 100:.1f}% below {config.profit_floor_percent:g}% floor"
    )
    return ProfitFloorCheck(
        internal_cost=_round_whole(internal_cost),
        margin_percent=_round_whole(margin * 100),
        target_margin_percent=config.profit_floor_percent,
        required_markup=markup if math.isinf(markup) else round_to_increment(markup, 0.01),
        required_price=_round_whole(required_price),
        passes=False,
        message=f"WARNING: Profit floor not met, {markup_display} markup needed",
    )
