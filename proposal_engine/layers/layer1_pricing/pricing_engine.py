"""
Pricing engine - converts an audit extract into an exact price breakdown.

Pipeline:
1. Base price: effort hours x weighted hourly rate
2. Complexity multiplier: product of six independent factors
3. Discount: volume / commitment / early payment / referral, stacked and capped
4. Subtotal rounded to the configured increment
5. Milestone allocation (deploy absorbs the rounding remainder)
6. Audit credit and early adopter discount, clamped to the minimum project value
7. Advisory checks: ROI validation, profit floor, package recommendation
"""

import logging
import re
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from proposal_engine.exceptions import InputValidationError, PricingInvariantViolation
from proposal_engine.models.audit import AuditExtract
from proposal_engine.models.pricing import (
    MILESTONE_KEYS,
    AppliedDiscount,
    ComplexityAssessment,
    ComplexityFactors,
    DiscountResult,
    EarlyAdopterDiscount,
    EffortLine,
    EffortTier,
    MilestoneAllocation,
    MilestoneAllocations,
    PackageRecommendation,
    PricingBreakdown,
    PricingOptions,
    StackingPolicy,
)
from proposal_engine.utils.rounding import round_to_increment

from .rate_config import RateConfig, get_rate_config
from .roi import calculate_roi, enforce_profit_floor

logger = logging.getLogger(__name__)


# Fixed skill composition of a typical engagement (sums to 1.0)
SKILL_WEIGHTS = {
    "ai_engineering": 0.25,
    "integration_development": 0.35,
    "system_design": 0.15,
    "testing_qa": 0.10,
    "project_management": 0.10,
    "training_documentation": 0.05,
}
DEFAULT_SKILL_RATE = 150.0
DEFAULT_SYSTEMS_COUNT = 2
DEFAULT_CATEGORY_COUNT = 3
DEFAULT_INDUSTRY = "technology"

MILESTONE_NAMES = {
    "design": ("2.1", "Design"),
    "build": ("2.2", "Build"),
    "test": ("2.3", "Test"),
    "deploy": ("2.4", "Deploy"),
}

# Checked in order; the first matching keyword group wins
EFFORT_KEYWORDS = (
    (EffortTier.TRIVIAL, ("trivial", "simple", "quick")),
    (EffortTier.CRITICAL, ("critical", "major")),
    (EffortTier.COMPLEX, ("complex", "significant")),
)

INDUSTRY_ALIASES = {
    "tech": "technology",
    "software": "technology",
    "saas": "technology",
    "professional": "professional_services",
    "consulting": "professional_services",
    "retail": "retail_ecommerce",
    "ecommerce": "retail_ecommerce",
    "e_commerce": "retail_ecommerce",
    "health": "healthcare",
    "medical": "healthcare",
    "finance": "financial_services",
    "banking": "financial_services",
    "insurance": "financial_services",
    "law": "legal",
    "legal_services": "legal",
    "gov": "government",
    "public_sector": "government",
    "edu": "education",
    "school": "education",
    "university": "education",
}

INDUSTRY_SENSITIVITY = {
    "healthcare": "hipaa_phi",
    "financial_services": "financial_regulated",
    "legal": "pii_present",
    "government": "government_classified",
}


def map_effort_tier(descriptor: Optional[str]) -> EffortTier:
    """
    Map a free-text effort descriptor to one of the four tiers.

    Substring matching, case-insensitive; ambiguous or empty text maps to moderate.
    """
    text = str(descriptor or "").lower()
    for tier, keywords in EFFORT_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return tier
    return EffortTier.MODERATE


def normalize_industry(industry: Optional[str]) -> str:
    """Lowercase, non-letters to underscores, then the alias table ("saas" -> "technology")."""
    normalized = re.sub(r"[^a-z]", "_", str(industry or DEFAULT_INDUSTRY).lower())
    normalized = re.sub(r"_+", "_", normalized).strip("_")
    return INDUSTRY_ALIASES.get(normalized, normalized or DEFAULT_INDUSTRY)


def _systems_range_key(count: int) -> str:
    if count <= 2:
        return "1-2"
    if count <= 4:
        return "3-4"
    if count <= 6:
        return "5-6"
    return "7+"


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value))


class PricingEngine:
    """
    Deterministic pricing for one audit extract.

    Pure and synchronous: the same extract, options and RateConfig always
    produce the same breakdown.
    """

    def __init__(self, rate_config: Optional[RateConfig] = None):
        self.rate_config = rate_config or get_rate_config()

    def calculate(
        self,
        audit: Union[AuditExtract, dict[str, Any]],
        options: Optional[Union[PricingOptions, dict[str, Any]]] = None,
    ) -> PricingBreakdown:
        """
        Calculate the full pricing breakdown.

        Args:
            audit: canonical audit extract (model or dict)
            options: run-time pricing options

        Returns:
            PricingBreakdown: immutable breakdown

        Raises:
            InputValidationError: extract or options have the wrong shape
            PricingInvariantViolation: internal reconciliation failed
        """
        audit = self.coerce_audit(audit)
        options = self.coerce_options(options)
        rates = self.rate_config.base_rates
        warnings: list[str] = []

        logger.info(f"[PricingEngine] Pricing started: {audit.client.account_name}")

        # 1. Base price
        effort, total_hours = self.estimate_hours(audit)
        weighted_rate = self.weighted_hourly_rate(warnings)
        base_price = total_hours * weighted_rate

        # 2. Complexity multiplier
        complexity = self.assess_complexity(audit, options)
        warnings.extend(complexity.warnings)
        adjusted_price = base_price * complexity.multiplier

        # 3. Discount
        discount = self.calculate_discount(adjusted_price, options)
        if discount.requires_approval:
            warnings.append(
                f"Combined discount {discount.total_percentage:g}% requires approval"
            )

        # 4. Subtotal
        subtotal = round_to_increment(adjusted_price - discount.amount, rates.rounding_increment)

        # 5. Milestones
        milestones = self.allocate_milestones(subtotal)

        # 6. Audit credit + early adopter discount
        audit_credit = options.audit_credit_amount
        final_price, early_adopter, minimum_applied = self._apply_early_adopter(
            subtotal, audit_credit, options
        )
        self._check_final_price(subtotal, audit_credit, early_adopter.amount, final_price)
        if minimum_applied:
            warnings.append(
                f"Final price clamped to minimum project value {rates.minimum_project_value:g}"
            )

        # 7. Advisory checks
        roi = calculate_roi(audit.monthly_bleed, final_price, options.validation)
        profit_floor = enforce_profit_floor(
            final_price,
            total_hours * options.validation.internal_hourly_rate,
            options.validation,
        )
        if not profit_floor.passes:
            warnings.append(profit_floor.message)
        if not roi.validation.all_pass:
            warnings.append(roi.validation.summary)

        breakdown = PricingBreakdown(
            currency=rates.currency,
            effort=effort,
            total_hours=total_hours,
            weighted_hourly_rate=weighted_rate,
            base_price=base_price,
            complexity=complexity,
            complexity_multiplier=complexity.multiplier,
            adjusted_price=adjusted_price,
            discount=discount,
            subtotal=subtotal,
            milestones=milestones,
            audit_credit=audit_credit,
            early_adopter_discount=early_adopter,
            final_price=final_price,
            minimum_applied=minimum_applied,
            roi=roi,
            profit_floor=profit_floor,
            package_recommendation=self.get_package_recommendation(audit),
            warnings=warnings,
        )

        logger.info(
            f"[PricingEngine] Pricing complete: base={base_price:.2f}, "
            f"multiplier={complexity.multiplier:.4f}, subtotal={subtotal:g}, final={final_price:g}"
        )
        return breakdown

    # ============================================================
    # Base price
    # ============================================================

    def estimate_hours(self, audit: AuditExtract) -> tuple[list[EffortLine], float]:
        """Sum tier hours over the recommended fixes (category count x moderate when none)."""
        tiers = self.rate_config.base_rates.effort_tiers
        lines = []
        for index, fix in enumerate(audit.recommended_fixes):
            tier = map_effort_tier(fix.effort_tier)
            lines.append(
                EffortLine(
                    label=fix.fix or fix.problem or f"Fix {index + 1}",
                    descriptor=fix.effort_tier,
                    tier=tier,
                    hours=tiers[tier.value].default_hours,
                )
            )

        total = sum(line.hours for line in lines)
        if total == 0:
            category_count = len(audit.findings) or DEFAULT_CATEGORY_COUNT
            total = category_count * tiers[EffortTier.MODERATE.value].default_hours
        return lines, total

    def weighted_hourly_rate(self, warnings: Optional[list[str]] = None) -> float:
        """sum(rate_for_skill x weight) over the fixed skill composition."""
        rates = self.rate_config.base_rates.hourly_rates
        weighted = 0.0
        for skill, weight in SKILL_WEIGHTS.items():
            entry = rates.get(skill)
            if entry is None:
                message = f"No hourly rate for {skill}, using {DEFAULT_SKILL_RATE:g}"
                logger.warning(f"[PricingEngine] {message}")
                if warnings is not None:
                    warnings.append(message)
            weighted += (entry.rate if entry else DEFAULT_SKILL_RATE) * weight
        return weighted

    # ============================================================
    # Complexity
    # ============================================================

    def assess_complexity(
        self,
        audit: AuditExtract,
        options: Optional[PricingOptions] = None,
    ) -> ComplexityAssessment:
        """Resolve the six multipliers. Unknown keys resolve to 1.0 with a warning."""
        options = options or PricingOptions()
        tables = self.rate_config.complexity
        warnings: list[str] = []

        systems_count = len(audit.systems) or DEFAULT_SYSTEMS_COUNT
        systems = tables.systems_count.ranges[_systems_range_key(systems_count)].multiplier

        integration = 1.0
        for integration_type in audit.integration_types:
            key = re.sub(r"\s+", "_", str(integration_type).strip().lower())
            entry = tables.integration_difficulty.types.get(key)
            if entry is None:
                warnings.append(f"Unknown integration type '{integration_type}', using 1.0")
                continue
            integration = max(integration, entry.multiplier)

        industry_key = normalize_industry(audit.client.industry)
        if options.data_sensitivity:
            sensitivity_level = options.data_sensitivity
        else:
            sensitivity_level = INDUSTRY_SENSITIVITY.get(industry_key, "standard")

        factors = ComplexityFactors(
            systems_count=systems,
            integration_difficulty=integration,
            data_sensitivity=self._lookup(
                tables.data_sensitivity.levels, sensitivity_level, "data_sensitivity", warnings
            ),
            timeline_pressure=self._lookup(
                tables.timeline_pressure.speeds, options.timeline_pressure, "timeline_pressure", warnings
            ),
            client_readiness=self._lookup(
                tables.client_technical_readiness.levels, options.client_readiness, "client_readiness", warnings
            ),
            industry=self._lookup(
                tables.industry_complexity.industries, industry_key, "industry", warnings
            ),
        )
        for message in warnings:
            logger.warning(f"[PricingEngine] {message}")

        return ComplexityAssessment(
            factors=factors,
            multiplier=factors.product(),
            systems_count=systems_count,
            industry_key=industry_key,
            sensitivity_level=sensitivity_level,
            warnings=warnings,
        )

    @staticmethod
    def _lookup(table: dict, key: str, factor: str, warnings: list[str]) -> float:
        entry = table.get(key)
        if entry is None:
            warnings.append(f"Unknown {factor} '{key}', using 1.0")
            return 1.0
        return entry.multiplier

    # ============================================================
    # Discounts
    # ============================================================

    def calculate_discount(
        self,
        price: float,
        options: Optional[PricingOptions] = None,
    ) -> DiscountResult:
        """Evaluate every discount rule, then stack and cap the combined percentage."""
        options = options or PricingOptions()
        rules = self.rate_config.discounts
        applied: list[AppliedDiscount] = []

        for tier in rules.volume_discounts.tiers:
            if tier.contains(price):
                if tier.discount_percentage > 0:
                    applied.append(AppliedDiscount(
                        type="volume",
                        percentage=tier.discount_percentage,
                        description=tier.description,
                    ))
                break

        if options.commitment_type and options.commitment_type != "single_project":
            commitment = rules.commitment_discounts.options.get(options.commitment_type)
            if commitment:
                applied.append(AppliedDiscount(
                    type="commitment",
                    percentage=commitment.discount_percentage,
                    description=commitment.description,
                ))

        if options.payment_terms and options.payment_terms != "net_15":
            early_payment = rules.early_payment_discounts.options.get(options.payment_terms)
            if early_payment:
                applied.append(AppliedDiscount(
                    type="early_payment",
                    percentage=early_payment.discount_percentage,
                    description=early_payment.description,
                ))

        if options.is_referral:
            applied.append(AppliedDiscount(
                type="referral",
                percentage=rules.referral_discounts.first_project_discount,
                description=rules.referral_discounts.description_text,
            ))

        if not applied:
            combined = 0.0
        elif rules.discount_stacking == StackingPolicy.HIGHEST_ONLY:
            combined = max(d.percentage for d in applied)
        else:
            combined = sum(d.percentage for d in applied)

        total = min(combined, rules.maximum_combined_discount)
        return DiscountResult(
            discounts_applied=applied,
            stacking=rules.discount_stacking,
            total_percentage=total,
            capped=combined > rules.maximum_combined_discount,
            amount=price * (total / 100),
            requires_approval=total > rules.notes.approval_required_above,
        )

    # ============================================================
    # Milestones and final price
    # ============================================================

    def allocate_milestones(self, subtotal: float) -> MilestoneAllocations:
        """
        Split the subtotal into design/build/test/deploy.

        The first three shares are rounded independently; deploy takes the
        remainder so the four amounts always sum to the subtotal exactly.
        """
        split = self.rate_config.base_rates.milestone_allocation
        increment = self.rate_config.base_rates.milestone_rounding_increment

        amounts: dict[str, float] = {}
        for key in MILESTONE_KEYS[:-1]:
            amounts[key] = round_to_increment(subtotal * split[key].percentage / 100, increment)
        remainder = _to_decimal(subtotal) - sum(_to_decimal(a) for a in amounts.values())
        amounts["deploy"] = float(remainder)

        allocations = {}
        for key in MILESTONE_KEYS:
            number, name = MILESTONE_NAMES[key]
            allocations[key] = MilestoneAllocation(
                key=key,
                milestone_number=number,
                milestone_name=name,
                percentage=split[key].percentage,
                amount=amounts[key],
                description=split[key].description,
            )
        result = MilestoneAllocations(**allocations)

        allocated = sum(_to_decimal(m.amount) for m in result.ordered())
        if allocated != _to_decimal(subtotal):
            raise PricingInvariantViolation(
                f"Milestone allocation {allocated} does not match subtotal {subtotal}",
                details={"subtotal": subtotal, "allocations": amounts},
            )
        return result

    def _apply_early_adopter(
        self,
        subtotal: float,
        audit_credit: float,
        options: PricingOptions,
    ) -> tuple[float, EarlyAdopterDiscount, bool]:
        rates = self.rate_config.base_rates
        after_credit = _to_decimal(subtotal) - _to_decimal(audit_credit)

        if options.early_adopter:
            raw = float(after_credit) * (1 - options.early_adopter_percent / 100)
        else:
            raw = float(after_credit)
        final_price = round_to_increment(raw, rates.rounding_increment)

        minimum_applied = final_price < rates.minimum_project_value
        if minimum_applied:
            final_price = float(rates.minimum_project_value)

        # Back-calculated so the breakdown reconciles exactly
        amount = float(after_credit - _to_decimal(final_price))
        discount = EarlyAdopterDiscount(
            enabled=options.early_adopter,
            percentage=options.early_adopter_percent if options.early_adopter else 0.0,
            amount=amount,
        )
        return final_price, discount, minimum_applied

    @staticmethod
    def _check_final_price(
        subtotal: float,
        audit_credit: float,
        early_adopter_amount: float,
        final_price: float,
    ) -> None:
        expected = _to_decimal(subtotal) - _to_decimal(audit_credit) - _to_decimal(early_adopter_amount)
        if expected != _to_decimal(final_price):
            raise PricingInvariantViolation(
                f"Final price {final_price} does not reconcile to {expected}",
                details={
                    "subtotal": subtotal,
                    "audit_credit": audit_credit,
                    "early_adopter_amount": early_adopter_amount,
                },
            )

    # ============================================================
    # Package recommendation
    # ============================================================

    def get_package_recommendation(self, audit: AuditExtract) -> PackageRecommendation:
        """
        Score = fixes + 0.5 x systems + 2 x critical fixes.

        The first package (by ascending score ceiling) whose ceiling is not
        exceeded wins; a package without a ceiling catches everything else.
        """
        fixes = audit.recommended_fixes
        systems_count = len(audit.systems) or DEFAULT_SYSTEMS_COUNT
        # Only descriptors that literally say "critical"; "major" prices as critical but scores as a plain fix
        critical = sum(1 for f in fixes if "critical" in f.effort_tier.lower())
        score = len(fixes) + systems_count * 0.5 + critical * 2

        packages = self.rate_config.base_rates.fixed_packages
        ranked = sorted(
            packages.items(),
            key=lambda item: (
                item[1].max_complexity_score is None,
                item[1].max_complexity_score or 0,
            ),
        )
        for key, package in ranked:
            if package.max_complexity_score is None or score <= package.max_complexity_score:
                return PackageRecommendation(
                    package_key=key,
                    name=package.name,
                    complexity_score=score,
                    price_range=package.price_range,
                    description=package.description,
                )
        return PackageRecommendation(
            package_key="custom",
            name="Custom Engagement",
            complexity_score=score,
        )

    # ============================================================
    # Input coercion
    # ============================================================

    @staticmethod
    def coerce_audit(audit: Union[AuditExtract, dict[str, Any]]) -> AuditExtract:
        if isinstance(audit, AuditExtract):
            return audit
        try:
            return AuditExtract.model_validate(audit or {})
        except ValidationError as e:
            raise InputValidationError(
                "Malformed audit extract", details=e.errors(include_url=False, include_context=False, include_input=False)
            ) from e

    @staticmethod
    def coerce_options(options: Optional[Union[PricingOptions, dict[str, Any]]]) -> PricingOptions:
        if isinstance(options, PricingOptions):
            return options
        try:
            return PricingOptions.model_validate(options or {})
        except ValidationError as e:
            raise InputValidationError(
                "Malformed pricing options", details=e.errors(include_url=False, include_context=False, include_input=False)
            ) from e
