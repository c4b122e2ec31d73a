"""PricingEngine unit tests.

Covers the full breakdown for a reference audit, effort and industry mapping,
complexity multipliers, discount stacking/capping, milestone allocation and
the minimum project value clamp.
"""

from decimal import Decimal

import pytest

from proposal_engine.exceptions import InputValidationError
from proposal_engine.layers.layer1_pricing import PricingEngine, map_effort_tier, normalize_industry
from proposal_engine.models import EffortTier, PricingOptions, StackingPolicy
from proposal_engine.utils import round_to_increment


def _audit(fixes=None, systems=None, industry="technology", **extra):
    data = {
        "client": {"account_name": "Test Co", "industry": industry},
        "recommended_fixes": fixes if fixes is not None else [{"fix": "Automate intake", "effort_tier": "moderate"}],
        "systems": systems if systems is not None else ["CRM"],
        "bleed": {"monthly_amount": 1000},
    }
    data.update(extra)
    return data


class TestReferenceBreakdown:
    """Three fixes (moderate, complex, quick), three systems, SaaS client."""

    def test_hours_and_base_price(self, pricing):
        assert pricing.total_hours == 60
        assert [line.tier for line in pricing.effort] == [
            EffortTier.MODERATE,
            EffortTier.COMPLEX,
            EffortTier.TRIVIAL,
        ]
        assert pricing.weighted_hourly_rate == pytest.approx(149.25)
        assert pricing.base_price == pytest.approx(8955)

    def test_complexity(self, pricing):
        assert pricing.complexity.systems_count == 3
        assert pricing.complexity.factors.systems_count == 1.15
        assert pricing.complexity_multiplier == pytest.approx(1.15)
        assert pricing.adjusted_price == pytest.approx(10298.25)

    def test_volume_discount_and_subtotal(self, pricing):
        assert pricing.discount.total_percentage == 5
        assert [d.type for d in pricing.discount.discounts_applied] == ["volume"]
        assert pricing.discount.requires_approval is False
        assert pricing.subtotal == 9800

    def test_milestones(self, pricing):
        amounts = [m.amount for m in pricing.milestones.ordered()]
        assert amounts == [2000, 4400, 1500, 1900]
        assert pricing.milestones.total() == pricing.subtotal

    def test_final_price(self, pricing):
        assert pricing.audit_credit == 100
        assert pricing.after_credit == 9700
        assert pricing.final_price == 8700
        assert pricing.early_adopter_discount.percentage == 10
        assert pricing.early_adopter_discount.amount == 1000
        assert pricing.minimum_applied is False

    def test_roi_and_checks(self, pricing):
        assert pricing.roi.payback_period_months == 4.4
        assert pricing.roi.validation.all_pass is True
        assert pricing.profit_floor.passes is True
        assert pricing.warnings == []

    def test_package_recommendation(self, pricing):
        assert pricing.package_recommendation.package_key == "standard_implementation"
        assert pricing.package_recommendation.complexity_score == 4.5

    def test_calculation_is_deterministic(self, engine, sample_audit_dict):
        first = engine.calculate(sample_audit_dict)
        second = engine.calculate(sample_audit_dict)
        assert first.model_dump() == second.model_dump()


class TestEffortMapping:
    @pytest.mark.parametrize(
        "descriptor, expected",
        [
            ("quick win", EffortTier.TRIVIAL),
            ("Simple config change", EffortTier.TRIVIAL),
            ("trivial", EffortTier.TRIVIAL),
            ("moderate", EffortTier.MODERATE),
            ("complex", EffortTier.COMPLEX),
            ("Significant rework", EffortTier.COMPLEX),
            ("critical", EffortTier.CRITICAL),
            ("Major rebuild", EffortTier.CRITICAL),
            ("medium", EffortTier.MODERATE),
            ("", EffortTier.MODERATE),
            (None, EffortTier.MODERATE),
        ],
    )
    def test_map_effort_tier(self, descriptor, expected):
        assert map_effort_tier(descriptor) == expected

    def test_no_fixes_uses_category_count(self, engine):
        audit = _audit(fixes=[], findings=[{"finding": "a"}, {"finding": "b"}])
        _, hours = engine.estimate_hours(engine.coerce_audit(audit))
        assert hours == 32

    def test_no_fixes_and_no_findings_uses_three_categories(self, engine):
        _, hours = engine.estimate_hours(engine.coerce_audit(_audit(fixes=[])))
        assert hours == 48


class TestIndustry:
    @pytest.mark.parametrize(
        "industry, expected",
        [
            ("SaaS", "technology"),
            ("Software", "technology"),
            ("Financial Services", "financial_services"),
            ("E-Commerce", "retail_ecommerce"),
            ("Healthcare", "healthcare"),
            (None, "technology"),
        ],
    )
    def test_normalize_industry(self, industry, expected):
        assert normalize_industry(industry) == expected

    def test_saas_resolves_to_technology_with_standard_sensitivity(self, engine):
        assessment = engine.assess_complexity(engine.coerce_audit(_audit(industry="saas")))
        assert assessment.industry_key == "technology"
        assert assessment.sensitivity_level == "standard"
        assert assessment.factors.data_sensitivity == 1.0
        assert assessment.factors.industry == 1.0

    def test_healthcare_implies_phi(self, engine):
        assessment = engine.assess_complexity(engine.coerce_audit(_audit(industry="Healthcare")))
        assert assessment.sensitivity_level == "hipaa_phi"
        assert assessment.factors.data_sensitivity == 1.35
        assert assessment.factors.industry == 1.2

    def test_explicit_sensitivity_overrides_industry(self, engine):
        options = PricingOptions(data_sensitivity="pii_present")
        assessment = engine.assess_complexity(engine.coerce_audit(_audit(industry="saas")), options)
        assert assessment.factors.data_sensitivity == 1.15


class TestComplexity:
    @pytest.mark.parametrize(
        "count, expected",
        [(1, 1.0), (2, 1.0), (3, 1.15), (4, 1.15), (5, 1.3), (6, 1.3), (7, 1.5), (12, 1.5)],
    )
    def test_systems_ranges(self, engine, count, expected):
        audit = engine.coerce_audit(_audit(systems=[f"S{i}" for i in range(count)]))
        assert engine.assess_complexity(audit).factors.systems_count == expected

    def test_missing_systems_default_to_two(self, engine):
        assessment = engine.assess_complexity(engine.coerce_audit(_audit(systems=[])))
        assert assessment.systems_count == 2
        assert assessment.factors.systems_count == 1.0

    def test_hardest_integration_wins(self, engine):
        audit = engine.coerce_audit(
            _audit(integration_types=["api_available", "CSV Import", "webhook_only"])
        )
        assert engine.assess_complexity(audit).factors.integration_difficulty == 1.15

    def test_unknown_keys_resolve_to_one_with_warning(self, engine):
        audit = engine.coerce_audit(_audit(integration_types=["carrier_pigeon"]))
        assessment = engine.assess_complexity(audit, PricingOptions(timeline_pressure="glacial"))
        assert assessment.factors.integration_difficulty == 1.0
        assert assessment.factors.timeline_pressure == 1.0
        assert any("glacial" in w for w in assessment.warnings)
        assert any("carrier_pigeon" in w for w in assessment.warnings)

    def test_multiplier_is_product_of_factors(self, engine):
        audit = engine.coerce_audit(_audit(industry="legal", systems=["A", "B", "C", "D", "E"]))
        options = PricingOptions(timeline_pressure="expedited", client_readiness="limited")
        assessment = engine.assess_complexity(audit, options)
        expected = 1.3 * 1.0 * 1.15 * 1.2 * 1.15 * 1.15
        assert assessment.multiplier == pytest.approx(expected)

    def test_scaling_one_factor_scales_the_multiplier(self, engine):
        audit = engine.coerce_audit(_audit())
        standard = engine.assess_complexity(audit, PricingOptions(timeline_pressure="standard"))
        rush = engine.assess_complexity(audit, PricingOptions(timeline_pressure="rush"))
        assert rush.multiplier / standard.multiplier == pytest.approx(1.4)

    def test_advanced_readiness_lowers_price(self, engine):
        audit = _audit(fixes=[{"effort_tier": "critical"}] * 3)
        standard = engine.calculate(audit)
        advanced = engine.calculate(audit, {"client_readiness": "advanced"})
        assert advanced.adjusted_price < standard.adjusted_price


class TestDiscounts:
    ALL_OPTIONS = PricingOptions(
        commitment_type="retainer_12_month",
        payment_terms="upfront_100",
        is_referral=True,
    )

    def test_no_discount_below_volume_threshold(self, engine):
        result = engine.calculate_discount(9999.99)
        assert result.total_percentage == 0
        assert result.discounts_applied == []
        assert result.amount == 0

    @pytest.mark.parametrize(
        "price, expected",
        [(10000, 5), (24999.99, 5), (25000, 7.5), (49999.99, 7.5), (50000, 10), (250000, 10)],
    )
    def test_volume_tiers(self, engine, price, expected):
        assert engine.calculate_discount(price).total_percentage == expected

    def test_highest_only_stacking(self, engine):
        result = engine.calculate_discount(30000, self.ALL_OPTIONS)
        assert result.stacking == StackingPolicy.HIGHEST_ONLY
        assert {d.type for d in result.discounts_applied} == {
            "volume", "commitment", "early_payment", "referral"
        }
        assert result.total_percentage == 12
        assert result.capped is False
        assert result.requires_approval is True
        assert result.amount == pytest.approx(3600)

    def test_additive_stacking_is_capped(self, rate_config):
        additive = rate_config.model_copy(
            update={
                "discounts": rate_config.discounts.model_copy(
                    update={"discount_stacking": StackingPolicy.ADDITIVE}
                )
            }
        )
        result = PricingEngine(additive).calculate_discount(30000, self.ALL_OPTIONS)
        assert result.total_percentage == 15
        assert result.capped is True
        assert result.amount == pytest.approx(4500)

    def test_single_project_and_net_15_add_nothing(self, engine):
        options = PricingOptions(commitment_type="single_project", payment_terms="net_15")
        assert engine.calculate_discount(5000, options).discounts_applied == []

    def test_approval_warning_in_breakdown(self, engine):
        breakdown = engine.calculate(_audit(), {"commitment_type": "retainer_12_month"})
        assert breakdown.discount.requires_approval is True
        assert any("requires approval" in w for w in breakdown.warnings)


class TestMilestoneAllocation:
    def test_deploy_absorbs_remainder(self, engine):
        milestones = engine.allocate_milestones(10550)
        assert [m.amount for m in milestones.ordered()] == [2100, 4700, 1600, 2150]
        assert [m.milestone_number for m in milestones.ordered()] == ["2.1", "2.2", "2.3", "2.4"]

    @pytest.mark.parametrize("subtotal", [2500, 9800, 10550, 33300, 123400, 987600])
    def test_sum_equals_subtotal(self, engine, subtotal):
        milestones = engine.allocate_milestones(subtotal)
        total = sum(Decimal(str(m.amount)) for m in milestones.ordered())
        assert total == Decimal(str(subtotal))

    def test_percentages_follow_split(self, engine):
        milestones = engine.allocate_milestones(10000)
        assert [m.percentage for m in milestones.ordered()] == [20, 45, 15, 20]


def _with_stacking(rate_config, stacking):
    return PricingEngine(
        rate_config.model_copy(
            update={"discounts": rate_config.discounts.model_copy(update={"discount_stacking": stacking})}
        )
    )


def _is_multiple(amount, increment=100):
    return Decimal(str(amount)) % Decimal(str(increment)) == 0


class TestReconciliationSweep:
    """Milestones and final price reconcile for every price and discount mode."""

    @pytest.mark.parametrize("stacking", list(StackingPolicy))
    def test_milestones_sum_to_subtotal(self, rate_config, stacking):
        engine = _with_stacking(rate_config, stacking)
        options = PricingOptions(commitment_type="retainer_12_month", payment_terms="upfront_50", is_referral=True)

        for adjusted_price in range(2500, 200001, 137):
            discount = engine.calculate_discount(adjusted_price, options)
            subtotal = round_to_increment(adjusted_price - discount.amount, 100)
            milestones = engine.allocate_milestones(subtotal)

            total = sum(Decimal(str(m.amount)) for m in milestones.ordered())
            assert total == Decimal(str(subtotal)), adjusted_price
            assert all(_is_multiple(m.amount) for m in milestones.ordered()), adjusted_price

    @pytest.mark.parametrize("stacking", list(StackingPolicy))
    @pytest.mark.parametrize("early_adopter", [True, False])
    @pytest.mark.parametrize("audit_credit", [0, 100])
    def test_breakdown_reconciles(self, rate_config, stacking, early_adopter, audit_credit):
        engine = _with_stacking(rate_config, stacking)
        tiers = ["trivial", "moderate", "complex", "critical"]

        for count in range(1, 13):
            fixes = [{"fix": f"Fix {i}", "effort_tier": tiers[i % 4]} for i in range(count)]
            for pressure in ("standard", "rush"):
                breakdown = engine.calculate(
                    _audit(fixes=fixes, systems=["CRM"] * (count % 8 + 1)),
                    {
                        "timeline_pressure": pressure,
                        "early_adopter": early_adopter,
                        "audit_credit_amount": audit_credit,
                        "commitment_type": "multi_project",
                    },
                )

                subtotal = Decimal(str(breakdown.subtotal))
                final = Decimal(str(breakdown.final_price))
                milestone_total = sum(Decimal(str(m.amount)) for m in breakdown.milestones.ordered())
                assert milestone_total == subtotal
                assert all(_is_multiple(m.amount) for m in breakdown.milestones.ordered())
                assert final == (
                    subtotal
                    - Decimal(str(breakdown.audit_credit))
                    - Decimal(str(breakdown.early_adopter_discount.amount))
                )
                assert _is_multiple(breakdown.final_price)
                assert breakdown.final_price >= 2500


class TestFinalPrice:
    def test_minimum_project_value_clamp(self, engine):
        breakdown = engine.calculate(_audit(fixes=[{"fix": "Tweak", "effort_tier": "trivial"}]))
        assert breakdown.subtotal == 600
        assert breakdown.final_price == 2500
        assert breakdown.minimum_applied is True
        assert breakdown.early_adopter_discount.amount == -2000
        assert any("minimum project value" in w for w in breakdown.warnings)

    def test_final_price_reconciles(self, pricing):
        expected = (
            Decimal(str(pricing.subtotal))
            - Decimal(str(pricing.audit_credit))
            - Decimal(str(pricing.early_adopter_discount.amount))
        )
        assert Decimal(str(pricing.final_price)) == expected

    def test_early_adopter_disabled(self, engine, sample_audit):
        breakdown = engine.calculate(sample_audit, {"early_adopter": False})
        assert breakdown.final_price == 9700
        assert breakdown.early_adopter_discount.enabled is False
        assert breakdown.early_adopter_discount.percentage == 0
        assert breakdown.early_adopter_discount.amount == 0

    def test_zero_audit_credit_is_honored(self, engine, sample_audit):
        breakdown = engine.calculate(sample_audit, {"audit_credit_amount": 0})
        assert breakdown.audit_credit == 0
        assert breakdown.final_price == 8800
        assert breakdown.early_adopter_discount.amount == 1000


class TestPackages:
    def test_small_engagement(self, engine):
        recommendation = engine.get_package_recommendation(engine.coerce_audit(_audit()))
        assert recommendation.package_key == "simple_automation"
        assert recommendation.complexity_score == 1.5

    def test_uncapped_package_catches_the_rest(self, engine):
        audit = _audit(
            fixes=[{"effort_tier": "critical"}] * 4,
            systems=[f"S{i}" for i in range(7)],
        )
        recommendation = engine.get_package_recommendation(engine.coerce_audit(audit))
        assert recommendation.complexity_score == 15.5
        assert recommendation.package_key == "enterprise_solution"

    def test_major_effort_is_not_scored_as_critical(self, engine):
        audit = engine.coerce_audit(_audit(fixes=[{"effort_tier": "major"}, {"effort_tier": "Critical path"}]))
        recommendation = engine.get_package_recommendation(audit)
        # 2 fixes + 0.5 x 1 system + 2 x 1 critical
        assert recommendation.complexity_score == 4.5
        assert map_effort_tier("major") == EffortTier.CRITICAL


class TestInputValidation:
    def test_malformed_audit(self, engine):
        with pytest.raises(InputValidationError) as exc_info:
            engine.calculate({"findings": "not a list"})
        assert exc_info.value.error_code == "ERR_INPUT_001"
        assert exc_info.value.details

    def test_malformed_options(self, engine, sample_audit):
        with pytest.raises(InputValidationError):
            engine.calculate(sample_audit, {"audit_credit_amount": -1})

    def test_missing_sections_use_defaults(self, engine):
        breakdown = engine.calculate({})
        assert breakdown.total_hours == 48
        assert breakdown.complexity.industry_key == "technology"
        assert breakdown.roi.payback_period_months is None
