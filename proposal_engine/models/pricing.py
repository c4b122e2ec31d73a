"""
Pricing models.

PricingBreakdown is created once per generation run by the PricingEngine and
is immutable afterwards. Money values are plain floats in currency units;
display strings are rendered by the document assembler.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EffortTier(str, Enum):
    """
    Ordered effort tiers. Each tier carries a default hour estimate in RateConfig.
    """
    TRIVIAL = "trivial"
    MODERATE = "moderate"
    COMPLEX = "complex"
    CRITICAL = "critical"


class StackingPolicy(str, Enum):
    """How simultaneously applicable discounts are combined."""
    HIGHEST_ONLY = "highest_only"
    ADDITIVE = "additive"


MILESTONE_KEYS = ("design", "build", "test", "deploy")


class ValidationConfig(BaseModel):
    """Enterprise pricing validation parameters (advisory checks)."""
    model_config = ConfigDict(frozen=True)

    profit_floor_percent: float = Field(50, ge=0, lt=100, description="Minimum margin on internal cost")
    hard_floor_coverage_percent: float = Field(50, description="Share of price hard savings must cover")
    max_payback_months: float = Field(3, description="Payback ceiling on hard + modeled value")
    opportunity_lift_percent: float = Field(1, description="Modeled conversion lift")
    average_deal_value: float = Field(5000, description="Average deal value for modeled opportunity")
    daily_leads_default: float = Field(20, description="Daily leads for modeled opportunity")
    internal_hourly_rate: float = Field(50, description="Internal production cost per hour")


class PricingOptions(BaseModel):
    """Run-time pricing options. Unknown option values resolve to a 1.0 multiplier."""
    model_config = ConfigDict(frozen=True)

    timeline_pressure: str = Field("standard", description="standard | expedited | rush | emergency")
    client_readiness: str = Field("standard", description="advanced | standard | limited | minimal")
    data_sensitivity: Optional[str] = Field(None, description="Explicit override of the industry-derived level")
    commitment_type: Optional[str] = Field(None, description="single_project | multi_project | retainer_*")
    payment_terms: Optional[str] = Field(None, description="net_15 | upfront_50 | upfront_100")
    is_referral: bool = False
    audit_credit_amount: float = Field(100, ge=0, description="Credit for the completed audit")
    early_adopter: bool = True
    early_adopter_percent: float = Field(10, ge=0, le=100)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)


class EffortLine(BaseModel):
    """Hours attributed to one recommended fix."""
    model_config = ConfigDict(frozen=True)

    label: str
    descriptor: str
    tier: EffortTier
    hours: float


class ComplexityFactors(BaseModel):
    """The six independent multipliers. Their product is the complexity multiplier."""
    model_config = ConfigDict(frozen=True)

    systems_count: float = 1.0
    integration_difficulty: float = 1.0
    data_sensitivity: float = 1.0
    timeline_pressure: float = 1.0
    client_readiness: float = 1.0
    industry: float = 1.0

    def product(self) -> float:
        total = 1.0
        for value in self.model_dump().values():
            total *= value
        return total


class ComplexityAssessment(BaseModel):
    """Complexity factors plus the keys they were resolved from."""
    model_config = ConfigDict(frozen=True)

    factors: ComplexityFactors
    multiplier: float
    systems_count: int
    industry_key: str
    sensitivity_level: str
    warnings: list[str] = Field(default_factory=list)


class AppliedDiscount(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="volume | commitment | early_payment | referral")
    percentage: float
    description: str = ""


class DiscountResult(BaseModel):
    """Combined discount after stacking and capping."""
    model_config = ConfigDict(frozen=True)

    discounts_applied: list[AppliedDiscount] = Field(default_factory=list)
    stacking: StackingPolicy = StackingPolicy.HIGHEST_ONLY
    total_percentage: float = 0.0
    capped: bool = False
    amount: float = 0.0
    requires_approval: bool = False


class MilestoneAllocation(BaseModel):
    """One priced milestone share of the subtotal."""
    model_config = ConfigDict(frozen=True)

    key: str
    milestone_number: str
    milestone_name: str
    percentage: float
    amount: float
    description: str = ""


class MilestoneAllocations(BaseModel):
    """Design/Build/Test/Deploy split. Deploy absorbs the rounding remainder."""
    model_config = ConfigDict(frozen=True)

    design: MilestoneAllocation
    build: MilestoneAllocation
    test: MilestoneAllocation
    deploy: MilestoneAllocation

    def ordered(self) -> list[MilestoneAllocation]:
        return [getattr(self, key) for key in MILESTONE_KEYS]

    def total(self) -> float:
        return sum(m.amount for m in self.ordered())


class EarlyAdopterDiscount(BaseModel):
    """
    Early adopter discount.

    ``amount`` is back-calculated as (subtotal - audit_credit) - final_price, so it
    can diverge from percentage x price once the minimum project value clamp applies.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    percentage: float = 0.0
    amount: float = 0.0
    note: str = "Thank you for being an early adopter as we grow"


class ValidationCheck(BaseModel):
    """Result of one advisory pricing check."""
    model_config = ConfigDict(frozen=True)

    passes: bool
    message: str
    required: Optional[float] = None
    actual: Optional[float] = None


class ValueComponent(BaseModel):
    """Hard savings or modeled opportunity, kept separate for display."""
    model_config = ConfigDict(frozen=True)

    type: str
    label: str
    monthly: float
    annual: float
    formula: str


class ValueBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    hard_savings: ValueComponent
    modeled_opportunity: ValueComponent
    total_monthly_value: float
    total_annual_value: float
    display_note: str = "Labor Savings + Revenue Impact = Total Value (never merged)"


class EnterpriseValidation(BaseModel):
    """Advisory enterprise checks. Never alter the price."""
    model_config = ConfigDict(frozen=True)

    hard_floor: ValidationCheck
    payback_check: ValidationCheck
    all_pass: bool
    summary: str


class ProfitFloorCheck(BaseModel):
    """Margin of the client price over internal production cost."""
    model_config = ConfigDict(frozen=True)

    internal_cost: float
    margin_percent: float
    target_margin_percent: float
    required_markup: float = 1.0
    required_price: float
    passes: bool
    message: str


class PackageRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    package_key: str
    name: str
    complexity_score: float
    price_range: Optional[str] = None
    description: str = ""


class RoiSummary(BaseModel):
    """ROI figures derived from the audited bleed and the final price."""
    model_config = ConfigDict(frozen=True)

    monthly_recovery: float
    annual_recovery: float
    payback_period_months: Optional[float] = Field(
        None, description="ceil(price / monthly bleed x 10) / 10; None when bleed is 0"
    )
    payback_display: str
    value_breakdown: ValueBreakdown
    validation: EnterpriseValidation
    annual_roi_percent: int


class PricingBreakdown(BaseModel):
    """
    Full pricing result.

    Invariants:
    - milestones.total() == subtotal
    - final_price == subtotal - audit_credit - early_adopter_discount.amount
    - final_price >= minimum project value
    """
    model_config = ConfigDict(frozen=True)

    currency: str = "USD"
    pricing_model: str = "fixed_price"
    effort: list[EffortLine] = Field(default_factory=list)
    total_hours: float
    weighted_hourly_rate: float
    base_price: float
    complexity: ComplexityAssessment
    complexity_multiplier: float
    adjusted_price: float
    discount: DiscountResult
    subtotal: float
    milestones: MilestoneAllocations
    audit_credit: float
    early_adopter_discount: EarlyAdopterDiscount
    final_price: float
    minimum_applied: bool = False
    roi: RoiSummary
    profit_floor: ProfitFloorCheck
    package_recommendation: PackageRecommendation
    warnings: list[str] = Field(default_factory=list)

    @property
    def after_credit(self) -> float:
        return self.subtotal - self.audit_credit
