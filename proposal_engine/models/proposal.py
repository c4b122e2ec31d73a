"""
Proposal document models.

Narrative fields are typed ``Union[Pending, str]``. A ``Pending`` value marks a
field that still waits for generated text; it serializes to the sentinel string
``[LLM_PLACEHOLDER: <name>]`` so that downstream renderers can see unresolved
slots. The narrative executor replaces each pending value exactly once.
"""

import re
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from .audit import ContactInfo
from .common import Duration, Money
from .pricing import EnterpriseValidation, ValueBreakdown

SCHEMA_VERSION = "1.0.0"
SENTINEL_TAG = "LLM_PLACEHOLDER"
SENTINEL_PATTERN = re.compile(r"\[LLM_PLACEHOLDER:\s*([^\]]+)\]")


class Pending(BaseModel):
    """Narrative slot that has not been generated yet."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Placeholder name, e.g. executive_summary")

    @property
    def sentinel(self) -> str:
        return f"[{SENTINEL_TAG}: {self.name}]"

    @model_serializer
    def _as_sentinel(self) -> str:
        return self.sentinel

    def __str__(self) -> str:
        return self.sentinel


Narrative = Union[Pending, str]


def parse_sentinel(value: Any) -> Optional[str]:
    """Return the placeholder name if ``value`` is a sentinel string."""
    if not isinstance(value, str):
        return None
    match = SENTINEL_PATTERN.search(value)
    return match.group(1).strip() if match else None


class PhaseState(str, Enum):
    """Phase lifecycle state."""
    COMPLETE = "complete"
    CURRENT = "current"
    UPCOMING = "upcoming"


class Platform(str, Enum):
    """Engagement platform. Only these two variants are supported."""
    DIRECT = "direct"
    UPWORK = "upwork"


# ============================================================
# Phases
# ============================================================

class Deliverable(BaseModel):
    """Milestone deliverable."""
    name: str
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)


class Milestone(BaseModel):
    """Milestone inside a phase. Phase 2 milestones carry a price allocation."""
    milestone_id: str
    milestone_number: str = Field(..., description="Ordinal, e.g. 2.1")
    milestone_name: str
    description: Narrative = ""
    deliverables: list[Deliverable] = Field(default_factory=list)
    duration: Optional[Duration] = None
    price_allocation: Optional[Money] = None
    percentage: Optional[float] = None


class Phase(BaseModel):
    """Proposal phase (1 Audit, 2 Stabilize, 3 Scale)."""
    phase_id: str
    phase_number: int
    phase_name: str
    state: PhaseState
    description: Narrative = ""
    milestones: list[Milestone] = Field(default_factory=list)


# ============================================================
# Document sections
# ============================================================

class BrandInfo(BaseModel):
    brand_name: str
    logo_uri: str = ""
    primary_domain: str = ""


class DocumentMeta(BaseModel):
    """Document metadata."""
    document_id: str
    proposal_number: str = Field(..., description="WRN-<year>-<4 digits>")
    created_at: str
    valid_until: str
    valid_days: int
    title: str = "Phase 2: Stabilize Proposal"
    subtitle: str = ""
    brand: BrandInfo


class PreparedFor(BaseModel):
    account_name: str
    industry: str
    primary_contact: ContactInfo = Field(default_factory=ContactInfo)


class PreparedBy(BaseModel):
    producer_name: str
    producer_email: str = ""


class AuditReference(BaseModel):
    """Reference to the completed audit."""
    audit_id: Optional[str] = None
    audit_date: str
    workflow_name: str
    bleed_total: Money
    bleed_period: str = "month"
    key_findings: list[str] = Field(default_factory=list)


class ExecutiveSummary(BaseModel):
    body: Narrative
    value_proposition: Narrative


class Installment(BaseModel):
    """Milestone-based payment installment."""
    milestone_id: str
    label: str
    amount: Money
    percentage: float
    due_event: str


class PaymentSchedule(BaseModel):
    schedule_type: str = "milestone_based"
    installments: list[Installment] = Field(default_factory=list)


class PlatformFees(BaseModel):
    platform: Platform
    fee_percentage: float = 0
    fee_note: str


class DiscountApplied(BaseModel):
    percentage: float
    amount: Money
    reason: str
    requires_approval: bool = False


class AuditCreditBlock(BaseModel):
    amount: float
    display: str
    description: str = "AI Process Audit credit applied"


class EarlyAdopterBlock(BaseModel):
    enabled: bool
    percentage: float
    amount: float
    display: str
    note: str


class PricingSection(BaseModel):
    """Client-facing pricing section."""
    currency: str = "USD"
    pricing_model: str = "fixed_price"
    subtotal: Money
    total: Money
    payment_schedule: PaymentSchedule
    platform_fees: PlatformFees
    discount_applied: Optional[DiscountApplied] = None
    audit_credit: AuditCreditBlock
    early_adopter_discount: EarlyAdopterBlock


class RoiSection(BaseModel):
    """ROI figures shown next to the price."""
    monthly_recovery: Money
    annual_recovery: Money
    payback_period_months: Optional[float] = None
    payback_display: str
    value_breakdown: ValueBreakdown
    validation: EnterpriseValidation
    annual_roi_percent: int


class ScopeSection(BaseModel):
    """Scope. ``in_scope`` is a pending slot only when no fix text is usable."""
    in_scope: Union[Pending, list[str]]
    out_of_scope: list[str] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    change_control: str = ""


class TermsSection(BaseModel):
    validity_period: str
    warranty_period: str
    ip_ownership: str
    payment_terms: str
    cancellation_policy: str


class SecondaryAction(BaseModel):
    label: str = "Schedule a Call"
    link: str


class CtaSection(BaseModel):
    """Call to action."""
    action_type: str = "approve_proposal"
    headline: Narrative
    subtext: Narrative
    link: str = ""
    link_display: str
    expires_display: str
    secondary_action: Optional[SecondaryAction] = None


class PageSettings(BaseModel):
    size: str = "letter"
    page_count: int = 2


class RenderingHints(BaseModel):
    mode: str = "proposal"
    platform: Platform
    page: PageSettings = Field(default_factory=PageSettings)


class ProposalDocument(BaseModel):
    """
    Full proposal output tree.

    Consumed by schema validation, template rendering and PDF export.
    Only the narrative executor mutates it, one write per pending slot.
    """
    schema_version: str = SCHEMA_VERSION
    document: DocumentMeta
    prepared_for: PreparedFor
    prepared_by: PreparedBy
    audit_reference: AuditReference
    executive_summary: ExecutiveSummary
    pricing: PricingSection
    roi: RoiSection
    phases: list[Phase]
    total_duration: Duration
    scope: ScopeSection
    terms: TermsSection
    cta: CtaSection
    rendering: RenderingHints

    def to_output(self) -> dict[str, Any]:
        """JSON-ready dict; pending slots appear as sentinel strings."""
        return self.model_dump(mode="json", exclude_none=True)
