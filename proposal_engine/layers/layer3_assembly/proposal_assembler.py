"""
Proposal assembler - merges audit, pricing and phases into one document.

Every structural field is populated deterministically. Narrative fields are
left as ``Pending`` slots for the narrative executor:
executive summary, value proposition, phase and milestone descriptions,
call-to-action headline/subtext and (optionally) scope-in items.
"""

import logging
import random
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional, Union

from pydantic import BaseModel, Field

from proposal_engine.config import Settings, get_settings
from proposal_engine.exceptions import ValidationFailure
from proposal_engine.layers.layer2_phases import calculate_total_duration
from proposal_engine.models.audit import AuditExtract, Finding
from proposal_engine.models.common import Money
from proposal_engine.models.pricing import PricingBreakdown
from proposal_engine.models.proposal import (
    SCHEMA_VERSION,
    AuditCreditBlock,
    AuditReference,
    BrandInfo,
    CtaSection,
    DiscountApplied,
    DocumentMeta,
    EarlyAdopterBlock,
    ExecutiveSummary,
    Installment,
    PaymentSchedule,
    Pending,
    Phase,
    PhaseState,
    Platform,
    PlatformFees,
    PreparedBy,
    PreparedFor,
    PricingSection,
    ProposalDocument,
    RenderingHints,
    RoiSection,
    ScopeSection,
    SecondaryAction,
    TermsSection,
)
from proposal_engine.utils.formatting import format_date_display, format_money

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"critical": 0, "warning": 1, "healthy": 2}
DEFAULT_SEVERITY = 1

GENERIC_KEY_FINDINGS = [
    "Workflow automation opportunities identified",
    "Process efficiency gaps documented",
    "Integration improvements recommended",
]

MAX_SCOPE_ITEMS = 5
MIN_SCOPE_ITEMS = 3

OUT_OF_SCOPE = [
    "Third-party system licensing or subscription fees",
    "Hardware procurement or infrastructure changes",
    "Data migration from legacy systems not specified in scope",
    "Ongoing maintenance beyond {warranty_days}-day warranty period",
]

ASSUMPTIONS = [
    "Client will provide timely access to required systems and credentials",
    "Key stakeholders available for requirements and testing sessions",
    "Existing system documentation is accurate and current",
    "No significant changes to business requirements during implementation",
]

CHANGE_CONTROL = (
    "Changes to scope after Design milestone sign-off may require separate "
    "pricing and timeline adjustment."
)

DUE_EVENTS = {
    "design": "Design sign-off",
    "build": "Build complete",
    "test": "Testing approved",
    "deploy": "Go-live complete",
}

PLATFORM_FEE_NOTES = {
    Platform.UPWORK: "Upwork service fees paid separately by client",
    Platform.DIRECT: "Direct engagement - no platform fees",
}

UPWORK_MESSAGES_LINK = "https://www.upwork.com/messages"


def default_proposal_number(now: datetime) -> str:
    """WRN-<year>-<random 4 digits>."""
    return f"WRN-{now.year}-{random.randint(1000, 9999)}"


def extract_key_findings(findings: list[Finding], count: int = 3) -> list[str]:
    """
    Top ``count`` findings by severity (critical, warning, healthy).

    Unknown severities sort with warnings; ties keep their original order.
    Falls back to generic findings when none have text.
    """
    usable = [f for f in findings if f.finding and f.finding.strip()]
    if not usable:
        return list(GENERIC_KEY_FINDINGS[:count])
    ranked = sorted(
        usable,
        key=lambda f: SEVERITY_ORDER.get((f.status or "").lower(), DEFAULT_SEVERITY),
    )
    return [f.finding.strip() for f in ranked[:count]]


class AssemblyOptions(BaseModel):
    """Document assembly options."""
    platform: Optional[Platform] = Field(None, description="direct | upwork; defaults to settings")
    valid_days: Optional[int] = Field(None, ge=1, description="Validity window; defaults to settings")
    key_findings_count: int = Field(3, ge=1)
    scope_fallback: str = Field(
        "generic",
        description="generic: pad with standard items | narrative: pending slot when no fix text",
    )


class ProposalAssembler:
    """Builds a ProposalDocument with pending narrative slots."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        id_factory: Optional[Callable[[], str]] = None,
        proposal_number_factory: Optional[Callable[[datetime], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._proposal_number = proposal_number_factory or default_proposal_number
        self._now = clock or (lambda: datetime.now(timezone.utc))

    def assemble(
        self,
        audit: AuditExtract,
        pricing: PricingBreakdown,
        phases: list[Phase],
        options: Optional[Union[AssemblyOptions, dict]] = None,
    ) -> ProposalDocument:
        """
        Assemble the full document.

        Args:
            audit: audit extract
            pricing: pricing breakdown
            phases: phases from the PhaseBuilder
            options: platform, validity and scope options

        Returns:
            ProposalDocument: document with Pending narrative slots
        """
        if not isinstance(options, AssemblyOptions):
            options = AssemblyOptions.model_validate(options or {})
        platform = options.platform or Platform(self.settings.default_platform)
        valid_days = options.valid_days or self.settings.default_validity_days

        now = self._now()
        valid_until = now + timedelta(days=valid_days)
        proposal_number = self._proposal_number(now)
        workflow_name = audit.workflow.name

        logger.info(f"[ProposalAssembler] Assembling {proposal_number} ({platform.value})")

        document = ProposalDocument(
            schema_version=SCHEMA_VERSION,
            document=DocumentMeta(
                document_id=self._new_id(),
                proposal_number=proposal_number,
                created_at=now.isoformat(),
                valid_until=valid_until.isoformat(),
                valid_days=valid_days,
                subtitle=f"{workflow_name} Automation Implementation",
                brand=BrandInfo(
                    brand_name=self.settings.brand_name,
                    logo_uri=self.settings.logo_uri,
                    primary_domain=self.settings.primary_domain,
                ),
            ),
            prepared_for=PreparedFor(
                account_name=audit.client.account_name,
                industry=audit.client.industry or "professional_services",
                primary_contact=audit.client.primary_contact,
            ),
            prepared_by=PreparedBy(
                producer_name=self.settings.producer_name,
                producer_email=self.settings.producer_email,
            ),
            audit_reference=AuditReference(
                audit_id=audit.audit.audit_id,
                audit_date=format_date_display(audit.audit.audit_date or now),
                workflow_name=workflow_name,
                bleed_total=Money.of(audit.monthly_bleed, pricing.currency),
                key_findings=extract_key_findings(audit.findings, options.key_findings_count),
            ),
            executive_summary=ExecutiveSummary(
                body=Pending(name="executive_summary"),
                value_proposition=Pending(name="value_proposition"),
            ),
            pricing=self.build_pricing_section(pricing, platform),
            roi=self.build_roi_section(pricing),
            phases=phases,
            total_duration=calculate_total_duration(phases),
            scope=self.build_scope_section(audit, options.scope_fallback),
            terms=self.build_terms_section(platform, valid_days),
            cta=self.build_cta_section(proposal_number, valid_until, platform),
            rendering=RenderingHints(platform=platform),
        )

        logger.info(f"[ProposalAssembler] Assembled {proposal_number}: total={pricing.final_price:g}")
        return document

    # ============================================================
    # Sections
    # ============================================================

    def build_pricing_section(self, pricing: PricingBreakdown, platform: Platform) -> PricingSection:
        """Totals, milestone installments, platform fees and discount blocks."""
        currency = pricing.currency
        installments = [
            Installment(
                milestone_id=allocation.milestone_number,
                label=f"Milestone {allocation.milestone_number}: {allocation.milestone_name}",
                amount=Money.of(allocation.amount, currency),
                percentage=allocation.percentage,
                due_event=DUE_EVENTS[allocation.key],
            )
            for allocation in pricing.milestones.ordered()
        ]

        discount_applied = None
        if pricing.discount.total_percentage > 0:
            applied = pricing.discount.discounts_applied
            discount_applied = DiscountApplied(
                percentage=pricing.discount.total_percentage,
                amount=Money.of(pricing.discount.amount, currency),
                reason=applied[0].description if applied else "Volume discount",
                requires_approval=pricing.discount.requires_approval,
            )

        early = pricing.early_adopter_discount
        return PricingSection(
            currency=currency,
            pricing_model=pricing.pricing_model,
            subtotal=Money.of(pricing.subtotal, currency),
            total=Money.of(pricing.final_price, currency),
            payment_schedule=PaymentSchedule(installments=installments),
            platform_fees=PlatformFees(platform=platform, fee_note=PLATFORM_FEE_NOTES[platform]),
            discount_applied=discount_applied,
            audit_credit=AuditCreditBlock(
                amount=pricing.audit_credit,
                display=format_money(pricing.audit_credit, currency),
            ),
            early_adopter_discount=EarlyAdopterBlock(
                enabled=early.enabled,
                percentage=early.percentage,
                amount=early.amount,
                display=format_money(early.amount, currency),
                note=early.note,
            ),
        )

    @staticmethod
    def build_roi_section(pricing: PricingBreakdown) -> RoiSection:
        roi = pricing.roi
        return RoiSection(
            monthly_recovery=Money.of(roi.monthly_recovery, pricing.currency),
            annual_recovery=Money.of(roi.annual_recovery, pricing.currency),
            payback_period_months=roi.payback_period_months,
            payback_display=roi.payback_display,
            value_breakdown=roi.value_breakdown,
            validation=roi.validation,
            annual_roi_percent=roi.annual_roi_percent,
        )

    def build_scope_section(self, audit: AuditExtract, scope_fallback: str = "generic") -> ScopeSection:
        """
        In-scope items are the first five fix descriptions.

        With fewer than three, standard items are appended. In ``narrative``
        mode an extract without any fix text gets a pending slot instead.
        """
        in_scope = audit.fix_descriptions[:MAX_SCOPE_ITEMS]
        if not in_scope and scope_fallback == "narrative":
            scope_items: Union[Pending, list[str]] = Pending(name="scope_in_items")
        else:
            if len(in_scope) < MIN_SCOPE_ITEMS:
                in_scope.extend([
                    f"{audit.workflow.name} automation implementation",
                    "System integration and data synchronization",
                    "User training and documentation",
                ])
            scope_items = in_scope

        return ScopeSection(
            in_scope=scope_items,
            out_of_scope=[
                item.format(warranty_days=self.settings.warranty_days) for item in OUT_OF_SCOPE
            ],
            assumptions=list(ASSUMPTIONS),
            change_control=CHANGE_CONTROL,
        )

    def build_terms_section(self, platform: Platform, valid_days: int) -> TermsSection:
        if platform == Platform.UPWORK:
            payment_terms = "Payment via Upwork escrow upon milestone approval."
            cancellation = "Per Upwork Terms of Service. Completed milestones are non-refundable."
        else:
            payment_terms = "Invoice upon milestone completion, NET 15 payment terms."
            cancellation = (
                "Either party may cancel with 5 business days written notice. "
                "Client pays for completed work."
            )
        return TermsSection(
            validity_period=f"This proposal is valid for {valid_days} days from date of issue.",
            warranty_period=f"{self.settings.warranty_days}-day bug fix warranty post-deployment",
            ip_ownership="All custom code and configurations become client property upon final payment.",
            payment_terms=payment_terms,
            cancellation_policy=cancellation,
        )

    def build_cta_section(
        self,
        proposal_number: str,
        valid_until: datetime,
        platform: Platform,
    ) -> CtaSection:
        expires = f"Proposal valid until {format_date_display(valid_until)}"
        if platform == Platform.UPWORK:
            return CtaSection(
                headline=Pending(name="cta_headline"),
                subtext=Pending(name="cta_subtext"),
                link=UPWORK_MESSAGES_LINK,
                link_display="Reply on Upwork to approve",
                expires_display=expires,
            )

        template = self.settings.approve_link_template
        approve_link = template.replace("{proposal_number}", proposal_number) if template else ""
        book_call = self.settings.cta_book_call_link
        return CtaSection(
            headline=Pending(name="cta_headline"),
            subtext=Pending(name="cta_subtext"),
            link=approve_link,
            link_display="Approve This Proposal",
            expires_display=expires,
            secondary_action=SecondaryAction(link=book_call) if book_call else None,
        )


def check_document(document: ProposalDocument) -> list[str]:
    """
    Structural self-check of an assembled document.

    Returns the list of problems found (empty when the document is well-formed).
    """
    problems = []
    if not document.schema_version:
        problems.append("schema_version is not set")

    expected = [(1, PhaseState.COMPLETE), (2, PhaseState.CURRENT), (3, PhaseState.UPCOMING)]
    actual = [(p.phase_number, p.state) for p in document.phases]
    if actual != expected:
        problems.append(f"phases must be {expected}, got {actual}")
    else:
        priced = document.phases[1].milestones
        if [m.milestone_number for m in priced] != ["2.1", "2.2", "2.3", "2.4"]:
            problems.append("phase 2 must contain milestones 2.1 to 2.4")

    installments = document.pricing.payment_schedule.installments
    if len(installments) != 4:
        problems.append(f"expected 4 installments, got {len(installments)}")
    installment_total = sum(Decimal(str(i.amount.amount)) for i in installments)
    if installment_total != Decimal(str(document.pricing.subtotal.amount)):
        problems.append(
            f"installments sum to {installment_total}, subtotal is {document.pricing.subtotal.amount}"
        )

    if document.pricing.total.amount < 0:
        problems.append("total price is negative")
    return problems


def ensure_valid_document(document: ProposalDocument) -> ProposalDocument:
    """Raise ValidationFailure when the self-check finds problems."""
    problems = check_document(document)
    if problems:
        logger.error(f"[ProposalAssembler] Document self-check failed: {problems}")
        raise ValidationFailure("Assembled document failed its self-check", details=problems)
    return document
