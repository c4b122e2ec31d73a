"""
Phase builder - three-phase structure with milestones and duration estimates.

Phase 1 (Audit) is complete and unpriced, phase 2 (Stabilize) carries the four
priced milestones, phase 3 (Scale) is an unpriced teaser.
"""

import logging
import re
import uuid
from decimal import Decimal, ROUND_CEILING
from typing import Callable, Optional

from pydantic import BaseModel

from proposal_engine.models.audit import AuditExtract
from proposal_engine.models.common import Duration, Money
from proposal_engine.models.pricing import MILESTONE_KEYS, MilestoneAllocation, PricingBreakdown, PricingOptions
from proposal_engine.models.proposal import (
    Deliverable,
    Milestone,
    Pending,
    Phase,
    PhaseState,
)
from proposal_engine.utils.rounding import ceil_product, ceil_ratio

from .catalog import (
    AI_COMPONENTS_DELIVERABLE,
    AUDIT_DELIVERABLES,
    CORE_BUILD_DELIVERABLE,
    DEPLOY_DELIVERABLES,
    DESIGN_DELIVERABLES,
    INTEGRATIONS_DELIVERABLE,
    INTERNAL_TESTING_DELIVERABLE,
    SCALE_MILESTONES,
    TEST_DELIVERABLES,
    deliverables_from,
)

logger = logging.getLogger(__name__)

# Roughly one week of work per $5,000
PRICE_PER_WEEK = 5000
MIN_TOTAL_WEEKS = 2
MIN_MILESTONE_WEEKS = 1
BUSINESS_DAYS_PER_WEEK = 5

# Timeline pressure compresses the calendar (the price side is in RateConfig)
PRESSURE_DURATION_FACTORS = {
    "standard": 1.0,
    "expedited": 0.7,
    "rush": 0.5,
    "emergency": 0.3,
}

AI_KEYWORDS = re.compile(r"\bai\b|automat", re.IGNORECASE)


class DurationEstimate(BaseModel):
    """Total calendar estimate plus per-milestone durations."""
    total: Duration
    milestones: dict[str, Duration]


def estimate_durations(
    final_price: float,
    timeline_pressure: str = "standard",
    shares: Optional[dict[str, float]] = None,
) -> DurationEstimate:
    """
    Estimate milestone durations from the final price.

    total = max(2, ceil(price / 5000)), scaled by the pressure factor, then split
    by milestone share. Each milestone is rounded up independently with a floor
    of one week, so the milestones may sum to slightly more than the total.
    """
    shares = shares or {"design": 20, "build": 45, "test": 15, "deploy": 20}
    pressure = PRESSURE_DURATION_FACTORS.get(timeline_pressure, 1.0)

    total_weeks = max(MIN_TOTAL_WEEKS, ceil_ratio(final_price, PRICE_PER_WEEK))
    adjusted_weeks = max(MIN_TOTAL_WEEKS, ceil_product(total_weeks, pressure))

    milestones = {
        key: Duration.of(max(MIN_MILESTONE_WEEKS, ceil_product(adjusted_weeks, shares[key] / 100)))
        for key in MILESTONE_KEYS
    }
    return DurationEstimate(total=Duration.of(adjusted_weeks), milestones=milestones)


def calculate_total_duration(phases: list[Phase]) -> Duration:
    """Sum of milestone weeks over phases that are not upcoming, rounded up.

    Business days count as 1/5 week.
    """
    total_weeks = Decimal(0)
    for phase in phases:
        if phase.state == PhaseState.UPCOMING:
            continue
        for milestone in phase.milestones:
            duration = milestone.duration
            if duration is None:
                continue
            if duration.unit == "business_days":
                total_weeks += Decimal(duration.value) / BUSINESS_DAYS_PER_WEEK
            else:
                total_weeks += Decimal(duration.value)
    return Duration.of(int(total_weeks.to_integral_value(rounding=ROUND_CEILING)))


class PhaseBuilder:
    """Builds the Audit / Stabilize / Scale phases for one proposal."""

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    def build_phases(
        self,
        audit: AuditExtract,
        pricing: PricingBreakdown,
        options: Optional[PricingOptions] = None,
    ) -> list[Phase]:
        """
        Build the three phases.

        Args:
            audit: audit extract
            pricing: pricing breakdown (milestone allocation + final price)
            options: run options (timeline_pressure drives durations)

        Returns:
            list[Phase]: [Audit, Stabilize, Scale]
        """
        options = options or PricingOptions()
        phases = [
            self.build_audit_phase(audit),
            self.build_stabilize_phase(audit, pricing, options.timeline_pressure),
            self.build_scale_phase(),
        ]
        logger.info(
            f"[PhaseBuilder] Built {len(phases)} phases, "
            f"{sum(len(p.milestones) for p in phases)} milestones"
        )
        return phases

    def build_audit_phase(self, audit: AuditExtract) -> Phase:
        """Phase 1: the completed audit. No price."""
        return Phase(
            phase_id=self._new_id(),
            phase_number=1,
            phase_name="Audit",
            state=PhaseState.COMPLETE,
            description=Pending(name="phase_1_description"),
            milestones=[
                Milestone(
                    milestone_id=self._new_id(),
                    milestone_number="1.1",
                    milestone_name="AI Process Audit",
                    description="Comprehensive analysis of current workflow, systems, and operational efficiency.",
                    deliverables=deliverables_from(AUDIT_DELIVERABLES),
                    duration=Duration.of(audit.audit.duration_days, "business_days"),
                    price_allocation=Money(amount=0, display="Completed"),
                )
            ],
        )

    def build_stabilize_phase(
        self,
        audit: AuditExtract,
        pricing: PricingBreakdown,
        timeline_pressure: str = "standard",
    ) -> Phase:
        """Phase 2: the priced phase with design/build/test/deploy milestones."""
        allocations = pricing.milestones
        durations = estimate_durations(
            pricing.final_price,
            timeline_pressure,
            {a.key: a.percentage for a in allocations.ordered()},
        )
        deliverables = {
            "design": deliverables_from(DESIGN_DELIVERABLES),
            "build": self.build_deliverables(audit),
            "test": deliverables_from(TEST_DELIVERABLES),
            "deploy": deliverables_from(DEPLOY_DELIVERABLES),
        }
        milestones = [
            self._priced_milestone(
                allocation,
                deliverables[allocation.key],
                durations.milestones[allocation.key],
                pricing.currency,
            )
            for allocation in allocations.ordered()
        ]
        return Phase(
            phase_id=self._new_id(),
            phase_number=2,
            phase_name="Stabilize",
            state=PhaseState.CURRENT,
            description=Pending(name="phase_2_description"),
            milestones=milestones,
        )

    def build_scale_phase(self) -> Phase:
        """Phase 3: unpriced teaser."""
        return Phase(
            phase_id=self._new_id(),
            phase_number=3,
            phase_name="Scale",
            state=PhaseState.UPCOMING,
            description=Pending(name="phase_3_description"),
            milestones=[
                Milestone(
                    milestone_id=self._new_id(),
                    milestone_number=entry["milestone_number"],
                    milestone_name=entry["milestone_name"],
                    description=entry["description"],
                    deliverables=deliverables_from(entry["deliverables"]),
                )
                for entry in SCALE_MILESTONES
            ],
        )

    def build_deliverables(self, audit: AuditExtract) -> list[Deliverable]:
        """
        Build milestone deliverables.

        Integrations are added only for more than one system; AI components
        only when fix text mentions AI or automation.
        """
        entries = [CORE_BUILD_DELIVERABLE]

        systems = audit.systems
        if len(systems) > 1:
            listed = ", ".join(systems[:3])
            suffix = " and others" if len(systems) > 3 else ""
            entries.append({
                **INTEGRATIONS_DELIVERABLE,
                "description": f"Connections between {listed}{suffix}",
            })

        if any(AI_KEYWORDS.search(fix.fix or fix.description or "") for fix in audit.recommended_fixes):
            entries.append(AI_COMPONENTS_DELIVERABLE)

        entries.append(INTERNAL_TESTING_DELIVERABLE)
        return deliverables_from(entries)

    def _priced_milestone(
        self,
        allocation: MilestoneAllocation,
        deliverables: list[Deliverable],
        duration: Duration,
        currency: str,
    ) -> Milestone:
        slot = allocation.milestone_number.replace(".", "_")
        return Milestone(
            milestone_id=self._new_id(),
            milestone_number=allocation.milestone_number,
            milestone_name=allocation.milestone_name,
            description=Pending(name=f"milestone_{slot}_description"),
            deliverables=deliverables,
            duration=duration,
            price_allocation=Money.of(allocation.amount, currency),
            percentage=allocation.percentage,
        )
