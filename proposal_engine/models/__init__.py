"""Data models for the proposal generation system."""

from .common import Money, Duration
from .audit import (
    AuditExtract,
    AuditInfo,
    BleedData,
    ClientIdentity,
    ContactInfo,
    Finding,
    RecommendedFix,
    WorkflowInfo,
)
from .pricing import (
    MILESTONE_KEYS,
    AppliedDiscount,
    ComplexityAssessment,
    ComplexityFactors,
    DiscountResult,
    EarlyAdopterDiscount,
    EffortLine,
    EffortTier,
    EnterpriseValidation,
    MilestoneAllocation,
    MilestoneAllocations,
    PackageRecommendation,
    PricingBreakdown,
    PricingOptions,
    ProfitFloorCheck,
    RoiSummary,
    StackingPolicy,
    ValidationCheck,
    ValidationConfig,
    ValueBreakdown,
    ValueComponent,
)
from .proposal import (
    SCHEMA_VERSION,
    SENTINEL_PATTERN,
    Deliverable,
    Milestone,
    Narrative,
    Pending,
    Phase,
    PhaseState,
    Platform,
    ProposalDocument,
    parse_sentinel,
)
from .pipeline import PipelineEvent, PipelineResult, PipelineStage
from .narrative import (
    ModelState,
    NarrativeFillResult,
    NarrativeOptions,
    PlaceholderSlot,
    PromptContext,
    SlotPath,
    SlotResult,
    format_path,
)

__all__ = [
    # Common
    "Money",
    "Duration",
    # Audit extract
    "AuditExtract",
    "AuditInfo",
    "BleedData",
    "ClientIdentity",
    "ContactInfo",
    "Finding",
    "RecommendedFix",
    "WorkflowInfo",
    # Pricing
    "MILESTONE_KEYS",
    "AppliedDiscount",
    "ComplexityAssessment",
    "ComplexityFactors",
    "DiscountResult",
    "EarlyAdopterDiscount",
    "EffortLine",
    "EffortTier",
    "EnterpriseValidation",
    "MilestoneAllocation",
    "MilestoneAllocations",
    "PackageRecommendation",
    "PricingBreakdown",
    "PricingOptions",
    "ProfitFloorCheck",
    "RoiSummary",
    "StackingPolicy",
    "ValidationCheck",
    "ValidationConfig",
    "ValueBreakdown",
    "ValueComponent",
    # Proposal document
    "SCHEMA_VERSION",
    "SENTINEL_PATTERN",
    "Deliverable",
    "Milestone",
    "Narrative",
    "Pending",
    "Phase",
    "PhaseState",
    "Platform",
    "ProposalDocument",
    "parse_sentinel",
    # Narrative execution
    "ModelState",
    "NarrativeFillResult",
    "NarrativeOptions",
    "PlaceholderSlot",
    "PromptContext",
    "SlotPath",
    "SlotResult",
    "format_path",
    # Pipeline
    "PipelineEvent",
    "PipelineResult",
    "PipelineStage",
]
