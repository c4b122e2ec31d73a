"""Pipeline progress and result models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .narrative import PlaceholderSlot
from .pricing import PricingBreakdown
from .proposal import ProposalDocument


class PipelineStage(str, Enum):
    """Pipeline stages in execution order."""
    PRICING = "pricing"
    PHASES = "phases"
    ASSEMBLY = "assembly"
    NARRATIVE = "narrative"
    COMPLETE = "complete"


STAGE_PROGRESS = {
    PipelineStage.PRICING: 10,
    PipelineStage.PHASES: 30,
    PipelineStage.ASSEMBLY: 45,
    PipelineStage.NARRATIVE: 60,
    PipelineStage.COMPLETE: 100,
}


class PipelineEvent(BaseModel):
    """
    Progress event passed to the optional progress callback.
    """
    stage: PipelineStage
    event_type: str = Field(..., description="stage_start | stage_complete")
    message: str
    progress_percent: int = 0
    timestamp: datetime = Field(default_factory=datetime.now)


class PipelineResult(BaseModel):
    """Finished (or skeleton) document with its pricing and aggregated warnings."""
    document: ProposalDocument
    pricing: PricingBreakdown
    warnings: list[str] = Field(default_factory=list)
    filled_slots: int = 0
    unresolved_slots: list[PlaceholderSlot] = Field(default_factory=list)
    narrative_model: Optional[str] = Field(None, description="Model active when the fill finished")

    def to_output(self) -> dict:
        return {
            "document": self.document.to_output(),
            "pricing": self.pricing.model_dump(mode="json"),
            "warnings": self.warnings,
            "filled_slots": self.filled_slots,
            "unresolved_slots": [slot.dotted_path for slot in self.unresolved_slots],
            "narrative_model": self.narrative_model,
        }
