"""
Proposal pipeline orchestrator.

Stages:
1. Pricing: audit extract -> PricingBreakdown
2. Phases: Audit / Stabilize / Scale with priced milestones
3. Assembly: ProposalDocument with pending narrative slots, structural self-check
4. Narrative: fill the slots through the text-generation backends

Stages 1-3 are synchronous and deterministic; only stage 4 talks to a backend.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional, Union

from proposal_engine.config import Settings, get_settings
from proposal_engine.models import (
    AuditExtract,
    NarrativeOptions,
    PipelineEvent,
    PipelineResult,
    PipelineStage,
    PricingBreakdown,
    PricingOptions,
)
from proposal_engine.models.pipeline import STAGE_PROGRESS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PipelineEvent], Union[Awaitable[None], None]]


class ProposalPipeline:
    """
    Runs the four layers in order and hands results from one to the next.

    Every collaborator can be injected; missing ones are created from settings.
    """

    def __init__(
        self,
        pricing_engine=None,
        phase_builder=None,
        assembler=None,
        executor=None,
        settings: Optional[Settings] = None,
    ):
        # Layers are imported here: layer 4 depends on this services package
        from proposal_engine.layers.layer1_pricing import PricingEngine
        from proposal_engine.layers.layer2_phases import PhaseBuilder
        from proposal_engine.layers.layer3_assembly import ProposalAssembler
        from proposal_engine.layers.layer4_narrative import NarrativeExecutor

        self.settings = settings or get_settings()
        self.pricing_engine = pricing_engine or PricingEngine()
        self.phase_builder = phase_builder or PhaseBuilder()
        self.assembler = assembler or ProposalAssembler(self.settings)
        self.executor = executor or NarrativeExecutor(settings=self.settings)

    def price(
        self,
        audit: Union[AuditExtract, dict[str, Any]],
        options: Optional[Union[PricingOptions, dict[str, Any]]] = None,
    ) -> PricingBreakdown:
        """Pricing only."""
        return self.pricing_engine.calculate(audit, options)

    def build(
        self,
        audit: Union[AuditExtract, dict[str, Any]],
        pricing_options: Optional[Union[PricingOptions, dict[str, Any]]] = None,
        assembly_options: Optional[Any] = None,
    ) -> PipelineResult:
        """
        Pricing, phases and assembly without narrative generation.

        The returned document still carries its pending slots.

        Raises:
            InputValidationError: malformed extract or options
            ValidationFailure: the assembled document fails its self-check
        """
        from proposal_engine.layers.layer3_assembly import ensure_valid_document

        audit = self.pricing_engine.coerce_audit(audit)
        pricing_options = self.pricing_engine.coerce_options(pricing_options)

        pricing = self.pricing_engine.calculate(audit, pricing_options)
        phases = self.phase_builder.build_phases(audit, pricing, pricing_options)
        document = self.assembler.assemble(audit, pricing, phases, assembly_options)
        ensure_valid_document(document)

        return PipelineResult(
            document=document,
            pricing=pricing,
            warnings=list(pricing.warnings),
        )

    async def generate(
        self,
        audit: Union[AuditExtract, dict[str, Any]],
        pricing_options: Optional[Union[PricingOptions, dict[str, Any]]] = None,
        assembly_options: Optional[Any] = None,
        narrative_options: Optional[NarrativeOptions] = None,
        context: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        """
        Full pipeline: build the document, then fill its narrative slots.

        Narrative failures never fail the run; unresolved slots keep their
        sentinels and are listed in the result together with the warnings.

        Args:
            audit: audit extract (model or dict)
            pricing_options: pricing run options
            assembly_options: platform / validity / scope options
            narrative_options: provider and batching overrides
            context: extra prompt parameters
            on_progress: sync or async callback receiving PipelineEvent

        Returns:
            PipelineResult
        """
        from proposal_engine.layers.layer3_assembly import ensure_valid_document

        # ========== Stages 1-3: deterministic build ==========
        await self._emit_event(on_progress, PipelineStage.PRICING, "stage_start", "Pricing started")
        audit = self.pricing_engine.coerce_audit(audit)
        pricing_options = self.pricing_engine.coerce_options(pricing_options)
        pricing = self.pricing_engine.calculate(audit, pricing_options)
        await self._emit_event(
            on_progress, PipelineStage.PRICING, "stage_complete",
            f"Final price {pricing.final_price:g} {pricing.currency}",
        )

        await self._emit_event(on_progress, PipelineStage.PHASES, "stage_start", "Building phases")
        phases = self.phase_builder.build_phases(audit, pricing, pricing_options)
        await self._emit_event(
            on_progress, PipelineStage.PHASES, "stage_complete", f"{len(phases)} phases built"
        )

        await self._emit_event(on_progress, PipelineStage.ASSEMBLY, "stage_start", "Assembling document")
        document = self.assembler.assemble(audit, pricing, phases, assembly_options)
        ensure_valid_document(document)
        await self._emit_event(
            on_progress, PipelineStage.ASSEMBLY, "stage_complete",
            f"Assembled {document.document.proposal_number}",
        )

        # ========== Stage 4: narrative ==========
        await self._emit_event(on_progress, PipelineStage.NARRATIVE, "stage_start", "Generating narrative")
        fill = await self.executor.fill(document, context, narrative_options)
        ensure_valid_document(document)
        await self._emit_event(
            on_progress, PipelineStage.NARRATIVE, "stage_complete",
            f"{fill.filled_count}/{len(fill.results)} slots filled",
        )

        warnings = list(pricing.warnings) + list(fill.warnings)
        result = PipelineResult(
            document=document,
            pricing=pricing,
            warnings=warnings,
            filled_slots=fill.filled_count,
            unresolved_slots=fill.unresolved,
            narrative_model=fill.model_state.current_model if fill.model_state else None,
        )

        await self._emit_event(
            on_progress, PipelineStage.COMPLETE, "stage_complete",
            f"Proposal ready with {len(warnings)} warnings",
        )
        logger.info(
            f"[Pipeline] {document.document.proposal_number} done: "
            f"{result.filled_slots} slots filled, {len(result.unresolved_slots)} unresolved"
        )
        return result

    async def _emit_event(
        self,
        callback: Optional[ProgressCallback],
        stage: PipelineStage,
        event_type: str,
        message: str,
    ) -> None:
        """Send a progress event when a callback is registered."""
        logger.info(f"[Pipeline] {stage.value}: {message}")
        if callback is None:
            return
        event = PipelineEvent(
            stage=stage,
            event_type=event_type,
            message=message,
            progress_percent=STAGE_PROGRESS[stage] if event_type == "stage_start" else min(
                100, STAGE_PROGRESS[stage] + 10
            ),
        )
        outcome = callback(event)
        if outcome is not None and hasattr(outcome, "__await__"):
            await outcome


# Singleton instance for dependency injection
_pipeline: Optional[ProposalPipeline] = None


def get_pipeline() -> ProposalPipeline:
    """Get or create the pipeline singleton."""
    global _pipeline
    if _pipeline is None:
        _pipeline = ProposalPipeline()
    return _pipeline
