"""
Proposal API.
Prices an audit extract, previews the assembled document, or runs the full
pipeline including narrative generation.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, ValidationError

from proposal_engine.exceptions import InputValidationError
from proposal_engine.layers.layer3_assembly import AssemblyOptions
from proposal_engine.models import NarrativeOptions
from proposal_engine.services import ProposalPipeline, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()


class PricingRequest(BaseModel):
    """Audit extract plus pricing options."""
    audit: dict[str, Any] = Field(..., description="Canonical audit extract")
    pricing_options: dict[str, Any] = Field(default_factory=dict)


class ProposalRequest(PricingRequest):
    """Full proposal request."""
    assembly_options: dict[str, Any] = Field(default_factory=dict)
    narrative_options: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict, description="Extra prompt parameters")


def _validated(model_cls, raw: dict[str, Any], label: str):
    try:
        return model_cls.model_validate(raw or {})
    except ValidationError as e:
        raise InputValidationError(
            f"Malformed {label}",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


@router.post("/pricing")
async def price_proposal(
    request: PricingRequest,
    pipeline: ProposalPipeline = Depends(get_pipeline),
) -> dict:
    """Pricing breakdown only (no document)."""
    pricing = pipeline.price(request.audit, request.pricing_options)
    return pricing.model_dump(mode="json")


@router.post("/preview")
async def preview_proposal(
    request: ProposalRequest,
    pipeline: ProposalPipeline = Depends(get_pipeline),
) -> dict:
    """
    Assembled document without narrative generation.
    Narrative fields are returned as [LLM_PLACEHOLDER: name] sentinels.
    """
    assembly = _validated(AssemblyOptions, request.assembly_options, "assembly options")
    result = pipeline.build(request.audit, request.pricing_options, assembly)
    return result.to_output()


@router.post("")
async def generate_proposal(
    request: ProposalRequest,
    pipeline: ProposalPipeline = Depends(get_pipeline),
) -> dict:
    """
    Full pipeline: pricing, phases, assembly and narrative.

    Slots that could not be generated keep their sentinel and are listed in
    ``unresolved_slots``; the request itself still succeeds.
    """
    assembly = _validated(AssemblyOptions, request.assembly_options, "assembly options")
    narrative: Optional[NarrativeOptions] = _validated(
        NarrativeOptions, request.narrative_options, "narrative options"
    )
    result = await pipeline.generate(
        request.audit,
        request.pricing_options,
        assembly,
        narrative,
        context=request.context,
    )
    logger.info(
        f"[ProposalAPI] {result.document.document.proposal_number}: "
        f"{result.filled_slots} slots filled, {len(result.unresolved_slots)} unresolved"
    )
    return result.to_output()
