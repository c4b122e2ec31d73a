"""Processing layers for the proposal generation pipeline."""

# Note: Import layers individually to avoid circular imports
# Use: from proposal_engine.layers.layer1_pricing import PricingEngine
# Use: from proposal_engine.layers.layer2_phases import PhaseBuilder
# Use: from proposal_engine.layers.layer3_assembly import ProposalAssembler
# Use: from proposal_engine.layers.layer4_narrative import NarrativeExecutor

__all__ = [
    "layer1_pricing",
    "layer2_phases",
    "layer3_assembly",
    "layer4_narrative",
]
