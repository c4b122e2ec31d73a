"""Layer 4: narrative slot filling."""

from .placeholder_resolver import (
    PlaceholderResolver,
    build_context,
    enrich_context,
    find_slots,
    get_at_path,
    parse_path,
    set_at_path,
)
from .model_fallback import FallbackDecision, FallbackMode, ModelFallbackPolicy
from .post_processing import (
    close_open_tags,
    post_process,
    strip_preamble,
    truncate_html,
    truncate_to_sentence,
    validate_output,
)
from .narrative_executor import NarrativeExecutor

__all__ = [
    "PlaceholderResolver",
    "build_context",
    "enrich_context",
    "find_slots",
    "get_at_path",
    "parse_path",
    "set_at_path",
    "FallbackDecision",
    "FallbackMode",
    "ModelFallbackPolicy",
    "close_open_tags",
    "post_process",
    "strip_preamble",
    "truncate_html",
    "truncate_to_sentence",
    "validate_output",
    "NarrativeExecutor",
]
