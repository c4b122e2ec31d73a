"""Prompts for narrative slot generation."""

from .narrative_prompts import (
    OutputType,
    OutputConstraints,
    PromptDefinition,
    PROMPT_REGISTRY,
    PLACEHOLDER_TO_PROMPT,
    get_prompt,
    render_prompt,
)

__all__ = [
    "OutputType",
    "OutputConstraints",
    "PromptDefinition",
    "PROMPT_REGISTRY",
    "PLACEHOLDER_TO_PROMPT",
    "get_prompt",
    "render_prompt",
]
