"""Prompts for proposal narrative slots."""

from enum import Enum
from typing import Any, Optional

from jinja2 import Environment
from pydantic import BaseModel, Field


class OutputType(str, Enum):
    """Declared output kind of a prompt."""
    STRING = "string"
    ARRAY_OF_STRINGS = "array_of_strings"
    HTML_FRAGMENT = "html_fragment"


class OutputConstraints(BaseModel):
    """Hard limits are enforced by truncation; the rest is advisory."""
    max_length: Optional[int] = None
    item_max_length: Optional[int] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    forbidden_phrases: list[str] = Field(default_factory=list)


class PromptDefinition(BaseModel):
    """One entry of the prompt catalog."""
    prompt_id: str
    system_prompt: str
    user_prompt_template: str
    output_type: OutputType = OutputType.STRING
    output_constraints: OutputConstraints = Field(default_factory=OutputConstraints)


# Shared voice for every narrative slot
BASE_SYSTEM_PROMPT = """You write concise, confident copy for B2B automation proposals.

Rules:
1. Write for a business owner, not an engineer
2. Use only the facts provided; never invent numbers, clients or results
3. No greetings, no preamble ("Here is..."), no closing remarks
4. Plain text unless told otherwise (no markdown headings, no bold)
5. American English"""

FORBIDDEN_PHRASES = [
    "As an AI",
    "I hope this helps",
    "game-changer",
    "revolutionize",
    "synergy",
]

EXECUTIVE_SUMMARY_TEMPLATE = """Write the executive summary of a Phase 2 (Stabilize) proposal for {{ client_name }} ({{ industry }}).

Audit date: {{ audit_date }}
Workflow: {{ workflow_name }}
Monthly revenue bleed found by the audit: {{ bleed_amount }}
Key findings:
- {{ key_findings }}

Planned work:
- {{ recommended_fixes }}

Investment: {{ total_price }}
Expected annual recovery: {{ annual_recovery }}
Payback: {{ payback_display }}
Timeline: {{ timeline }}

Two or three sentences: the problem, the fix, the payoff."""

VALUE_PROPOSITION_TEMPLATE = """Write a one-sentence value proposition for {{ client_name }}.

The {{ workflow_name }} workflow loses {{ bleed_amount }} per month today.
The proposed {{ total_price }} project recovers {{ annual_recovery }} per year (payback {{ payback_display }}).

One sentence, under 200 characters."""

PHASE_DESCRIPTION_TEMPLATE = """Describe phase {{ phase_number }} ({{ phase_name }}) of the engagement with {{ client_name }}.

Phase state: {{ state }}
{% if state == "complete" %}This phase is finished: summarize what the audit delivered.{% elif state == "current" %}This is the phase being proposed: summarize what will be built for the {{ workflow_name }} workflow over {{ timeline }}.{% else %}This phase comes later: describe how the work can be extended once stable.{% endif %}

One or two sentences."""

MILESTONE_DESCRIPTION_TEMPLATE = """Describe milestone {{ milestone_number }} ({{ milestone_name }}) of the {{ workflow_name }} automation project for {{ client_name }}.

Duration: {{ duration }}
Price: {{ price_allocation }} ({{ percentage }}% of the project)
Deliverables:
{{ deliverables }}

One or two sentences on what the client gets at the end of this milestone."""

SCOPE_IN_ITEMS_TEMPLATE = """List the in-scope work items for automating the {{ workflow_name }} workflow for {{ client_name }}.

Audit findings:
- {{ key_findings }}

Systems: {{ systems_list }}

Return 3 to 5 items, one per line, each starting with "- "."""

CTA_HEADLINE_TEMPLATE = """Write a call-to-action headline asking {{ client_name }} to approve the proposal.

Investment: {{ total_price }}
Monthly bleed being stopped: {{ bleed_amount }}
Proposal valid until: {{ valid_until }}
{% if platform == "upwork" %}The client approves by replying on Upwork.{% else %}The client approves with one click.{% endif %}

Under 60 characters. No quotes."""

CTA_SUBTEXT_TEMPLATE = """Write one supporting sentence under the call-to-action headline for {{ client_name }}.

Every month without the fix costs {{ bleed_amount }}.
Payback: {{ payback_display }}.
Proposal valid until: {{ valid_until }}.

Under 160 characters."""


PROMPT_REGISTRY: dict[str, PromptDefinition] = {
    definition.prompt_id: definition
    for definition in [
        PromptDefinition(
            prompt_id="executive_summary_proposal_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=EXECUTIVE_SUMMARY_TEMPLATE,
            output_constraints=OutputConstraints(max_length=600, forbidden_phrases=FORBIDDEN_PHRASES),
        ),
        PromptDefinition(
            prompt_id="value_proposition_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=VALUE_PROPOSITION_TEMPLATE,
            output_constraints=OutputConstraints(max_length=200, forbidden_phrases=FORBIDDEN_PHRASES),
        ),
        PromptDefinition(
            prompt_id="phase_description_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=PHASE_DESCRIPTION_TEMPLATE,
            output_constraints=OutputConstraints(max_length=250, forbidden_phrases=FORBIDDEN_PHRASES),
        ),
        PromptDefinition(
            prompt_id="milestone_description_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=MILESTONE_DESCRIPTION_TEMPLATE,
            output_constraints=OutputConstraints(max_length=220, forbidden_phrases=FORBIDDEN_PHRASES),
        ),
        PromptDefinition(
            prompt_id="scope_in_items_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=SCOPE_IN_ITEMS_TEMPLATE,
            output_type=OutputType.ARRAY_OF_STRINGS,
            output_constraints=OutputConstraints(item_max_length=90, min_items=3, max_items=5),
        ),
        PromptDefinition(
            prompt_id="cta_headline_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=CTA_HEADLINE_TEMPLATE,
            output_constraints=OutputConstraints(max_length=60, forbidden_phrases=FORBIDDEN_PHRASES),
        ),
        PromptDefinition(
            prompt_id="cta_subtext_v1",
            system_prompt=BASE_SYSTEM_PROMPT,
            user_prompt_template=CTA_SUBTEXT_TEMPLATE,
            output_constraints=OutputConstraints(max_length=160, forbidden_phrases=FORBIDDEN_PHRASES),
        ),
    ]
}

# Placeholder name -> prompt id
PLACEHOLDER_TO_PROMPT = {
    "executive_summary": "executive_summary_proposal_v1",
    "value_proposition": "value_proposition_v1",
    "phase_1_description": "phase_description_v1",
    "phase_2_description": "phase_description_v1",
    "phase_3_description": "phase_description_v1",
    "milestone_2_1_description": "milestone_description_v1",
    "milestone_2_2_description": "milestone_description_v1",
    "milestone_2_3_description": "milestone_description_v1",
    "milestone_2_4_description": "milestone_description_v1",
    "scope_in_items": "scope_in_items_v1",
    "cta_headline": "cta_headline_v1",
    "cta_subtext": "cta_subtext_v1",
}

_environment = Environment(autoescape=False, keep_trailing_newline=False)


def get_prompt(prompt_id: str) -> Optional[PromptDefinition]:
    return PROMPT_REGISTRY.get(prompt_id)


def render_prompt(definition: PromptDefinition, context: dict[str, Any]) -> str:
    """Render the user prompt; missing context keys render as empty strings."""
    return _environment.from_string(definition.user_prompt_template).render(**context)
