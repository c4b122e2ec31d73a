"""
Output post-processing for generated narrative text.

Hard limits (item count, lengths) are enforced here by truncation.
Constraint checks afterwards are advisory and only produce warnings.
"""

import logging
import re
from typing import Union

from .prompts import OutputConstraints, OutputType, PromptDefinition

logger = logging.getLogger(__name__)

PREAMBLE_PATTERNS = [
    re.compile(
        r"^(?:Of course[.!]?\s*)?Here (?:are|is) (?:a |several |some |the )?(?:compelling[,]?\s*)?"
        r"(?:professional[,]?\s*)?(?:CTA|call-to-action|headline|summary|description|text|content|"
        r"option|item|suggestion|recommendation)s?[^:]*[:.]?\s*",
        re.IGNORECASE,
    ),
    re.compile(r"^(?:Sure[!,]?\s*)?(?:Here(?:'s| is| are)[^:]*[:.]?\s*)", re.IGNORECASE),
    re.compile(r"^(?:Certainly[!,.]?\s*)?(?:Here(?:'s| is| are)[^:]*[:.]?\s*)", re.IGNORECASE),
    re.compile(r"^(?:Absolutely[!,.]?\s*)?(?:Here(?:'s| is| are)[^:]*[:.]?\s*)", re.IGNORECASE),
    re.compile(r"^(?:I'd be happy to help[.!]?\s*)", re.IGNORECASE),
    re.compile(r"^(?:I can help (?:you )?with that[.!]?\s*)", re.IGNORECASE),
    re.compile(r"^(?:Great[!,]?\s*)?(?:Let me |I'll )[^.]*[.]\s*", re.IGNORECASE),
    re.compile(r"^(?:Based on [^,]*,\s*)?(?:here(?:'s| is| are)[^:]*[:.]?\s*)", re.IGNORECASE),
]

POSTAMBLE_PATTERNS = [
    re.compile(
        r"\s*(?:Let me know if you[^.]*[.]|Feel free to[^.]*[.]|I hope this helps[.!]?|Would you like[^?]*[?])$",
        re.IGNORECASE,
    ),
    re.compile(r"\s*(?:Is there anything else[^?]*[?]|Do you need[^?]*[?])$", re.IGNORECASE),
]

BULLET_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
BOLD_MARKER = re.compile(r"\*\*([^*]+)\*\*")
BLANK_LINES = re.compile(r"\n\s*\n+")

# HTML fragments are only cut once they exceed max_length by this factor
HTML_LENGTH_TOLERANCE = 1.5

ELLIPSIS = "..."

HTML_TAG = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)\b[^>]*?(/?)>")
PARTIAL_TAG = re.compile(r"<[^>]*$")
VOID_ELEMENTS = {"br", "hr", "img", "input", "meta", "link", "wbr"}


def strip_preamble(content: str) -> str:
    """Remove conversational openers and closing remarks."""
    result = content
    for pattern in PREAMBLE_PATTERNS:
        result = pattern.sub("", result)
    for pattern in POSTAMBLE_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def truncate_to_sentence(text: str, max_length: int) -> str:
    """
    Cut ``text`` to at most ``max_length`` characters, ellipsis included.

    Prefers the last sentence end in the second half; otherwise the last word
    boundary in the final fifth plus "..."; otherwise a hard cut plus "...".
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    boundary = max(truncated.rfind("."), truncated.rfind("?"), truncated.rfind("!"))
    if boundary > max_length * 0.5:
        return text[:boundary + 1]

    room = max_length - len(ELLIPSIS)
    if room <= 0:
        return truncated
    clipped = text[:room]
    last_space = clipped.rfind(" ")
    if last_space > room * 0.8:
        return text[:last_space].rstrip() + ELLIPSIS
    return clipped.rstrip() + ELLIPSIS


def close_open_tags(fragment: str) -> str:
    """Drop a dangling partial tag and close every element left open."""
    fragment = PARTIAL_TAG.sub("", fragment)
    open_tags: list[str] = []
    for match in HTML_TAG.finditer(fragment):
        closing, name, self_closing = match.group(1), match.group(2).lower(), match.group(3)
        if self_closing or name in VOID_ELEMENTS:
            continue
        if not closing:
            open_tags.append(name)
        elif name in open_tags:
            del open_tags[len(open_tags) - 1 - open_tags[::-1].index(name)]
    return fragment + "".join(f"</{name}>" for name in reversed(open_tags))


def truncate_html(fragment: str, max_length: int) -> str:
    """Truncate an HTML fragment to ``max_length`` with its tags balanced."""
    result = close_open_tags(truncate_to_sentence(fragment, max_length))
    overflow = len(result) - max_length
    if overflow > 0:
        result = close_open_tags(truncate_to_sentence(fragment, max(max_length - overflow, 1)))
    return result


def post_process(content: str, definition: PromptDefinition) -> Union[str, list[str]]:
    """Normalize raw model output according to the declared output type."""
    constraints = definition.output_constraints
    content = strip_preamble(content or "")

    if definition.output_type == OutputType.ARRAY_OF_STRINGS:
        items = [BULLET_MARKER.sub("", line).strip() for line in content.split("\n")]
        items = [BOLD_MARKER.sub(r"\1", item) for item in items if item]
        if constraints.max_items and len(items) > constraints.max_items:
            items = items[:constraints.max_items]
        if constraints.item_max_length:
            items = [truncate_to_sentence(item, constraints.item_max_length) for item in items]
        return items

    if definition.output_type == OutputType.HTML_FRAGMENT:
        if not content.startswith("<"):
            content = f"<p>{content}</p>"
        if constraints.max_length and len(content) > constraints.max_length * HTML_LENGTH_TOLERANCE:
            content = truncate_html(content, constraints.max_length)
        return content

    content = BOLD_MARKER.sub(r"\1", content.strip())
    content = BLANK_LINES.sub(" ", content)
    if constraints.max_length and len(content) > constraints.max_length:
        content = truncate_to_sentence(content, constraints.max_length)
    return content


def validate_output(content: Union[str, list[str]], constraints: OutputConstraints) -> list[str]:
    """
    Advisory constraint check.

    Returns warning strings; violations are logged, never raised.
    """
    warnings = []
    text = " ".join(content) if isinstance(content, list) else content

    if constraints.max_length and len(text) > constraints.max_length:
        warnings.append(f"Output exceeds max length: {len(text)} > {constraints.max_length}")

    lowered = text.lower()
    for phrase in constraints.forbidden_phrases:
        if phrase.lower() in lowered:
            warnings.append(f'Output contains forbidden phrase: "{phrase}"')

    if isinstance(content, list):
        if constraints.min_items and len(content) < constraints.min_items:
            warnings.append(f"Output has fewer items than min: {len(content)} < {constraints.min_items}")
        if constraints.max_items and len(content) > constraints.max_items:
            warnings.append(f"Output has more items than max: {len(content)} > {constraints.max_items}")

    for message in warnings:
        logger.warning(f"[PostProcessing] {message}")
    return warnings
