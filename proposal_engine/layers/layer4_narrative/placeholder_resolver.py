"""
Placeholder resolver - locates pending narrative slots and builds prompt context.

Paths are tuples of keys/indices from the document root, e.g.
``("phases", 1, "milestones", 0, "description")``; the string form is
``phases[1].milestones[0].description``. Traversal covers pydantic models,
mappings and sequences, so typed documents and plain JSON trees both work.
"""

import logging
import re
from collections.abc import Mapping, MutableMapping
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel

from proposal_engine.models.narrative import PlaceholderSlot, PromptContext, SlotPath, format_path
from proposal_engine.models.proposal import Pending, parse_sentinel
from proposal_engine.utils.formatting import format_date_display

from .prompts import PLACEHOLDER_TO_PROMPT

logger = logging.getLogger(__name__)

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")

PHASE_DEFAULTS = {
    1: ("Audit", "complete"),
    2: ("Stabilize", "current"),
    3: ("Scale", "upcoming"),
}
MILESTONE_DEFAULTS = {
    "2.1": ("Design", 20),
    "2.2": ("Build", 45),
    "2.3": ("Test", 15),
    "2.4": ("Deploy", 20),
}
_PHASE_SLOT = re.compile(r"phase_(\d+)")
_MILESTONE_SLOT = re.compile(r"milestone_(\d+)_(\d+)")


# ============================================================
# Paths
# ============================================================

def parse_path(path: Union[str, SlotPath]) -> SlotPath:
    """``a.b[0].c`` -> ("a", "b", 0, "c"). Tuples pass through unchanged."""
    if isinstance(path, tuple):
        return path
    segments: list[Union[str, int]] = []
    for key, index in _PATH_TOKEN.findall(path):
        segments.append(int(index) if index else key)
    return tuple(segments)


def _child(node: Any, segment: Union[str, int]) -> Any:
    if isinstance(node, BaseModel):
        return getattr(node, str(segment), None)
    if isinstance(node, Mapping):
        return node.get(segment)
    if isinstance(node, (list, tuple)) and isinstance(segment, int):
        return node[segment] if -len(node) <= segment < len(node) else None
    return None


def get_at_path(root: Any, path: Union[str, SlotPath]) -> Any:
    """Read the value at ``path``; None when any segment is missing."""
    current = root
    for segment in parse_path(path):
        if current is None:
            return None
        current = _child(current, segment)
    return current


def _assign(node: Any, segment: Union[str, int], value: Any) -> None:
    if isinstance(node, BaseModel):
        setattr(node, str(segment), value)
    elif isinstance(node, list):
        index = int(segment)
        if index >= len(node):
            node.extend([None] * (index + 1 - len(node)))
        node[index] = value
    elif isinstance(node, MutableMapping):
        node[segment] = value
    else:
        raise TypeError(f"Cannot assign {segment!r} on {type(node).__name__}")


def set_at_path(root: Any, path: Union[str, SlotPath], value: Any) -> None:
    """
    Write ``value`` at ``path``.

    Missing intermediate nodes are created: a list when the next segment is an
    index, a dict otherwise. ``get_at_path`` returns the written value afterwards.
    """
    segments = parse_path(path)
    if not segments:
        raise ValueError("Cannot set the document root")

    current = root
    for segment, next_segment in zip(segments, segments[1:]):
        child = _child(current, segment)
        if child is None:
            child = [] if isinstance(next_segment, int) else {}
            _assign(current, segment, child)
        current = child
    _assign(current, segments[-1], value)


# ============================================================
# Slots
# ============================================================

def _iter_nodes(node: Any, path: SlotPath) -> Iterator[tuple[SlotPath, Any]]:
    """Depth-first walk yielding (path, leaf) for every leaf value."""
    if isinstance(node, Pending):
        yield path, node
    elif isinstance(node, BaseModel):
        for name in type(node).model_fields:
            yield from _iter_nodes(getattr(node, name), path + (name,))
    elif isinstance(node, Mapping):
        for key, value in node.items():
            yield from _iter_nodes(value, path + (key,))
    elif isinstance(node, (list, tuple)):
        for index, value in enumerate(node):
            yield from _iter_nodes(value, path + (index,))
    else:
        yield path, node


def find_slots(
    document: Any,
    prompt_map: Optional[Mapping[str, str]] = None,
) -> list[PlaceholderSlot]:
    """
    Collect every pending slot in document order.

    Recognizes ``Pending`` values and plain sentinel strings. The prompt id is
    None for names without a mapping.
    """
    prompt_map = PLACEHOLDER_TO_PROMPT if prompt_map is None else prompt_map
    slots = []
    for path, leaf in _iter_nodes(document, ()):
        if isinstance(leaf, Pending):
            name, original = leaf.name, leaf.sentinel
        else:
            name = parse_sentinel(leaf)
            if name is None:
                continue
            original = leaf
        slots.append(PlaceholderSlot(
            path=path,
            name=name,
            prompt_id=prompt_map.get(name),
            original=original,
        ))
    logger.info(f"[PlaceholderResolver] Found {len(slots)} placeholder slots")
    return slots


# ============================================================
# Context
# ============================================================

def _as_tree(document: Any) -> Any:
    if isinstance(document, BaseModel):
        return document.model_dump(mode="json")
    return document


def _text_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if v and parse_sentinel(v) is None]
    return []


def _systems_from_deliverables(tree: Any) -> list[str]:
    prefix = "Connections between "
    for phase in get_at_path(tree, "phases") or []:
        for milestone in phase.get("milestones") or []:
            for deliverable in milestone.get("deliverables") or []:
                description = deliverable.get("description") or ""
                if description.startswith(prefix):
                    listed = description[len(prefix):].replace(" and others", "")
                    return [s.strip() for s in listed.split(",") if s.strip()]
    return []


def _current_phase_weeks(tree: Any) -> int:
    total = 0
    for phase in get_at_path(tree, "phases") or []:
        if phase.get("state") != "current":
            continue
        for milestone in phase.get("milestones") or []:
            duration = milestone.get("duration") or {}
            if duration.get("unit") == "weeks":
                total += duration.get("value") or 0
    return total


def build_context(document: Any, extra: Optional[Mapping[str, Any]] = None) -> PromptContext:
    """
    Flat prompt context pulled from the document.

    Includes client, audit, pricing and ROI figures plus per-phase
    (``phase_<n>_*``) and per-milestone (``milestone_<x>_<y>_*``) keys.
    ``extra`` entries override derived values.
    """
    tree = _as_tree(document)

    def text(path: str, default: str = "") -> str:
        value = get_at_path(tree, path)
        return default if value in (None, "") else str(value)

    in_scope = _text_list(get_at_path(tree, "scope.in_scope"))
    key_findings = _text_list(get_at_path(tree, "audit_reference.key_findings"))
    valid_until = get_at_path(tree, "document.valid_until")
    weeks = _current_phase_weeks(tree)

    context: PromptContext = {
        "client_name": text("prepared_for.account_name", "Client"),
        "industry": text("prepared_for.industry", "professional_services"),
        "audit_date": text("audit_reference.audit_date", "Recent"),
        "workflow_name": text("audit_reference.workflow_name", "Business Process"),
        "bleed_amount": text("audit_reference.bleed_total.display", "$0"),
        "key_findings": "\n- ".join(key_findings),
        "recommended_fixes": "\n- ".join(in_scope),
        "technical_solutions": (
            "\n".join(f"{i + 1}. {item}" for i, item in enumerate(in_scope[:3]))
            or "Custom automation implementation"
        ),
        "total_price": text("pricing.total.display", "$0"),
        "annual_recovery": text("roi.annual_recovery.display", "$0"),
        "monthly_recovery": text("roi.monthly_recovery.display", "$0"),
        "payback_months": get_at_path(tree, "roi.payback_period_months") or 0,
        "payback_display": text("roi.payback_display", "Not applicable"),
        "valid_until": format_date_display(valid_until) if valid_until else "TBD",
        "platform": text("rendering.platform", "direct"),
        "systems_list": ", ".join(_systems_from_deliverables(tree)) or "primary systems",
        "timeline": f"{weeks} weeks" if weeks > 0 else "TBD",
    }

    for phase in get_at_path(tree, "phases") or []:
        number = phase.get("phase_number")
        context[f"phase_{number}_name"] = phase.get("phase_name", "")
        context[f"phase_{number}_state"] = phase.get("state", "")
        for milestone in phase.get("milestones") or []:
            key = str(milestone.get("milestone_number", "")).replace(".", "_")
            context[f"milestone_{key}_name"] = milestone.get("milestone_name", "")
            context[f"milestone_{key}_duration"] = (milestone.get("duration") or {}).get("display", "")
            context[f"milestone_{key}_price"] = (milestone.get("price_allocation") or {}).get("display", "")
            context[f"milestone_{key}_percentage"] = milestone.get("percentage")
            context[f"milestone_{key}_deliverables"] = "\n".join(
                f"- {d.get('name')}: {d.get('description') or ''}"
                for d in milestone.get("deliverables") or []
            )

    if extra:
        context.update(extra)
    return context


def enrich_context(slot_name: str, context: PromptContext) -> PromptContext:
    """Copy of ``context`` with phase/milestone keys for one slot."""
    enriched = dict(context)

    phase_match = _PHASE_SLOT.search(slot_name)
    if phase_match and not slot_name.startswith("milestone_"):
        number = int(phase_match.group(1))
        default_name, default_state = PHASE_DEFAULTS.get(number, ("Phase", "upcoming"))
        enriched["phase_number"] = number
        enriched["phase_name"] = context.get(f"phase_{number}_name") or default_name
        enriched["state"] = context.get(f"phase_{number}_state") or default_state

    milestone_match = _MILESTONE_SLOT.search(slot_name)
    if milestone_match:
        major, minor = milestone_match.groups()
        number = f"{major}.{minor}"
        key = f"milestone_{major}_{minor}"
        default_name, default_percentage = MILESTONE_DEFAULTS.get(number, ("Milestone", 25))
        enriched["milestone_number"] = number
        enriched["milestone_name"] = context.get(f"{key}_name") or default_name
        enriched["duration"] = context.get(f"{key}_duration") or ""
        enriched["price_allocation"] = context.get(f"{key}_price") or ""
        percentage = context.get(f"{key}_percentage")
        enriched["percentage"] = f"{percentage:g}" if isinstance(percentage, (int, float)) else default_percentage
        enriched["deliverables"] = context.get(f"{key}_deliverables") or ""

    return enriched


class PlaceholderResolver:
    """Slot lookup and context building bound to one prompt mapping."""

    def __init__(self, prompt_map: Optional[Mapping[str, str]] = None):
        self.prompt_map = dict(PLACEHOLDER_TO_PROMPT if prompt_map is None else prompt_map)

    def find_slots(self, document: Any) -> list[PlaceholderSlot]:
        return find_slots(document, self.prompt_map)

    def build_context(self, document: Any, extra: Optional[Mapping[str, Any]] = None) -> PromptContext:
        return build_context(document, extra)

    @staticmethod
    def get_at_path(document: Any, path: Union[str, SlotPath]) -> Any:
        return get_at_path(document, path)

    @staticmethod
    def set_at_path(document: Any, path: Union[str, SlotPath], value: Any) -> None:
        set_at_path(document, path, value)

    @staticmethod
    def format_path(path: SlotPath) -> str:
        return format_path(path)
