"""Narrative execution models (slots, model state, results)."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

PathSegment = Union[str, int]
SlotPath = tuple[PathSegment, ...]
PromptContext = dict[str, Any]


def format_path(path: SlotPath) -> str:
    """Render a typed path as ``key.key[index].key``."""
    rendered = ""
    for segment in path:
        if isinstance(segment, int):
            rendered += f"[{segment}]"
        elif rendered:
            rendered += f".{segment}"
        else:
            rendered = segment
    return rendered


class PlaceholderSlot(BaseModel):
    """Pending narrative slot found in the document tree."""
    path: SlotPath = Field(..., description="Keys/indices from the document root")
    name: str = Field(..., description="Placeholder name")
    prompt_id: Optional[str] = Field(None, description="Resolved prompt id; None when unmapped")
    original: str = Field(..., description="Sentinel string kept on failure")

    @property
    def dotted_path(self) -> str:
        return format_path(self.path)


class ModelState(BaseModel):
    """
    Backend model selection state for one fill run.

    Not persisted across runs.
    """
    provider: str
    current_model: Optional[str]
    fallback_list: list[str]
    fallbacks_used: int = 0
    attempted: list[str] = Field(default_factory=list)
    exhausted: bool = False


class SlotResult(BaseModel):
    """Outcome of one slot generation."""
    slot: PlaceholderSlot
    success: bool
    content: Any = None
    model: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


class NarrativeOptions(BaseModel):
    """Per-run narrative execution options."""
    provider: Optional[str] = Field(None, description="gemini | groq; defaults to settings")
    batch_size: Optional[int] = Field(None, ge=1)
    batch_delay_seconds: Optional[float] = Field(None, ge=0)
    extra_context: dict[str, Any] = Field(default_factory=dict)


class NarrativeFillResult(BaseModel):
    """Filled document plus per-slot results and aggregated warnings."""
    document: Any
    results: list[SlotResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    model_state: Optional[ModelState] = None

    @property
    def filled_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def unresolved(self) -> list[PlaceholderSlot]:
        return [r.slot for r in self.results if not r.success]
