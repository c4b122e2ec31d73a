"""
Model fallback policy.

State machine per fill run:
    Active(model) --rate limit / payload too large--> Active(next model) | Exhausted

Two provider behaviors:
- IMMEDIATE: switch to the next model right away (short chains, high volume)
- WAIT_THEN_SWITCH: wait for the server-suggested retry delay (bounded,
  default when absent) and then continue on the next model
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from proposal_engine.config import Settings, get_settings
from proposal_engine.exceptions import BackendExhaustedError
from proposal_engine.models.narrative import ModelState

logger = logging.getLogger(__name__)


class FallbackMode(str, Enum):
    IMMEDIATE = "immediate"
    WAIT_THEN_SWITCH = "wait_then_switch"


class FallbackDecision(BaseModel):
    """What the caller should do after a rate-limit style failure."""
    model: Optional[str]
    wait_seconds: float = 0.0
    exhausted: bool = False


class ModelFallbackPolicy:
    """
    Stateful model selection for one provider.

    Failures reported for a model that is no longer current (a concurrent
    request already moved the policy on) do not advance it again.
    """

    def __init__(
        self,
        provider: str,
        models: list[str],
        mode: FallbackMode = FallbackMode.IMMEDIATE,
        default_retry_after: float = 60.0,
        max_wait_seconds: float = 90.0,
    ):
        if not models:
            raise ValueError(f"{provider}: model fallback list is empty")
        self.mode = mode
        self.default_retry_after = default_retry_after
        self.max_wait_seconds = max_wait_seconds
        self.state = ModelState(
            provider=provider,
            current_model=models[0],
            fallback_list=list(models),
            attempted=[models[0]],
        )

    @classmethod
    def for_provider(cls, provider: str, settings: Optional[Settings] = None) -> "ModelFallbackPolicy":
        """Gemini waits before switching; Groq switches immediately."""
        settings = settings or get_settings()
        if provider == "groq":
            return cls(
                "groq",
                settings.groq_model_order,
                FallbackMode.IMMEDIATE,
                settings.default_retry_after_seconds,
                settings.max_rate_limit_wait_seconds,
            )
        if provider == "gemini":
            return cls(
                "gemini",
                settings.gemini_model_order,
                FallbackMode.WAIT_THEN_SWITCH,
                settings.default_retry_after_seconds,
                settings.max_rate_limit_wait_seconds,
            )
        raise ValueError(f"Unknown provider: {provider}")

    @property
    def provider(self) -> str:
        return self.state.provider

    @property
    def current_model(self) -> Optional[str]:
        return self.state.current_model

    @property
    def is_exhausted(self) -> bool:
        return self.state.exhausted

    def on_rate_limit(self, failed_model: str, retry_after: Optional[float] = None) -> FallbackDecision:
        """Handle a rate-limit failure on ``failed_model``."""
        if self.mode == FallbackMode.WAIT_THEN_SWITCH:
            wait = min(
                retry_after if retry_after is not None else self.default_retry_after,
                self.max_wait_seconds,
            )
        else:
            wait = 0.0
        return self._advance(failed_model, wait, "rate limit")

    def on_payload_too_large(self, failed_model: str) -> FallbackDecision:
        """Payload too large: waiting does not help, switch right away."""
        return self._advance(failed_model, 0.0, "payload too large")

    def exhausted_error(self, cause: str = "") -> BackendExhaustedError:
        return BackendExhaustedError(self.provider, self.state.attempted, cause)

    def _advance(self, failed_model: str, wait: float, reason: str) -> FallbackDecision:
        state = self.state
        if state.exhausted:
            return FallbackDecision(model=None, exhausted=True)
        if failed_model != state.current_model:
            return FallbackDecision(model=state.current_model)

        index = state.fallback_list.index(failed_model)
        if index + 1 >= len(state.fallback_list):
            state.exhausted = True
            state.current_model = None
            logger.warning(
                f"[ModelFallback] {state.provider}: {reason} on {failed_model}, "
                f"chain exhausted ({', '.join(state.attempted)})"
            )
            return FallbackDecision(model=None, exhausted=True)

        next_model = state.fallback_list[index + 1]
        state.current_model = next_model
        state.fallbacks_used += 1
        state.attempted.append(next_model)
        logger.warning(
            f"[ModelFallback] {state.provider}: {reason} on {failed_model}, "
            f"switching to {next_model}" + (f" after {wait:g}s" if wait else "")
        )
        return FallbackDecision(model=next_model, wait_seconds=wait)
