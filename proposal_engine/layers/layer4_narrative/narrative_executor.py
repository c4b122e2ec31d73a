"""
Narrative executor - fills pending slots of an assembled proposal.

Flow per run:
1. Locate slots and build the shared prompt context
2. Generate slots in fixed-size concurrent batches
3. Merge each batch into the document once every request has settled
4. Pause briefly between batches to stay under provider request-rate ceilings

Failures never abort the run: a failed slot keeps its sentinel and the
failure is reported as a warning.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional

from jinja2 import TemplateError

from proposal_engine.config import Settings, get_settings
from proposal_engine.exceptions import (
    FatalBackendError,
    NarrativeGenerationFailure,
    PayloadTooLargeError,
    ProposalGeneratorError,
    RateLimitedError,
    TransientBackendError,
)
from proposal_engine.models.narrative import (
    NarrativeFillResult,
    NarrativeOptions,
    PlaceholderSlot,
    PromptContext,
    SlotResult,
)
from proposal_engine.services import BaseTextClient, get_text_client

from .model_fallback import ModelFallbackPolicy
from .placeholder_resolver import build_context, enrich_context, find_slots, set_at_path
from .post_processing import post_process, validate_output
from .prompts import PLACEHOLDER_TO_PROMPT, PROMPT_REGISTRY, PromptDefinition, render_prompt

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class NarrativeExecutor:
    """
    Batch executor for narrative slots.

    Attributes:
        backends: provider name -> text client; missing providers are created lazily
        settings: tuning for batching, retries, timeouts and model chains
        _sleep: awaitable used for every deliberate wait (injected in tests)
    """

    def __init__(
        self,
        backends: Optional[Mapping[str, BaseTextClient]] = None,
        settings: Optional[Settings] = None,
        sleep: SleepFunc = asyncio.sleep,
        prompt_registry: Optional[Mapping[str, PromptDefinition]] = None,
        prompt_map: Optional[Mapping[str, str]] = None,
    ):
        self.backends = dict(backends or {})
        self.settings = settings or get_settings()
        self._sleep = sleep
        self.prompt_registry = PROMPT_REGISTRY if prompt_registry is None else prompt_registry
        self.prompt_map = PLACEHOLDER_TO_PROMPT if prompt_map is None else prompt_map

    def get_backend(self, provider: str) -> BaseTextClient:
        if provider not in self.backends:
            self.backends[provider] = get_text_client(provider, self.settings)
        return self.backends[provider]

    async def fill(
        self,
        document: Any,
        context: Optional[Mapping[str, Any]] = None,
        options: Optional[NarrativeOptions] = None,
    ) -> NarrativeFillResult:
        """
        Fill every pending slot of ``document`` in place.

        Args:
            document: ProposalDocument or plain JSON tree
            context: extra prompt parameters layered over the derived context
            options: provider / batching overrides for this run

        Returns:
            NarrativeFillResult with per-slot results, warnings and final model state
        """
        options = options or NarrativeOptions()
        provider = options.provider or self.settings.default_provider
        batch_size = options.batch_size or self.settings.narrative_batch_size
        batch_delay = (
            options.batch_delay_seconds
            if options.batch_delay_seconds is not None
            else self.settings.narrative_batch_delay_seconds
        )

        # 1. Slots and shared context
        slots = find_slots(document, self.prompt_map)
        extra = dict(options.extra_context)
        extra.update(context or {})
        shared_context = build_context(document, extra)

        # Policy state is scoped to this run
        policy = ModelFallbackPolicy.for_provider(provider, self.settings)
        result = NarrativeFillResult(document=document, model_state=policy.state)
        if not slots:
            logger.info("[NarrativeExecutor] No pending slots")
            return result

        backend = self.get_backend(provider)
        batches = [slots[i:i + batch_size] for i in range(0, len(slots), batch_size)]
        logger.info(
            f"[NarrativeExecutor] Filling {len(slots)} slots in {len(batches)} batches "
            f"via {provider} ({policy.current_model})"
        )

        # 2. Batches run one after another; requests inside a batch run concurrently
        for index, batch in enumerate(batches):
            slot_results = await asyncio.gather(
                *(self._fill_slot(slot, shared_context, policy, backend) for slot in batch)
            )

            # 3. Merge after the whole batch settled; slot paths are disjoint
            for slot_result in slot_results:
                if slot_result.success:
                    set_at_path(document, slot_result.slot.path, slot_result.content)
                result.results.append(slot_result)
                result.warnings.extend(slot_result.warnings)

            logger.info(
                f"[NarrativeExecutor] Batch {index + 1}/{len(batches)} done "
                f"({sum(1 for r in slot_results if r.success)}/{len(batch)} filled)"
            )

            # 4. Pause between batches
            if index < len(batches) - 1 and batch_delay > 0:
                await self._sleep(batch_delay)

        logger.info(
            f"[NarrativeExecutor] Filled {result.filled_count}/{len(slots)} slots, "
            f"{policy.state.fallbacks_used} fallbacks used"
        )
        return result

    async def _fill_slot(
        self,
        slot: PlaceholderSlot,
        context: PromptContext,
        policy: ModelFallbackPolicy,
        backend: BaseTextClient,
    ) -> SlotResult:
        """Generate one slot. Never raises; failures come back as unsuccessful results."""
        definition = self.prompt_registry.get(slot.prompt_id) if slot.prompt_id else None
        if definition is None:
            message = f"No prompt mapped for placeholder '{slot.name}' at {slot.dotted_path}"
            logger.warning(f"[NarrativeExecutor] {message}")
            return SlotResult(slot=slot, success=False, error=message, warnings=[message])

        try:
            user_prompt = render_prompt(definition, enrich_context(slot.name, context))
            raw, model = await self._request(backend, policy, definition.system_prompt, user_prompt)
            content = post_process(raw, definition)
        except (ProposalGeneratorError, TemplateError) as e:
            return self._failed_slot(slot, e, getattr(e, "error_code", "ERR_NARR_001"))
        except Exception as e:
            # Adapter or post-processing bug: only this slot is lost
            logger.error(
                f"[NarrativeExecutor] Unexpected {type(e).__name__} on slot '{slot.name}'",
                exc_info=True,
            )
            return self._failed_slot(slot, e, "ERR_NARR_001")

        warnings = [
            f"{slot.name}: {warning}"
            for warning in validate_output(content, definition.output_constraints)
        ]
        return SlotResult(slot=slot, success=True, content=content, model=model, warnings=warnings)

    @staticmethod
    def _failed_slot(slot: PlaceholderSlot, error: Exception, error_code: str) -> SlotResult:
        message = f"Slot '{slot.name}' at {slot.dotted_path} left unresolved: {error}"
        logger.warning(f"[NarrativeExecutor] {message}")
        return SlotResult(
            slot=slot,
            success=False,
            error=str(error),
            error_code=error_code,
            warnings=[message],
        )

    async def _request(
        self,
        backend: BaseTextClient,
        policy: ModelFallbackPolicy,
        system_prompt: str,
        user_prompt: str,
    ) -> tuple[str, str]:
        """
        Send one generation request, applying retry and fallback rules.

        - Transient failures: retried on the same model with exponential backoff
          (transient_backoff_seconds * 2 ** attempt), at most max_transient_retries times
        - Rate limit / payload too large: handed to the fallback policy
        - Fatal errors: propagate immediately

        Returns:
            (response text, model that produced it)
        """
        settings = self.settings
        transient_attempt = 0

        while True:
            model = policy.current_model
            if model is None:
                raise policy.exhausted_error()

            try:
                text = await asyncio.wait_for(
                    backend.generate(
                        model=model,
                        system_prompt=system_prompt,
                        user_prompt=user_prompt,
                        max_output_tokens=settings.max_output_tokens,
                        temperature=settings.temperature,
                    ),
                    timeout=settings.request_timeout_seconds,
                )
                return text, model

            except RateLimitedError as e:
                decision = policy.on_rate_limit(model, e.retry_after)
                if decision.exhausted:
                    raise policy.exhausted_error(e.message) from e
                if decision.wait_seconds > 0:
                    await self._sleep(decision.wait_seconds)
                continue

            except PayloadTooLargeError as e:
                decision = policy.on_payload_too_large(model)
                if decision.exhausted:
                    raise policy.exhausted_error(e.message) from e
                continue

            except FatalBackendError:
                raise

            except asyncio.TimeoutError:
                error = TransientBackendError(
                    f"{model} timed out after {settings.request_timeout_seconds:g}s"
                )

            except TransientBackendError as e:
                error = e

            if transient_attempt >= settings.max_transient_retries:
                raise NarrativeGenerationFailure(
                    f"{model} failed after {transient_attempt + 1} attempts: {error.message}",
                    details={"model": model, "attempts": transient_attempt + 1},
                ) from error

            wait_time = settings.transient_backoff_seconds * (2 ** transient_attempt)
            transient_attempt += 1
            logger.info(
                f"[NarrativeExecutor] {model}: {error.message}, "
                f"retry {transient_attempt}/{settings.max_transient_retries} in {wait_time:g}s"
            )
            await self._sleep(wait_time)
