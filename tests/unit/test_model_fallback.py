"""ModelFallbackPolicy tests: chain advance, waits, stale failures and exhaustion."""

import pytest

from proposal_engine.exceptions import BackendExhaustedError
from proposal_engine.layers.layer4_narrative import FallbackMode, ModelFallbackPolicy


@pytest.fixture
def immediate():
    return ModelFallbackPolicy("groq", ["fast-a", "fast-b"], FallbackMode.IMMEDIATE)


@pytest.fixture
def waiting():
    return ModelFallbackPolicy(
        "gemini",
        ["model-a", "model-b", "model-c"],
        FallbackMode.WAIT_THEN_SWITCH,
        default_retry_after=60,
        max_wait_seconds=90,
    )


class TestForProvider:
    def test_gemini_waits(self, settings):
        policy = ModelFallbackPolicy.for_provider("gemini", settings)
        assert policy.mode == FallbackMode.WAIT_THEN_SWITCH
        assert policy.current_model == "gemini-3-pro-preview"
        assert policy.state.fallback_list == settings.gemini_model_order

    def test_groq_switches_immediately(self, settings):
        policy = ModelFallbackPolicy.for_provider("groq", settings)
        assert policy.mode == FallbackMode.IMMEDIATE
        assert policy.current_model == "llama-3.3-70b-versatile"

    def test_unknown_provider(self, settings):
        with pytest.raises(ValueError):
            ModelFallbackPolicy.for_provider("openai", settings)

    def test_empty_chain(self):
        with pytest.raises(ValueError):
            ModelFallbackPolicy("groq", [])


class TestImmediate:
    def test_advances_without_waiting(self, immediate):
        decision = immediate.on_rate_limit("fast-a", retry_after=30)
        assert decision.model == "fast-b"
        assert decision.wait_seconds == 0
        assert decision.exhausted is False
        assert immediate.state.fallbacks_used == 1
        assert immediate.state.attempted == ["fast-a", "fast-b"]

    def test_exhausts_after_last_model(self, immediate):
        immediate.on_rate_limit("fast-a")
        decision = immediate.on_rate_limit("fast-b")
        assert decision.exhausted is True
        assert decision.model is None
        assert immediate.is_exhausted
        assert immediate.current_model is None

    def test_exhausted_stays_exhausted(self, immediate):
        immediate.on_rate_limit("fast-a")
        immediate.on_rate_limit("fast-b")
        assert immediate.on_rate_limit("fast-b").exhausted is True
        assert immediate.state.fallbacks_used == 1


class TestWaitThenSwitch:
    def test_uses_server_hint(self, waiting):
        decision = waiting.on_rate_limit("model-a", retry_after=12.5)
        assert decision.model == "model-b"
        assert decision.wait_seconds == 12.5

    def test_default_when_no_hint(self, waiting):
        assert waiting.on_rate_limit("model-a").wait_seconds == 60

    def test_wait_is_bounded(self, waiting):
        assert waiting.on_rate_limit("model-a", retry_after=600).wait_seconds == 90

    def test_payload_too_large_switches_without_wait(self, waiting):
        decision = waiting.on_payload_too_large("model-a")
        assert decision.model == "model-b"
        assert decision.wait_seconds == 0


class TestTermination:
    def test_stale_failure_does_not_advance(self, waiting):
        waiting.on_rate_limit("model-a")
        decision = waiting.on_rate_limit("model-a")
        assert decision.model == "model-b"
        assert decision.wait_seconds == 0
        assert waiting.state.fallbacks_used == 1

    def test_chain_terminates_within_its_length(self, waiting):
        decisions = []
        while not waiting.is_exhausted:
            decisions.append(waiting.on_rate_limit(waiting.current_model))
        assert len(decisions) == 3
        assert waiting.state.attempted == ["model-a", "model-b", "model-c"]

    def test_exhausted_error(self, immediate):
        immediate.on_rate_limit("fast-a")
        immediate.on_rate_limit("fast-b")
        error = immediate.exhausted_error("429 quota")
        assert isinstance(error, BackendExhaustedError)
        assert error.attempted_models == ["fast-a", "fast-b"]
        assert error.error_code == "ERR_NARR_002"
        assert "429 quota" in error.message
