"""
Proposal generator exception hierarchy.
Each layer/service carries a structured error code, message and details.
"""

from typing import Optional, Any


class ProposalGeneratorError(Exception):
    """Base exception for the proposal generation system."""

    def __init__(
        self,
        message: str,
        error_code: str = "ERR_UNKNOWN",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ConfigurationError(ProposalGeneratorError):
    """Malformed or missing RateConfig table. Fatal, raised before pricing."""

    def __init__(self, message: str, field_path: str = "", details: Optional[Any] = None):
        self.field_path = field_path
        super().__init__(
            message,
            error_code="ERR_CONFIG_001",
            details=details if details is not None else {"field_path": field_path},
        )


class PricingInvariantViolation(ProposalGeneratorError):
    """Internal pricing assertion failed (milestone sum, final price reconciliation)."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_PRICE_001", details=details)


class NarrativeGenerationFailure(ProposalGeneratorError):
    """Narrative slot could not be generated. Recovered per slot."""

    def __init__(
        self,
        message: str,
        error_code: str = "ERR_NARR_001",
        details: Optional[Any] = None,
    ):
        super().__init__(message, error_code=error_code, details=details)


class BackendExhaustedError(NarrativeGenerationFailure):
    """Every model in the fallback chain failed for a request."""

    def __init__(self, provider: str, attempted_models: list[str], cause: str = ""):
        self.provider = provider
        self.attempted_models = list(attempted_models)
        message = (
            f"{provider} fallback chain exhausted after trying: "
            f"{', '.join(self.attempted_models) or 'no models'}"
        )
        if cause:
            message = f"{message} (last error: {cause})"
        super().__init__(
            message,
            error_code="ERR_NARR_002",
            details={"provider": provider, "attempted_models": self.attempted_models},
        )


class BackendError(ProposalGeneratorError):
    """Text-generation backend error, already classified by the adapter."""

    def __init__(
        self,
        message: str,
        error_code: str = "ERR_LLM_001",
        details: Optional[Any] = None,
    ):
        super().__init__(message, error_code=error_code, details=details)


class RateLimitedError(BackendError):
    """Quota or rate limit hit. ``retry_after`` is the server hint in seconds."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        details: Optional[Any] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, error_code="ERR_LLM_429", details=details)


class PayloadTooLargeError(BackendError):
    """Request payload exceeds what the current model accepts."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_LLM_413", details=details)


class TransientBackendError(BackendError):
    """Network failure, timeout or server-side error worth retrying."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_LLM_503", details=details)


class FatalBackendError(BackendError):
    """Non-retryable backend error (auth, bad request, missing key)."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_LLM_500", details=details)


class ValidationFailure(ProposalGeneratorError):
    """Assembled document failed its structural self-check."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_VALID_001", details=details)


class InputValidationError(ProposalGeneratorError):
    """Malformed request input (400 response)."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_INPUT_001", details=details)
