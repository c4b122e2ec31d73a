"""Text-generation backend client base.

Every backend adapter presents the same contract to the narrative executor:

    generate(model, system_prompt, user_prompt, max_output_tokens, temperature) -> str

Raw HTTP status codes and transport exceptions are translated here into the
closed error set (RateLimited / PayloadTooLarge / Transient / Fatal), so the
fallback policy never has to read error messages.

Error classification:
- 429            -> RateLimitedError (with the server-suggested delay when present)
- 413            -> PayloadTooLargeError
- 5xx, timeout,
  network error  -> TransientBackendError
- other 4xx,
  missing key,
  bad response   -> FatalBackendError
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from proposal_engine.config import Settings, get_settings
from proposal_engine.exceptions import (
    FatalBackendError,
    PayloadTooLargeError,
    RateLimitedError,
    TransientBackendError,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# "Please retry in 49.26s" / "retryDelay": "49s"
_RETRY_IN = re.compile(r"retry\s+in\s+([\d.]+)\s*s", re.IGNORECASE)
_RETRY_DELAY = re.compile(r'"retryDelay"\s*:\s*"([\d.]+)s"')


def parse_retry_after(response: httpx.Response) -> Optional[float]:
    """
    Server-suggested retry delay in seconds, or None when the response has none.

    Checks the Retry-After header first, then the hints embedded in the body.
    """
    header = response.headers.get("retry-after")
    if header:
        try:
            return float(header)
        except ValueError:
            pass

    body = response.text or ""
    match = _RETRY_IN.search(body) or _RETRY_DELAY.search(body)
    if match:
        return float(match.group(1))
    return None


def classify_response(provider: str, model: str, response: httpx.Response) -> None:
    """Raise the matching backend error for a non-success response."""
    status = response.status_code
    if status < 400:
        return

    detail = (response.text or "")[:500]
    message = f"{provider} API error {status} on {model}: {detail}"
    details = {"provider": provider, "model": model, "status_code": status}

    if status == 429:
        raise RateLimitedError(message, retry_after=parse_retry_after(response), details=details)
    if status == 413:
        raise PayloadTooLargeError(message, details=details)
    if status >= 500:
        raise TransientBackendError(message, details=details)
    raise FatalBackendError(message, details=details)


class BaseTextClient(ABC):
    """
    Common HTTP plumbing for text-generation backends.

    Attributes:
        provider: provider name used by the fallback policy ("gemini", "groq")
        settings: application settings (API keys, timeouts)
        _transport: optional httpx transport (MockTransport in tests)
    """

    provider: str = "base"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    @abstractmethod
    def api_key(self) -> str:
        """Credential for this provider."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> str:
        """Return the generated text for one request."""

    async def _post_json(
        self,
        model: str,
        url: str,
        payload: dict[str, Any],
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """POST ``payload`` and return the decoded JSON body, classifying every failure."""
        if not self.api_key:
            raise FatalBackendError(
                f"{self.provider} API key not set",
                details={"provider": self.provider},
            )

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise TransientBackendError(
                f"{self.provider} request to {model} timed out",
                details={"provider": self.provider, "model": model},
            ) from e
        except httpx.HTTPError as e:
            # Transport, protocol and decoding failures
            raise TransientBackendError(
                f"{self.provider} network error on {model}: {e}",
                details={"provider": self.provider, "model": model},
            ) from e

        classify_response(self.provider, model, response)

        try:
            return response.json()
        except ValueError as e:
            raise FatalBackendError(
                f"{self.provider} returned a non-JSON body for {model}",
                details={"provider": self.provider, "model": model},
            ) from e
