"""Gemini REST client (primary backend: higher quality, lower throughput)."""

import logging
from typing import Optional

from pydantic import BaseModel, ValidationError

from proposal_engine.exceptions import FatalBackendError

from .llm_client import BaseTextClient

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiPart(BaseModel):
    text: str = ""


class GeminiContent(BaseModel):
    parts: list[GeminiPart]


class GeminiCandidate(BaseModel):
    content: GeminiContent


class GeminiResponse(BaseModel):
    """Subset of the generateContent response the adapter reads."""
    candidates: list[GeminiCandidate]


def gemini_endpoint(model: str) -> str:
    """Gemini 3 models are served from v1beta, everything else from v1."""
    api_version = "v1beta" if model.startswith("gemini-3") else "v1"
    return f"{GEMINI_BASE_URL}/{api_version}/models/{model}:generateContent"


class GeminiClient(BaseTextClient):
    """
    Gemini generateContent adapter.

    The system instruction and user prompt are sent as one text part.
    """

    provider = "gemini"

    @property
    def api_key(self) -> str:
        return self.settings.gemini_api_key

    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> str:
        payload = {
            "contents": [{"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}],
            "generationConfig": {
                "maxOutputTokens": max_output_tokens,
                "temperature": temperature,
            },
        }
        url = f"{gemini_endpoint(model)}?key={self.api_key}"

        logger.debug(f"[GeminiClient] Request to {model}")
        data = await self._post_json(model, url, payload)

        try:
            text = GeminiResponse.model_validate(data).candidates[0].content.parts[0].text
        except (ValidationError, IndexError) as e:
            raise FatalBackendError(
                f"gemini returned no usable candidate for {model}",
                details={"provider": "gemini", "model": model},
            ) from e
        return text.strip()


# Singleton instance for dependency injection
_gemini_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    """Get or create Gemini client singleton."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
