"""Groq client (secondary backend: fast, OpenAI-compatible chat completions)."""

import logging
from typing import Optional

from pydantic import BaseModel, ValidationError

from proposal_engine.exceptions import FatalBackendError

from .llm_client import BaseTextClient

logger = logging.getLogger(__name__)

GROQ_CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"


class GroqMessage(BaseModel):
    content: Optional[str] = None


class GroqChoice(BaseModel):
    message: GroqMessage


class GroqUsage(BaseModel):
    total_tokens: int = 0


class GroqResponse(BaseModel):
    """Subset of the chat completions response the adapter reads."""
    choices: list[GroqChoice]
    usage: Optional[GroqUsage] = None


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```/```json fence."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class GroqClient(BaseTextClient):
    """Groq chat completions adapter."""

    provider = "groq"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tokens_used = 0
        self.request_count = 0

    @property
    def api_key(self) -> str:
        return self.settings.groq_api_key

    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> str:
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_output_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.debug(f"[GroqClient] Request to {model}")
        data = await self._post_json(model, GROQ_CHAT_URL, payload, headers=headers)

        try:
            parsed = GroqResponse.model_validate(data)
            text = parsed.choices[0].message.content or ""
        except (ValidationError, IndexError) as e:
            raise FatalBackendError(
                f"groq returned no usable choice for {model}",
                details={"provider": "groq", "model": model},
            ) from e

        self.request_count += 1
        if parsed.usage is not None:
            self.tokens_used += parsed.usage.total_tokens
        return strip_code_fence(text)


# Singleton instance for dependency injection
_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    """Get or create Groq client singleton."""
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client
