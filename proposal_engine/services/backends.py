"""Backend lookup by provider name."""

from typing import Optional

from proposal_engine.config import Settings

from .gemini_client import GeminiClient, get_gemini_client
from .groq_client import GroqClient, get_groq_client
from .llm_client import BaseTextClient

PROVIDERS = ("gemini", "groq")


def get_text_client(provider: str, settings: Optional[Settings] = None) -> BaseTextClient:
    """
    Return the client for ``provider``.

    Without explicit settings the shared singletons are used.
    """
    if provider == "gemini":
        return GeminiClient(settings) if settings is not None else get_gemini_client()
    if provider == "groq":
        return GroqClient(settings) if settings is not None else get_groq_client()
    raise ValueError(f"Unknown provider: {provider} (expected one of {', '.join(PROVIDERS)})")
