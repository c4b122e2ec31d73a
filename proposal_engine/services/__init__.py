"""Services for proposal generation: text-generation backends and the pipeline orchestrator."""

from .llm_client import BaseTextClient, classify_response, parse_retry_after
from .gemini_client import GeminiClient, get_gemini_client
from .groq_client import GroqClient, get_groq_client
from .backends import PROVIDERS, get_text_client
from .orchestrator import ProposalPipeline, get_pipeline

__all__ = [
    "BaseTextClient",
    "classify_response",
    "parse_retry_after",
    "GeminiClient",
    "get_gemini_client",
    "GroqClient",
    "get_groq_client",
    "PROVIDERS",
    "get_text_client",
    "ProposalPipeline",
    "get_pipeline",
]
