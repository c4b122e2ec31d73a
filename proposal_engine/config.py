from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Values are read from environment variables (and the .env file).
    """

    # Text-generation backends: API keys and model priority (best first)
    gemini_api_key: str = ""
    groq_api_key: str = ""
    gemini_model_order: list[str] = [
        "gemini-3-pro-preview",
        "gemini-2.0-flash",
        "gemini-2.0-flash-lite",
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-2.5-pro",
    ]
    groq_model_order: list[str] = [
        "llama-3.3-70b-versatile",
        "llama-3.1-8b-instant",
    ]
    default_provider: str = "gemini"  # gemini | groq

    # Narrative execution
    narrative_batch_size: int = 5  # concurrent requests per batch
    narrative_batch_delay_seconds: float = 0.5  # pause between batches
    request_timeout_seconds: float = 60.0
    max_transient_retries: int = 2
    transient_backoff_seconds: float = 2.0  # doubled on every retry
    default_retry_after_seconds: float = 60.0  # used when the 429 carries no hint
    max_rate_limit_wait_seconds: float = 90.0
    max_output_tokens: int = 2000
    temperature: float = 0.3

    # Producer identity and branding
    producer_name: str = "Wranngle Systems LLC"
    producer_email: str = ""
    brand_name: str = "Wranngle Systems LLC"
    logo_uri: str = ""
    primary_domain: str = "wranngle.com"

    # Proposal defaults
    default_validity_days: int = 14
    default_platform: str = "direct"  # direct | upwork
    warranty_days: int = 30
    cta_book_call_link: str = ""
    approve_link_template: str = ""  # e.g. https://example.com/approve/{proposal_number}

    # Optional directory with base_rates.json / complexity_multipliers.json / discount_rules.json
    rate_config_dir: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = ["*"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """
    Return the cached settings instance.
    The environment is read once and reused afterwards.
    """
    return Settings()
