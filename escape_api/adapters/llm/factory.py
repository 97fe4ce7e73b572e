"""Factory for creating LLM client instances."""

import logging

from escape_api.adapters.llm.base import AbstractLLMClient
from escape_api.adapters.llm.openai_client import OpenAIClient
from escape_api.core.config import LLMSettings, settings
from escape_api.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

PROVIDER_BASE_URLS: dict[str, str | None] = {
    "groq": "https://api.groq.com/openai/v1",
    "openai": None,
}


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient | None:
    """Instantiate the configured LLM client.

    Args:
        llm_settings: Settings to use; the global settings when omitted.

    Returns:
        A configured client, or None when no API key is set. Puzzle
        generation and AI judging then fall back to stored/built-in data.

    Raises:
        ValidationAppError: If the provider is unknown.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider not in PROVIDER_BASE_URLS:
        raise ValidationAppError(
            code="llm_unknown_provider",
            message=(
                f"Unknown LLM provider: '{provider}'. "
                f"Supported providers: {', '.join(sorted(PROVIDER_BASE_URLS))}"
            ),
        )

    if not cfg.api_key:
        logger.warning(
            "llm.not_configured",
            extra={"provider": provider, "hint": "Set LLM_API_KEY to enable AI puzzles"},
        )
        return None

    return OpenAIClient(
        api_key=cfg.api_key,
        model=cfg.model,
        base_url=cfg.base_url or PROVIDER_BASE_URLS[provider],
        timeout_seconds=cfg.timeout_seconds,
    )
