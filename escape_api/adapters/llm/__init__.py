"""LLM adapter layer - abstracts over OpenAI-compatible providers."""

from escape_api.adapters.llm.base import AbstractLLMClient
from escape_api.adapters.llm.factory import create_llm_client
from escape_api.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
