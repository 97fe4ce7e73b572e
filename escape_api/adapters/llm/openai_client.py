"""OpenAI-compatible chat completions client (OpenAI, Groq)."""

import json
from typing import Any

from openai import AsyncOpenAI

from escape_api.adapters.llm.base import AbstractLLMClient
from escape_api.core.errors import LLMAppError

DEFAULT_SYSTEM_PROMPT = "Output JSON only. No extra text or markdown formatting."

_PASSTHROUGH_PARAMS = frozenset(
    {
        "max_tokens",
        "top_p",
        "frequency_penalty",
        "presence_penalty",
        "seed",
    }
)


class OpenAIClient(AbstractLLMClient):
    """Client for chat completions endpoints that returns parsed JSON.

    Uses the official OpenAI Python SDK; pointing ``base_url`` at Groq's
    OpenAI-compatible endpoint serves Groq-hosted models.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model

    async def generate_json(
        self,
        prompt: str,
        *,
        system: str | None = None,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate structured JSON using chat completions.

        Args:
            prompt: User prompt to send to the model.
            system: System instruction; a JSON-only instruction by default.
            schema: Optional JSON schema (enables json_object response mode).
            **kwargs: temperature plus pass-through options (max_tokens, top_p, ...).

        Returns:
            dict[str, Any]: Parsed JSON object from the response.

        Raises:
            LLMAppError: If the API call fails or the response is not a JSON object.
        """
        messages = [
            {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.pop("temperature", 0.2),
        }

        if schema is not None:
            request_params["response_format"] = {"type": "json_object"}

        for param in _PASSTHROUGH_PARAMS:
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
            content = response.choices[0].message.content
        except Exception as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message=f"LLM API error: {exc}",
                details={"model": self.model},
            ) from exc

        if not content:
            raise LLMAppError(
                code="llm_empty_response",
                message="LLM returned empty response",
                details={"model": self.model},
            )

        try:
            parsed = json.loads(content.strip())
        except json.JSONDecodeError as exc:
            raise LLMAppError(
                code="llm_invalid_json",
                message=f"LLM returned invalid JSON: {exc}",
                details={"model": self.model},
            ) from exc

        if not isinstance(parsed, dict):
            raise LLMAppError(
                code="llm_invalid_json",
                message="LLM returned JSON that is not an object",
                details={"model": self.model},
            )
        return parsed
