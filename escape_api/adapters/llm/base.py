from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
    """Interface for LLM clients that produce structured JSON outputs."""

    model: str

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        *,
        system: str | None = None,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate a structured JSON response from the model.

        Args:
            prompt: User prompt to send to the model.
            system: Optional system instruction replacing the default one.
            schema: Optional JSON schema to enforce on the response.
            **kwargs: Provider-specific options (e.g., temperature, max_tokens).

        Returns:
            dict[str, Any]: Parsed JSON object returned by the model.

        Raises:
            LLMAppError: If the provider call fails or the response cannot be parsed.
        """
        ...
