"""Abstract base class for LLM adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from todoflow.schemas import LLMMessage, LLMResponse


class LLMAdapter(ABC):
    """Abstract base class for LLM provider adapters.

    Providers report request failures as an ``LLMResponse`` with
    ``finish_reason == "error"`` rather than raising, so the router can
    turn them into oracle errors in one place.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'deepseek', 'kimi')."""
        ...

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: List of conversation messages
            model: Model name (uses default if None)
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens in response
            tools: Optional list of tool definitions for function calling
            response_format: Optional response format (e.g., {"type": "json_object"})

        Returns:
            LLMResponse with content and/or tool calls
        """
        ...

    @abstractmethod
    def stream_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        """Stream a chat completion, yielding text fragments as they arrive."""
        ...

    async def close(self) -> None:
        """Release network resources."""

    def _build_request(
        self,
        messages: list[LLMMessage],
        model: str,
        temperature: float,
        max_tokens: int,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, str] | None = None,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Build the API request payload."""
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.model_dump(exclude_none=True) for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if tools:
            payload["tools"] = tools

        if response_format:
            payload["response_format"] = response_format

        if stream:
            payload["stream"] = True

        return payload
