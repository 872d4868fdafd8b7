"""OpenAI-compatible LLM adapter.

DeepSeek (https://api.deepseek.com), Kimi/Moonshot (https://api.moonshot.cn/v1)
and OpenAI all expose the same ``/chat/completions`` endpoint, so one adapter
serves every configured provider.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncIterator

import httpx

from todoflow.schemas import LLMMessage, LLMResponse
from todoflow.llm.base import LLMAdapter


logger = logging.getLogger(__name__)


class OpenAICompatibleAdapter(LLMAdapter):
    """Chat completions over an OpenAI-compatible HTTP API."""

    def __init__(
        self,
        provider: str,
        api_key: str,
        base_url: str,
        default_model: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError(f"{provider} API key not configured")

        self._provider = provider
        self.base_url = base_url
        self.default_model = default_model
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse:
        """Send chat completion request to the provider."""
        model = model or self.default_model

        payload = self._build_request(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            tools=tools,
            response_format=response_format,
        )

        start_time = time.perf_counter()

        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
            choice = (data.get("choices") or [{}])[0]
            if not isinstance(choice, dict):
                raise ValueError(f"Expected a choice object, got {type(choice).__name__}")
        except httpx.TimeoutException as e:
            return LLMResponse(
                content=None,
                model=model,
                finish_reason="error",
                raw_response={"error": str(e), "timeout": True},
            )
        except httpx.HTTPStatusError as e:
            return LLMResponse(
                content=None,
                model=model,
                finish_reason="error",
                raw_response={"error": str(e), "status_code": e.response.status_code},
            )
        except (httpx.HTTPError, ValueError) as e:
            return LLMResponse(
                content=None,
                model=model,
                finish_reason="error",
                raw_response={"error": str(e)},
            )

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(f"{self._provider}/{model} responded in {latency_ms}ms")

        message = choice.get("message") or {}

        return LLMResponse(
            content=message.get("content"),
            tool_calls=message.get("tool_calls"),
            model=data.get("model", model),
            usage=data.get("usage", {}),
            finish_reason=choice.get("finish_reason"),
            raw_response=data,
        )

    async def stream_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        """Stream text fragments from a server-sent-events completion.

        Transport errors are raised as ``httpx`` exceptions.
        """
        payload = self._build_request(
            messages=messages,
            model=model or self.default_model,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )

        async with self._client.stream("POST", "/chat/completions", json=payload) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                chunk = json.loads(data)
                if not isinstance(chunk, dict):
                    raise ValueError(f"Expected a JSON object in stream chunk, got {type(chunk).__name__}")
                choices = chunk.get("choices") or []
                if not choices:
                    continue
                text = (choices[0].get("delta") or {}).get("content")
                if text:
                    yield text

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
