"""LLM Router for per-step model settings.

Strategy:
- Every step talks to the configured provider
- Each step has its own sampling temperature
- Provider failures become oracle errors; nothing is retried here
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx

from todoflow.config import Settings, get_settings
from todoflow.errors import OracleError, OracleTimeoutError
from todoflow.schemas import ControlState, LLMMessage, LLMResponse
from todoflow.llm.base import LLMAdapter
from todoflow.llm.openai_compat import OpenAICompatibleAdapter


logger = logging.getLogger(__name__)


class ModelRouter:
    """Routes LLM requests for each workflow step to the configured provider."""

    def __init__(self, settings: Settings | None = None, adapter: LLMAdapter | None = None):
        self._settings = settings or get_settings()
        self._adapter = adapter

    @property
    def step_temperature(self) -> dict[ControlState, float]:
        s = self._settings
        return {
            ControlState.PLAN: s.plan_temperature,
            ControlState.ROUTE: s.route_temperature,
            ControlState.EDIT: s.edit_temperature,
            ControlState.RECONCILE_TODOS: s.reconcile_temperature,
            ControlState.ANSWER: s.answer_temperature,
        }

    def _get_adapter(self) -> LLMAdapter:
        """Get or create the adapter for the configured provider."""
        if self._adapter is None:
            api_key, base_url, model = self._settings.provider_credentials()
            try:
                self._adapter = OpenAICompatibleAdapter(
                    provider=self._settings.provider,
                    api_key=api_key,
                    base_url=base_url,
                    default_model=model,
                    timeout=self._settings.llm_timeout_seconds,
                )
            except ValueError as e:
                raise OracleError(str(e)) from e
        return self._adapter

    async def chat_completion(
        self,
        messages: list[LLMMessage],
        step: ControlState,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse:
        """Send a completion for ``step``.

        Raises:
            OracleTimeoutError: the provider timed out
            OracleError: the provider failed
        """
        adapter = self._get_adapter()
        logger.info(f"Routing {step.value} to {adapter.provider_name}")

        response = await adapter.chat_completion(
            messages=messages,
            temperature=self.step_temperature[step],
            max_tokens=self._settings.llm_max_tokens,
            tools=tools,
            response_format=response_format,
        )

        if response.finish_reason == "error":
            detail = (response.raw_response or {}).get("error", "unknown error")
            if (response.raw_response or {}).get("timeout"):
                raise OracleTimeoutError(f"{adapter.provider_name} timed out during {step.value}: {detail}")
            raise OracleError(f"{adapter.provider_name} failed during {step.value}: {detail}")

        return response

    async def stream_completion(
        self,
        messages: list[LLMMessage],
        step: ControlState,
    ) -> AsyncIterator[str]:
        """Stream text fragments for ``step``, translating transport errors."""
        adapter = self._get_adapter()
        logger.info(f"Streaming {step.value} from {adapter.provider_name}")

        try:
            async for text in adapter.stream_completion(
                messages=messages,
                temperature=self.step_temperature[step],
                max_tokens=self._settings.llm_max_tokens,
            ):
                yield text
        except httpx.TimeoutException as e:
            raise OracleTimeoutError(f"{adapter.provider_name} timed out during {step.value}: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise OracleError(f"{adapter.provider_name} failed during {step.value}: {e}") from e

    async def close(self) -> None:
        """Close the adapter."""
        if self._adapter is not None:
            await self._adapter.close()
