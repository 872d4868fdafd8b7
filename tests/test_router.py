import asyncio
import json

import httpx
import pytest

from todoflow.errors import OracleError, OracleTimeoutError
from todoflow.llm.openai_compat import OpenAICompatibleAdapter
from todoflow.llm.router import ModelRouter
from todoflow.schemas import ControlState, LLMMessage

MESSAGES = [LLMMessage(role="user", content="hello")]


def _router(settings, handler):
    adapter = OpenAICompatibleAdapter(
        provider="deepseek",
        api_key="test-key",
        base_url="https://llm.test",
        default_model="test-model",
        transport=httpx.MockTransport(handler),
    )
    return ModelRouter(settings, adapter=adapter)


def test_chat_completion_sends_step_temperature(settings):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={
                "model": "test-model",
                "choices": [{"message": {"content": '{"route": "answer"}'}, "finish_reason": "stop"}],
                "usage": {"total_tokens": 7},
            },
        )

    router = _router(settings.model_copy(update={"route_temperature": 0.0}), handler)
    response = asyncio.run(
        router.chat_completion(MESSAGES, ControlState.ROUTE, response_format={"type": "json_object"})
    )

    assert response.content == '{"route": "answer"}'
    assert response.usage == {"total_tokens": 7}
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["temperature"] == 0.0
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert "tools" not in seen["body"]


def test_chat_completion_returns_tool_calls(settings):
    tool_calls = [{"id": "c1", "type": "function", "function": {"name": "editAge", "arguments": '{"age": 3}'}}]

    def handler(request):
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": None, "tool_calls": tool_calls}, "finish_reason": "tool_calls"}]},
        )

    response = asyncio.run(_router(settings, handler).chat_completion(MESSAGES, ControlState.EDIT, tools=[{}]))

    assert response.tool_calls == tool_calls
    assert response.model == "test-model"


def test_provider_error_becomes_oracle_error(settings):
    def handler(request):
        return httpx.Response(429, json={"error": "rate limited"})

    with pytest.raises(OracleError, match="failed during plan"):
        asyncio.run(_router(settings, handler).chat_completion(MESSAGES, ControlState.PLAN))


def test_timeout_becomes_oracle_timeout(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(OracleTimeoutError):
        asyncio.run(_router(settings, handler).chat_completion(MESSAGES, ControlState.PLAN))


def test_stream_completion_yields_deltas(settings):
    body = "\n".join(
        [
            'data: {"choices": [{"delta": {"role": "assistant"}}]}',
            "",
            'data: {"choices": [{"delta": {"content": "Hel"}}]}',
            "",
            'data: {"choices": [{"delta": {"content": "lo"}}]}',
            "",
            "data: [DONE]",
            "",
        ]
    )

    def handler(request):
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(200, content=body.encode(), headers={"Content-Type": "text/event-stream"})

    async def collect():
        return [text async for text in _router(settings, handler).stream_completion(MESSAGES, ControlState.ANSWER)]

    assert asyncio.run(collect()) == ["Hel", "lo"]


def test_stream_error_becomes_oracle_error(settings):
    def handler(request):
        return httpx.Response(500, content=b"boom")

    async def collect():
        return [text async for text in _router(settings, handler).stream_completion(MESSAGES, ControlState.ANSWER)]

    with pytest.raises(OracleError):
        asyncio.run(collect())


@pytest.mark.parametrize("body", [["not", "an", "object"], "text", {"choices": ["text"]}])
def test_non_object_response_is_oracle_error(settings, body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(OracleError, match="failed during plan"):
        asyncio.run(_router(settings, handler).chat_completion(MESSAGES, ControlState.PLAN))


def test_non_object_stream_chunk_is_oracle_error(settings):
    body = 'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\ndata: ["lo"]\n\ndata: [DONE]\n'

    def handler(request):
        return httpx.Response(200, content=body.encode(), headers={"Content-Type": "text/event-stream"})

    async def collect():
        return [text async for text in _router(settings, handler).stream_completion(MESSAGES, ControlState.ANSWER)]

    with pytest.raises(OracleError):
        asyncio.run(collect())


def test_missing_api_key_is_oracle_error(settings):
    router = ModelRouter(settings.model_copy(update={"provider": "kimi", "kimi_api_key": ""}))

    with pytest.raises(OracleError, match="API key not configured"):
        asyncio.run(router.chat_completion(MESSAGES, ControlState.PLAN))
