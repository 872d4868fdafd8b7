"""Oracle backed by a chat-completions model."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from todoflow.agent import mutators
from todoflow.agent.oracle import TextCallback
from todoflow.agent.prompts import (
    RECONCILE_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    format_edit_prompt,
    format_plan_prompt,
    format_reconcile_prompt,
    format_route_prompt,
)
from todoflow.config import Settings, get_settings
from todoflow.errors import OracleError
from todoflow.schemas import (
    ActionRecord,
    ControlState,
    EditOutcome,
    LLMMessage,
    LLMResponse,
    PlanResponse,
    ReconcileResponse,
    RouteResponse,
    TodoItem,
    TodoUpdate,
    Turn,
    UserProfile,
)


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_OBJECT = {"type": "json_object"}


class ChatRouter(Protocol):
    async def chat_completion(
        self,
        messages: list[LLMMessage],
        step: ControlState,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse: ...

    def stream_completion(self, messages: list[LLMMessage], step: ControlState) -> AsyncIterator[str]: ...


class LLMOracle:
    """Answers every oracle question with one or more model calls."""

    def __init__(self, router: ChatRouter, settings: Settings | None = None):
        self.router = router
        self.settings = settings or get_settings()

    async def _structured(
        self,
        messages: list[LLMMessage],
        step: ControlState,
        schema: type[ModelT],
    ) -> ModelT:
        response = await self.router.chat_completion(
            messages=messages,
            step=step,
            response_format=JSON_OBJECT,
        )
        if not response.content:
            raise OracleError(f"Empty response during {step.value}")
        try:
            return schema.model_validate_json(response.content)
        except ValidationError as e:
            raise OracleError(f"Invalid {schema.__name__} during {step.value}: {e}") from e

    async def classify(self, question: str) -> str:
        result = await self._structured(
            [
                LLMMessage(role="system", content=SYSTEM_PROMPT),
                LLMMessage(role="user", content=format_route_prompt(question)),
            ],
            ControlState.ROUTE,
            RouteResponse,
        )
        return result.route.value

    async def plan(self, question: str) -> list[str]:
        result = await self._structured(
            [
                LLMMessage(role="system", content=SYSTEM_PROMPT),
                LLMMessage(role="user", content=format_plan_prompt(question)),
            ],
            ControlState.PLAN,
            PlanResponse,
        )
        return [todo.content for todo in result.todos]

    async def select_and_invoke_edit_actions(
        self,
        question: str,
        profile: UserProfile,
        open_todos: list[TodoItem],
        history: list[Turn],
    ) -> EditOutcome:
        """Run the tool-calling loop until the model stops calling tools.

        Nothing is returned unless the whole loop succeeds.
        """
        prompt = format_edit_prompt(
            question=question,
            profile=profile.model_dump_json(),
            todos=json.dumps([todo.content for todo in open_todos], ensure_ascii=False),
        )
        base_messages = [
            LLMMessage(role="system", content=SYSTEM_PROMPT),
            LLMMessage(role="system", content=prompt),
            *[turn.to_llm_message() for turn in history],
        ]
        tools = mutators.tool_definitions()

        new_turns: list[Turn] = []
        changes: dict[str, Any] = {}
        actions: list[ActionRecord] = []

        for _ in range(self.settings.edit_max_tool_rounds):
            response = await self.router.chat_completion(
                messages=base_messages + [turn.to_llm_message() for turn in new_turns],
                step=ControlState.EDIT,
                tools=tools,
            )
            new_turns.append(Turn(role="ai", content=response.content or "", tool_calls=response.tool_calls or None))

            if not response.tool_calls:
                return EditOutcome(history=new_turns, changes=changes, actions=actions)

            for call in response.tool_calls:
                function = call.get("function") or {}
                result = mutators.invoke(
                    function.get("name", ""),
                    function.get("arguments") or "{}",
                    tool_call_id=call.get("id", ""),
                )
                changes[result.field] = result.value
                actions.append(result.record)
                new_turns.append(result.turn)
                logger.debug(f"Invoked {result.record.kind.value}({result.record.value!r})")

        raise OracleError(
            f"Edit did not finish within {self.settings.edit_max_tool_rounds} tool rounds"
        )

    async def reconcile(
        self,
        history: list[Turn],
        question: str,
        todos: list[TodoItem],
        action_log: list[ActionRecord],
    ) -> list[TodoUpdate]:
        result = await self._structured(
            [
                LLMMessage(role="system", content=RECONCILE_SYSTEM_PROMPT),
                *[turn.to_llm_message() for turn in history],
                LLMMessage(
                    role="user",
                    content=format_reconcile_prompt(
                        question=question,
                        todos=json.dumps([todo.model_dump() for todo in todos], ensure_ascii=False),
                        action_log=json.dumps(
                            [record.model_dump(mode="json") for record in action_log],
                            ensure_ascii=False,
                        ),
                    ),
                ),
            ],
            ControlState.RECONCILE_TODOS,
            ReconcileResponse,
        )
        return result.todos

    async def converse(self, history: list[Turn], on_text: TextCallback | None = None) -> Turn:
        messages = [
            LLMMessage(role="system", content=SYSTEM_PROMPT),
            *[turn.to_llm_message() for turn in history],
        ]
        parts: list[str] = []
        async for text in self.router.stream_completion(messages, ControlState.ANSWER):
            parts.append(text)
            if on_text is not None:
                on_text(text)

        if not parts:
            raise OracleError("Empty response during answer")
        return Turn(role="ai", content="".join(parts))
