"""Shared test fixtures for TodoFlow.

Provides a scripted oracle and engine fixtures that never touch the network.
"""

from __future__ import annotations

import pytest

from todoflow.agent import mutators
from todoflow.agent.workflow import WorkflowEngine
from todoflow.config import Settings
from todoflow.errors import OracleError
from todoflow.schemas import EditOutcome, TodoUpdate, Turn


class ScriptedOracle:
    """Oracle whose answers are fixed up front.

    Args:
        routes: route decisions, consumed in order (last one repeats)
        plan: todo contents returned by ``plan``
        edits: one list of (tool name, arguments) per edit pass
        reconcile: callable(todos, action_log) -> list[TodoUpdate];
            defaults to marking todo i done once the log has i+1 records
        answer: fragments streamed by ``converse``
        fail_on: oracle method name that raises OracleError
    """

    def __init__(
        self,
        routes=("edit",),
        plan=(),
        edits=(),
        reconcile=None,
        answer=("Hel", "lo"),
        fail_on=None,
    ):
        self.routes = list(routes)
        self.plan_contents = list(plan)
        self.edits = list(edits)
        self.reconcile_fn = reconcile or progress_by_log_length
        self.answer_parts = list(answer)
        self.fail_on = fail_on
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise OracleError(f"{name} failed")

    async def classify(self, question):
        self._enter("classify")
        if len(self.routes) > 1:
            return self.routes.pop(0)
        return self.routes[0]

    async def plan(self, question):
        self._enter("plan")
        return list(self.plan_contents)

    async def select_and_invoke_edit_actions(self, question, profile, open_todos, history):
        self._enter("edit")
        script = self.edits.pop(0) if self.edits else []
        outcome = EditOutcome()
        for index, (name, arguments) in enumerate(script):
            call_id = f"call_{len(self.calls)}_{index}"
            outcome.history.append(
                Turn(
                    role="ai",
                    tool_calls=[{"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}],
                )
            )
            result = mutators.invoke(name, arguments, tool_call_id=call_id)
            outcome.changes[result.field] = result.value
            outcome.actions.append(result.record)
            outcome.history.append(result.turn)
        outcome.history.append(Turn(role="ai", content="done"))
        return outcome

    async def reconcile(self, history, question, todos, action_log):
        self._enter("reconcile")
        return self.reconcile_fn(todos, action_log)

    async def converse(self, history, on_text=None):
        self._enter("converse")
        for part in self.answer_parts:
            if on_text is not None:
                on_text(part)
        return Turn(role="ai", content="".join(self.answer_parts))


def progress_by_log_length(todos, action_log):
    return [TodoUpdate(id=todo.id, is_done=True) for todo in todos[: len(action_log)]]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, max_edit_passes=5, max_run_seconds=30, edit_max_tool_rounds=3)


@pytest.fixture
def make_engine(settings):
    def _make(oracle, **overrides) -> WorkflowEngine:
        return WorkflowEngine(oracle, settings.model_copy(update=overrides))
    return _make
