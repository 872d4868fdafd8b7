"""Workflow state and its per-field merge rules.

Every step returns a partial update (a delta). Deltas are merged into the
state field by field:

- history, action_log: appended
- edit_passes, unknown_todo_refs: summed
- todos and scalar fields: replaced by the delta's value

The same reducer functions back the graph channels and ``merge_delta``, so
the engine's snapshot and the graph's own state always agree.
"""

from __future__ import annotations

from typing import Annotated, Any, TypedDict
from uuid import uuid4

from todoflow.schemas import ActionRecord, RouteDecision, TodoItem, Turn, UserProfile


def append_turns(current: list[Turn], update: list[Turn]) -> list[Turn]:
    return list(current) + list(update)


def append_actions(current: list[ActionRecord], update: list[ActionRecord]) -> list[ActionRecord]:
    return list(current) + list(update)


def add_count(current: int, update: int) -> int:
    return current + update


def replace(current: Any, update: Any) -> Any:
    return update


class WorkflowState(TypedDict, total=False):
    """State threaded through every workflow step.

    Attributes:
        run_id: Unique identifier for this run
        question: The original user request
        history: Conversation turns (human, ai, tool)
        user_name: Profile name
        age: Profile age
        gender: Profile gender
        route_decision: Output of the route step
        action_log: Mutator invocations, in order
        todos: Checklist derived from the question
        edit_passes: Number of completed edit passes
        unknown_todo_refs: Todo ids the oracle named that do not exist
    """
    run_id: str
    question: str
    history: Annotated[list[Turn], append_turns]
    user_name: str
    age: int
    gender: str
    route_decision: RouteDecision | str
    action_log: Annotated[list[ActionRecord], append_actions]
    todos: list[TodoItem]
    edit_passes: Annotated[int, add_count]
    unknown_todo_refs: Annotated[int, add_count]


PROFILE_FIELDS = ("user_name", "age", "gender")

FIELD_REDUCERS = {
    "run_id": replace,
    "question": replace,
    "history": append_turns,
    "user_name": replace,
    "age": replace,
    "gender": replace,
    "route_decision": replace,
    "action_log": append_actions,
    "todos": replace,
    "edit_passes": add_count,
    "unknown_todo_refs": add_count,
}


def initial_state(question: str, run_id: str | None = None) -> WorkflowState:
    """Create the state a run starts from."""
    return WorkflowState(
        run_id=run_id or str(uuid4()),
        question=question,
        history=[Turn(role="human", content=question)],
        user_name="",
        age=0,
        gender="",
        action_log=[],
        todos=[],
        edit_passes=0,
        unknown_todo_refs=0,
    )


def merge_delta(state: WorkflowState, delta: dict[str, Any]) -> WorkflowState:
    """Return a new state with ``delta`` merged in. Neither input is mutated."""
    merged = WorkflowState(**state)
    for key, value in delta.items():
        if key not in FIELD_REDUCERS:
            raise KeyError(f"Unknown state field: {key}")
        if key in merged:
            merged[key] = FIELD_REDUCERS[key](merged[key], value)
        else:
            merged[key] = value
    return merged


def open_todos(state: WorkflowState) -> list[TodoItem]:
    return [todo for todo in state.get("todos", []) if not todo.is_done]


def all_todos_done(state: WorkflowState) -> bool:
    return all(todo.is_done for todo in state.get("todos", []))


def profile_of(state: WorkflowState) -> UserProfile:
    return UserProfile(
        user_name=state.get("user_name", ""),
        age=state.get("age", 0),
        gender=state.get("gender", ""),
    )
