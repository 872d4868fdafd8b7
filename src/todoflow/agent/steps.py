"""Workflow steps.

Each step reads the current state, consults the oracle and returns a delta.
Append-only fields carry only the new items; merging is left to the graph.
"""

from __future__ import annotations

import logging
from typing import Any

from todoflow.agent.oracle import Oracle, TextCallback
from todoflow.agent.state import PROFILE_FIELDS, WorkflowState, open_todos, profile_of
from todoflow.schemas import TodoItem

logger = logging.getLogger(__name__)


async def plan_step(state: WorkflowState, oracle: Oracle) -> dict[str, Any]:
    """Decompose the question into a fresh todo list.

    Input: question
    Output: todos
    """
    logger.info(f"[{state['run_id']}] Starting plan step")

    contents = await oracle.plan(state["question"])
    todos = [TodoItem(content=content) for content in contents]

    logger.info(f"[{state['run_id']}] Planned {len(todos)} todos")
    return {"todos": todos}


async def route_step(state: WorkflowState, oracle: Oracle) -> dict[str, Any]:
    """Classify the question as an edit or a plain answer.

    Input: question
    Output: route_decision
    """
    logger.info(f"[{state['run_id']}] Starting route step")

    decision = await oracle.classify(state["question"])

    logger.info(f"[{state['run_id']}] Routed to {decision!r}")
    return {"route_decision": decision}


async def edit_step(state: WorkflowState, oracle: Oracle) -> dict[str, Any]:
    """Apply profile mutators chosen by the oracle.

    Input: question, profile fields, open todos, history
    Output: history, changed profile fields, action_log, edit_passes
    """
    logger.info(f"[{state['run_id']}] Starting edit step (pass {state.get('edit_passes', 0) + 1})")

    outcome = await oracle.select_and_invoke_edit_actions(
        question=state["question"],
        profile=profile_of(state),
        open_todos=open_todos(state),
        history=state["history"],
    )

    delta: dict[str, Any] = {
        "history": outcome.history,
        "action_log": outcome.actions,
        "edit_passes": 1,
    }
    for field, value in outcome.changes.items():
        if field not in PROFILE_FIELDS:
            logger.warning(f"[{state['run_id']}] Ignoring change to non-profile field {field!r}")
            continue
        delta[field] = value

    logger.info(
        f"[{state['run_id']}] Edit applied {len(outcome.actions)} actions: "
        f"{[action.kind.value for action in outcome.actions]}"
    )
    return delta


async def reconcile_todos_step(state: WorkflowState, oracle: Oracle) -> dict[str, Any]:
    """Mark todos satisfied by the actions taken so far.

    Input: history, question, todos, action_log
    Output: todos (full replacement), unknown_todo_refs
    """
    logger.info(f"[{state['run_id']}] Starting reconcile step")

    todos = state.get("todos", [])
    updates = await oracle.reconcile(
        history=state["history"],
        question=state["question"],
        todos=todos,
        action_log=state.get("action_log", []),
    )

    known_ids = {todo.id for todo in todos}
    done_by_id: dict[str, bool] = {}
    unknown = 0
    for update in updates:
        if update.id not in known_ids:
            unknown += 1
            logger.warning(f"[{state['run_id']}] Oracle referenced unknown todo id {update.id!r}")
            continue
        done_by_id[update.id] = update.is_done

    new_todos = [
        todo.model_copy(update={"is_done": done_by_id[todo.id]}) if todo.id in done_by_id else todo
        for todo in todos
    ]

    remaining = sum(1 for todo in new_todos if not todo.is_done)
    logger.info(f"[{state['run_id']}] {remaining}/{len(new_todos)} todos still open")

    delta: dict[str, Any] = {"todos": new_todos}
    if unknown:
        delta["unknown_todo_refs"] = unknown
    return delta


async def answer_step(
    state: WorkflowState,
    oracle: Oracle,
    on_text: TextCallback | None = None,
) -> dict[str, Any]:
    """Reply to the conversation.

    Input: history
    Output: history (one ai turn)
    """
    logger.info(f"[{state['run_id']}] Starting answer step")

    reply = await oracle.converse(state["history"], on_text=on_text)
    return {"history": [reply]}
