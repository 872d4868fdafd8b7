"""LangGraph workflow definition for the todo-driven profile agent.

Graph structure:
START → plan → route → answer → END
                 ↓  ↑
                edit → reconcile_todos → END (all todos done)

The route/edit/reconcile_todos cycle repeats until every todo is done,
bounded by one pass per todo (at least ``max_edit_passes``) and ``max_run_seconds``.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from contextlib import aclosing
from typing import AsyncIterator, Callable

from langgraph.config import get_stream_writer
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph

from todoflow.agent.oracle import Oracle
from todoflow.agent.state import WorkflowState, all_todos_done, initial_state, merge_delta
from todoflow.agent.steps import (
    answer_step,
    edit_step,
    plan_step,
    reconcile_todos_step,
    route_step,
)
from todoflow.config import Settings, get_settings
from todoflow.errors import LoopBudgetExceeded, RoutingError
from todoflow.schemas import ControlState, RouteDecision, RunEvent


logger = logging.getLogger(__name__)

TERMINAL = END


# =============================================================================
# Transition Functions
# =============================================================================

def next_after_route(state: WorkflowState) -> ControlState:
    """Pick the branch for the route decision."""
    decision = state.get("route_decision")
    try:
        decision = RouteDecision(decision)
    except ValueError:
        raise RoutingError(decision) from None

    if decision is RouteDecision.EDIT:
        return ControlState.EDIT
    return ControlState.ANSWER


def next_after_reconcile(state: WorkflowState, max_edit_passes: int) -> str:
    """End once every todo is done; otherwise route again within budget.

    The budget is at least one pass per planned todo.
    """
    if all_todos_done(state):
        return TERMINAL

    todos = state.get("todos", [])
    budget = max(max_edit_passes, len(todos))
    passes = state.get("edit_passes", 0)
    if passes >= budget:
        open_count = sum(1 for todo in todos if not todo.is_done)
        raise LoopBudgetExceeded(
            f"{open_count} todos still open after {passes} edit passes (limit {budget})"
        )
    return ControlState.ROUTE


def is_terminal_update(step: ControlState, state: WorkflowState) -> bool:
    """Whether the run ends after ``step`` produced ``state``."""
    if step is ControlState.ANSWER:
        return True
    return step is ControlState.RECONCILE_TODOS and all_todos_done(state)


# =============================================================================
# Workflow Builder
# =============================================================================

def build_workflow(oracle: Oracle, max_edit_passes: int) -> StateGraph:
    """Build the LangGraph workflow with the oracle bound into every node."""

    async def plan(state: WorkflowState) -> dict:
        return await plan_step(state, oracle)

    async def route(state: WorkflowState) -> dict:
        return await route_step(state, oracle)

    async def edit(state: WorkflowState) -> dict:
        return await edit_step(state, oracle)

    async def reconcile_todos(state: WorkflowState) -> dict:
        return await reconcile_todos_step(state, oracle)

    async def answer(state: WorkflowState) -> dict:
        writer = get_stream_writer()
        return await answer_step(state, oracle, on_text=lambda text: writer({"text": text}))

    def after_reconcile(state: WorkflowState) -> str:
        return next_after_reconcile(state, max_edit_passes)

    workflow = StateGraph(WorkflowState)

    # Add nodes
    workflow.add_node(ControlState.PLAN.value, plan)
    workflow.add_node(ControlState.ROUTE.value, route)
    workflow.add_node(ControlState.EDIT.value, edit)
    workflow.add_node(ControlState.RECONCILE_TODOS.value, reconcile_todos)
    workflow.add_node(ControlState.ANSWER.value, answer)

    # Set entry point
    workflow.set_entry_point(ControlState.PLAN.value)

    # Add edges
    workflow.add_edge(ControlState.PLAN.value, ControlState.ROUTE.value)

    workflow.add_conditional_edges(
        ControlState.ROUTE.value,
        next_after_route,
        {
            ControlState.EDIT: ControlState.EDIT.value,
            ControlState.ANSWER: ControlState.ANSWER.value,
        },
    )

    workflow.add_edge(ControlState.EDIT.value, ControlState.RECONCILE_TODOS.value)

    workflow.add_conditional_edges(
        ControlState.RECONCILE_TODOS.value,
        after_reconcile,
        {
            ControlState.ROUTE: ControlState.ROUTE.value,
            TERMINAL: END,
        },
    )

    workflow.add_edge(ControlState.ANSWER.value, END)

    return workflow


# =============================================================================
# Engine
# =============================================================================

class WorkflowEngine:
    """Runs questions through the compiled workflow.

    One engine may serve concurrent runs: each run gets its own state and
    nothing mutable is shared between them.
    """

    def __init__(self, oracle: Oracle, settings: Settings | None = None):
        self.oracle = oracle
        self.settings = settings or get_settings()
        self.max_edit_passes = self.settings.max_edit_passes
        self.max_run_seconds = self.settings.max_run_seconds
        self.graph = build_workflow(oracle, self.max_edit_passes).compile()

    @property
    def recursion_limit(self) -> int:
        # plan + route, three nodes per edit pass, final answer, slack;
        # todo count is unknown before planning, so max_graph_steps covers large plans
        return max(3 * self.max_edit_passes + 5, self.settings.max_graph_steps)

    async def stream(self, question: str, run_id: str | None = None) -> AsyncIterator[RunEvent]:
        """Run the workflow, yielding a snapshot after every step.

        Answer fragments are yielded as ``partial-answer`` events while the
        answer step is running. Closing the iterator stops the run.
        """
        state = initial_state(question, run_id)
        run_id = state["run_id"]
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_run_seconds

        logger.info(f"Starting workflow run {run_id}")

        config = {"recursion_limit": self.recursion_limit, "run_name": f"todoflow-{run_id[:8]}"}
        try:
            async with aclosing(
                self.graph.astream(state, config=config, stream_mode=["updates", "custom"])
            ) as chunks:
                async for mode, chunk in chunks:
                    if mode == "custom":
                        yield RunEvent(kind="partial-answer", step=ControlState.ANSWER, text=chunk["text"])
                        continue

                    finished = False
                    for node, delta in chunk.items():
                        step = ControlState(node)
                        state = merge_delta(state, delta or {})
                        finished = is_terminal_update(step, state)
                        yield RunEvent(kind="snapshot", step=step, state=copy.deepcopy(dict(state)))

                    if not finished and loop.time() > deadline:
                        raise LoopBudgetExceeded(
                            f"Run {run_id} exceeded {self.max_run_seconds}s wall-clock budget"
                        )
        except GraphRecursionError as e:
            raise LoopBudgetExceeded(f"Run {run_id} exceeded recursion limit {self.recursion_limit}") from e

        logger.info(
            f"Workflow run {run_id} completed: {len(state['action_log'])} actions, "
            f"{state['edit_passes']} edit passes"
        )

    async def run(
        self,
        question: str,
        on_event: Callable[[RunEvent], object] | None = None,
        run_id: str | None = None,
    ) -> WorkflowState:
        """Execute the full workflow and return the terminal state.

        ``on_event`` receives copies; changing them does not affect the run.
        """
        final: WorkflowState | None = None
        async for event in self.stream(question, run_id=run_id):
            if event.kind == "snapshot":
                final = WorkflowState(**event.state)
            if on_event is not None:
                on_event(event.model_copy(deep=True))
        if final is None:
            raise RuntimeError("Workflow produced no state")
        return final


# =============================================================================
# Public API
# =============================================================================

async def run_workflow(question: str, oracle: Oracle | None = None) -> WorkflowState:
    """Run one question with the given oracle, or the configured LLM oracle.

    Args:
        question: The user's request
        oracle: Optional oracle (an ``LLMOracle`` is built if not provided)

    Returns:
        Final workflow state
    """
    settings = get_settings()
    if oracle is None:
        from todoflow.agent.llm_oracle import LLMOracle
        from todoflow.llm.router import ModelRouter

        router = ModelRouter(settings)
        try:
            return await WorkflowEngine(LLMOracle(router, settings), settings).run(question)
        finally:
            await router.close()
    return await WorkflowEngine(oracle, settings).run(question)
