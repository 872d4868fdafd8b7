"""FastAPI routes for the TodoFlow API.

Endpoints:
- GET  /health  - Health check
- POST /runs    - Run the workflow on one question and return the final state
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException

from todoflow.agent.llm_oracle import LLMOracle
from todoflow.agent.state import WorkflowState, profile_of
from todoflow.agent.workflow import WorkflowEngine
from todoflow.config import get_settings
from todoflow.errors import LoopBudgetExceeded, OracleError, RoutingError
from todoflow.llm.router import ModelRouter
from todoflow.schemas import RunCreateRequest, RunResponse


logger = logging.getLogger(__name__)
router = APIRouter()

settings = get_settings()


async def get_engine() -> AsyncIterator[WorkflowEngine]:
    """Provide an engine backed by the configured LLM provider."""
    model_router = ModelRouter(settings)
    try:
        yield WorkflowEngine(LLMOracle(model_router, settings), settings)
    finally:
        await model_router.close()


def to_run_response(state: WorkflowState) -> RunResponse:
    """Build the API response from a terminal state."""
    history = state["history"]
    answer = None
    if len(history) > 1 and history[-1].role == "ai":
        answer = history[-1].content
    return RunResponse(
        run_id=state["run_id"],
        question=state["question"],
        profile=profile_of(state),
        todos=state["todos"],
        action_log=state["action_log"],
        answer=answer,
        history_length=len(history),
        edit_passes=state["edit_passes"],
    )


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.environment,
    }


# =============================================================================
# Runs Endpoints
# =============================================================================

@router.post("/runs", response_model=RunResponse)
async def create_run(
    request: RunCreateRequest,
    engine: WorkflowEngine = Depends(get_engine),
) -> RunResponse:
    """Run the workflow to completion.

    Each request gets a fresh state, so a failed request can simply be sent
    again.
    """
    try:
        state = await engine.run(request.question)
    except (RoutingError, LoopBudgetExceeded) as e:
        logger.error(f"Run failed: {e}")
        raise HTTPException(status_code=422, detail=str(e)) from e
    except OracleError as e:
        logger.error(f"Oracle failed: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    logger.info(f"Completed run {state['run_id']}")
    return to_run_response(state)
