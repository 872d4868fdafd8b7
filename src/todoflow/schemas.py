"""Pydantic schemas for all workflow I/O contracts.

These schemas define the strict contracts between:
- workflow steps and the state they update
- the oracle and the structured output it returns
- the LLM provider API
- API endpoints and clients
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ControlState(str, Enum):
    """Names of workflow steps (graph nodes)."""
    PLAN = "plan"
    ROUTE = "route"
    EDIT = "edit"
    RECONCILE_TODOS = "reconcile_todos"
    ANSWER = "answer"


class RouteDecision(str, Enum):
    """Outcome of the routing step."""
    EDIT = "edit"
    ANSWER = "answer"


class ActionKind(str, Enum):
    """Profile mutators the oracle may invoke during an edit pass."""
    EDIT_USER_NAME = "editUserName"
    EDIT_AGE = "editAge"
    EDIT_GENDER = "editGender"


# =============================================================================
# State Schemas
# =============================================================================

class TodoItem(BaseModel):
    """Single sub-task derived from the user's request."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    content: str = Field(..., description="What needs to be done")
    is_done: bool = Field(default=False)


class ActionRecord(BaseModel):
    """One mutator invocation, recorded in the action log."""
    kind: ActionKind
    value: str


class Turn(BaseModel):
    """A single conversation turn kept in the workflow history."""
    role: Literal["human", "ai", "tool"]
    content: str = ""
    name: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None

    def to_llm_message(self) -> LLMMessage:
        """Convert to the provider's chat message format."""
        role = {"human": "user", "ai": "assistant", "tool": "tool"}[self.role]
        return LLMMessage(
            role=role,
            content=self.content,
            name=self.name if self.role == "tool" else None,
            tool_calls=self.tool_calls,
            tool_call_id=self.tool_call_id,
        )


class UserProfile(BaseModel):
    """Editable user profile fields."""
    user_name: str = ""
    age: int = 0
    gender: str = ""


# =============================================================================
# Mutator Argument Schemas
# =============================================================================

class EditUserNameArgs(BaseModel):
    """Change the user's name."""
    userName: str = Field(..., description="New name for the user")


class EditAgeArgs(BaseModel):
    """Change the user's age."""
    age: int = Field(..., description="New age for the user")


class EditGenderArgs(BaseModel):
    """Change the user's gender."""
    gender: str = Field(..., description="New gender for the user")


# =============================================================================
# Oracle Output Schemas
# =============================================================================

class PlannedTodo(BaseModel):
    content: str


class PlanResponse(BaseModel):
    """Structured output of the planning prompt."""
    todos: list[PlannedTodo] = Field(default_factory=list)


class RouteResponse(BaseModel):
    """Structured output of the routing prompt."""
    route: RouteDecision


class TodoUpdate(BaseModel):
    """Completion update for one todo, keyed by id."""
    id: str
    is_done: bool


class ReconcileResponse(BaseModel):
    """Structured output of the todo reconciliation prompt."""
    todos: list[TodoUpdate] = Field(default_factory=list)


class EditOutcome(BaseModel):
    """Everything one edit pass produced, merged atomically into state."""
    history: list[Turn] = Field(default_factory=list)
    changes: dict[str, Any] = Field(default_factory=dict, description="Profile field -> new value")
    actions: list[ActionRecord] = Field(default_factory=list)


# =============================================================================
# Run Events
# =============================================================================

class RunEvent(BaseModel):
    """Observation emitted while a run is in progress."""
    kind: Literal["snapshot", "partial-answer"]
    step: ControlState | None = None
    state: dict[str, Any] | None = None
    text: str | None = None


# =============================================================================
# LLM Schemas
# =============================================================================

class LLMMessage(BaseModel):
    """A single message in an LLM conversation."""
    role: Literal["system", "user", "assistant", "tool"] = Field(...)
    content: str = Field(...)
    name: str | None = Field(default=None, description="Name for tool messages")
    tool_calls: list[dict[str, Any]] | None = Field(default=None)
    tool_call_id: str | None = Field(default=None)


class LLMResponse(BaseModel):
    """Response from an LLM provider."""
    content: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    model: str
    usage: dict[str, int] = Field(default_factory=dict)
    finish_reason: str | None = None
    raw_response: dict[str, Any] | None = None


# =============================================================================
# API Request/Response Schemas
# =============================================================================

class RunCreateRequest(BaseModel):
    """API request to run the workflow on one question."""
    question: str = Field(..., min_length=1, description="Natural language request")

    model_config = {
        "json_schema_extra": {
            "example": {"question": "change my name to Kim and my age to 24"}
        }
    }


class RunResponse(BaseModel):
    """API response with the final state of a run."""
    run_id: str
    question: str
    profile: UserProfile
    todos: list[TodoItem]
    action_log: list[ActionRecord]
    answer: str | None = None
    history_length: int
    edit_passes: int
