"""Profile mutators offered to the oracle during an edit pass.

The set of mutators is closed: each ``ActionKind`` maps to one argument
schema and one profile field. Only the oracle's choice among them is
dynamic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from todoflow.errors import OracleError
from todoflow.schemas import (
    ActionKind,
    ActionRecord,
    EditAgeArgs,
    EditGenderArgs,
    EditUserNameArgs,
    Turn,
)


@dataclass(frozen=True)
class Mutator:
    kind: ActionKind
    args_model: type[BaseModel]
    arg_name: str
    field: str
    description: str


MUTATORS: dict[ActionKind, Mutator] = {
    ActionKind.EDIT_USER_NAME: Mutator(
        kind=ActionKind.EDIT_USER_NAME,
        args_model=EditUserNameArgs,
        arg_name="userName",
        field="user_name",
        description="Change the user's name",
    ),
    ActionKind.EDIT_AGE: Mutator(
        kind=ActionKind.EDIT_AGE,
        args_model=EditAgeArgs,
        arg_name="age",
        field="age",
        description="Change the user's age",
    ),
    ActionKind.EDIT_GENDER: Mutator(
        kind=ActionKind.EDIT_GENDER,
        args_model=EditGenderArgs,
        arg_name="gender",
        field="gender",
        description="Change the user's gender",
    ),
}


@dataclass
class MutationResult:
    """Effect of a single mutator invocation."""
    field: str
    value: Any
    record: ActionRecord
    turn: Turn


def tool_definitions() -> list[dict[str, Any]]:
    """Function-calling tool definitions for every mutator."""
    return [
        {
            "type": "function",
            "function": {
                "name": mutator.kind.value,
                "description": mutator.description,
                "parameters": mutator.args_model.model_json_schema(),
            },
        }
        for mutator in MUTATORS.values()
    ]


def invoke(name: str, arguments: str | dict[str, Any], tool_call_id: str = "") -> MutationResult:
    """Validate a tool call and apply the matching mutator.

    Raises:
        OracleError: unknown tool name, or arguments that fail validation
    """
    try:
        kind = ActionKind(name)
    except ValueError:
        raise OracleError(f"Oracle selected unknown tool: {name!r}") from None

    mutator = MUTATORS[kind]
    try:
        payload = json.loads(arguments) if isinstance(arguments, str) else arguments
        args = mutator.args_model.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        raise OracleError(f"Invalid arguments for {name}: {e}") from e

    value = getattr(args, mutator.arg_name)
    return MutationResult(
        field=mutator.field,
        value=value,
        record=ActionRecord(kind=kind, value=str(value)),
        turn=Turn(role="tool", content=str(value), name=kind.value, tool_call_id=tool_call_id),
    )
