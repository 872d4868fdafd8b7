"""Prompt templates for each workflow step.

Structured steps (plan, route, reconcile) ask for a JSON object and spell out
the schema; the edit step relies on function calling instead.
"""

from __future__ import annotations

# =============================================================================
# System Prompts
# =============================================================================

SYSTEM_PROMPT = """You are TodoFlow, an assistant that manages a small user profile.
The profile has three fields: the user's name, age and gender.
You either change those fields when the user asks, or answer the user conversationally."""


# =============================================================================
# Plan Prompt
# =============================================================================

PLAN_PROMPT = """You are a planner. Based on the user's question, decide step by step what has to be done
and write it down as a todo list. One todo per change to make. If nothing has to be changed,
return an empty list.

## User Question
{question}

Respond with a JSON object following this schema:
```json
{{
  "todos": [{{"content": "string"}}]
}}
```"""


# =============================================================================
# Route Prompt
# =============================================================================

ROUTE_PROMPT = """## User Question
{question}

If answering this question requires changing the user's name, age or gender, return "edit".
If it only needs an ordinary reply, return "answer".

Respond with a JSON object following this schema:
```json
{{
  "route": "edit|answer"
}}
```"""


# =============================================================================
# Edit Prompt
# =============================================================================

EDIT_PROMPT = """You change the user's name, age and gender. Look at the user's question, the open todos
and the current profile, then call the matching tools to make the changes.
Only call a tool for changes that are still needed. Reply briefly once you are done.

## Open Todos
{todos}

## User Question
{question}

## Current Profile
{profile}"""


# =============================================================================
# Reconcile Prompt
# =============================================================================

RECONCILE_SYSTEM_PROMPT = """Your job is to update the status of a todo list based on the conversation above,
the todo list itself and the log of actions that were actually performed."""

RECONCILE_PROMPT = """## User Question
{question}

## Todo List
{todos}

## Action Log
{action_log}

Return the id and the new status (is_done) of every todo whose status has to change.

Respond with a JSON object following this schema:
```json
{{
  "todos": [{{"id": "string", "is_done": true}}]
}}
```"""


# =============================================================================
# Helper Functions
# =============================================================================

def format_plan_prompt(question: str) -> str:
    """Format the plan prompt with the question."""
    return PLAN_PROMPT.format(question=question)


def format_route_prompt(question: str) -> str:
    """Format the route prompt with the question."""
    return ROUTE_PROMPT.format(question=question)


def format_edit_prompt(question: str, profile: str, todos: str) -> str:
    """Format the edit prompt with profile and open todos (JSON strings)."""
    return EDIT_PROMPT.format(question=question, profile=profile, todos=todos)


def format_reconcile_prompt(question: str, todos: str, action_log: str) -> str:
    """Format the reconcile prompt with todos and action log (JSON strings)."""
    return RECONCILE_PROMPT.format(
        question=question,
        todos=todos,
        action_log=action_log,
    )
