"""Contract between workflow steps and the language-model oracle."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from todoflow.schemas import ActionRecord, EditOutcome, TodoItem, TodoUpdate, Turn, UserProfile

TextCallback = Callable[[str], Any]


class Oracle(Protocol):
    """Makes every natural-language judgment call in a run.

    All methods may raise ``OracleError``.
    """

    async def classify(self, question: str) -> str:
        """Return "edit" or "answer" for the question."""
        ...

    async def plan(self, question: str) -> list[str]:
        """Break the question into ordered sub-task descriptions."""
        ...

    async def select_and_invoke_edit_actions(
        self,
        question: str,
        profile: UserProfile,
        open_todos: list[TodoItem],
        history: list[Turn],
    ) -> EditOutcome:
        """Pick and apply zero or more profile mutators."""
        ...

    async def reconcile(
        self,
        history: list[Turn],
        question: str,
        todos: list[TodoItem],
        action_log: list[ActionRecord],
    ) -> list[TodoUpdate]:
        """Report which todos the actions taken so far satisfy."""
        ...

    async def converse(self, history: list[Turn], on_text: TextCallback | None = None) -> Turn:
        """Reply to the conversation; fragments go to ``on_text`` as they arrive."""
        ...
