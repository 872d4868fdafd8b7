"""Errors raised by a workflow run.

A run either completes with a terminal state or fails with one of these.
"""

from __future__ import annotations

from typing import Any


class TodoFlowError(Exception):
    """Base error for workflow runs."""


class OracleError(TodoFlowError):
    """Raised when the language-model oracle fails or returns unusable output."""


class OracleTimeoutError(OracleError):
    """Raised when an oracle call exceeds its timeout."""


class RoutingError(TodoFlowError):
    """Raised when the route decision is neither edit nor answer."""

    def __init__(self, decision: Any):
        self.decision = decision
        super().__init__(f"Unrecognized route decision: {decision!r}")


class LoopBudgetExceeded(TodoFlowError):
    """Raised when the edit loop or the run deadline is exhausted."""
