"""CLI entrypoint (Typer).

- `todoflow run "<question>"` runs one question and prints progress
- `todoflow serve` starts the HTTP API
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import typer

from todoflow.agent.llm_oracle import LLMOracle
from todoflow.agent.state import WorkflowState, open_todos
from todoflow.agent.workflow import WorkflowEngine
from todoflow.config import get_settings
from todoflow.errors import TodoFlowError
from todoflow.llm.router import ModelRouter
from todoflow.schemas import RunEvent

app = typer.Typer(help="TodoFlow profile agent CLI.")


@asynccontextmanager
async def open_engine() -> AsyncIterator[WorkflowEngine]:
    """Engine backed by the configured LLM provider."""
    settings = get_settings()
    model_router = ModelRouter(settings)
    try:
        yield WorkflowEngine(LLMOracle(model_router, settings), settings)
    finally:
        await model_router.close()


class EventPrinter:
    """Prints run events as they arrive."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self._streaming = False

    def __call__(self, event: RunEvent) -> None:
        if event.kind == "partial-answer":
            if not self._streaming:
                typer.echo("answer: ", nl=False)
                self._streaming = True
            typer.echo(event.text, nl=False)
            return

        if self._streaming:
            typer.echo("")
            self._streaming = False
        if self.quiet:
            return
        state = event.state
        typer.echo(
            f"[{event.step.value}] open todos: {len(open_todos(state))}/{len(state['todos'])}, "
            f"profile: name={state['user_name']!r} age={state['age']} gender={state['gender']!r}"
        )


async def _run(question: str, quiet: bool) -> WorkflowState:
    async with open_engine() as engine:
        return await engine.run(question, on_event=EventPrinter(quiet))


@app.command()
def run(
    question: str,
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print the answer and final state."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """Run one question through the workflow."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        state = asyncio.run(_run(question, quiet))
    except TodoFlowError as e:
        typer.echo(f"error: {type(e).__name__}: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"name: {state['user_name']!r}")
    typer.echo(f"age: {state['age']}")
    typer.echo(f"gender: {state['gender']!r}")
    for record in state["action_log"]:
        typer.echo(f"- {record.kind.value}: {record.value}")


@app.command()
def serve():
    """Start the HTTP API."""
    from todoflow.api.main import serve as serve_api

    serve_api()


if __name__ == "__main__":
    app()
