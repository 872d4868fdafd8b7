from contextlib import asynccontextmanager

import pytest
from typer.testing import CliRunner

from conftest import ScriptedOracle
from todoflow import cli

runner = CliRunner()


@pytest.fixture
def use_oracle(monkeypatch, make_engine):
    def _use(oracle):
        @asynccontextmanager
        async def open_engine():
            yield make_engine(oracle)

        monkeypatch.setattr(cli, "open_engine", open_engine)

    return _use


def test_run_prints_progress_and_final_profile(use_oracle):
    use_oracle(ScriptedOracle(plan=["change name"], edits=[[("editUserName", '{"userName": "Kim"}')]]))

    result = runner.invoke(cli.app, ["run", "change my name to Kim"])

    assert result.exit_code == 0, result.output
    assert "[plan] open todos: 1/1" in result.output
    assert "[reconcile_todos] open todos: 0/1" in result.output
    assert "name: 'Kim'" in result.output
    assert "- editUserName: Kim" in result.output


def test_run_streams_answer(use_oracle):
    use_oracle(ScriptedOracle(routes=["answer"]))

    result = runner.invoke(cli.app, ["run", "--quiet", "hello"])

    assert result.exit_code == 0, result.output
    assert "answer: Hello" in result.output
    assert "[plan]" not in result.output


def test_run_reports_errors(use_oracle):
    use_oracle(ScriptedOracle(routes=["delete"]))

    result = runner.invoke(cli.app, ["run", "delete me"])

    assert result.exit_code == 1
    assert "RoutingError" in result.output
