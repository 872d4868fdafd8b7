import pytest

from todoflow.agent import mutators
from todoflow.errors import OracleError
from todoflow.schemas import ActionKind


def test_tool_definitions_cover_every_mutator():
    names = [tool["function"]["name"] for tool in mutators.tool_definitions()]

    assert names == ["editUserName", "editAge", "editGender"]
    age_tool = mutators.tool_definitions()[1]
    assert age_tool["function"]["parameters"]["properties"]["age"]["type"] == "integer"


@pytest.mark.parametrize(
    ("name", "arguments", "field", "value"),
    [
        ("editUserName", '{"userName": "Kim"}', "user_name", "Kim"),
        ("editAge", {"age": 24}, "age", 24),
        ("editGender", '{"gender": "female"}', "gender", "female"),
    ],
)
def test_invoke_updates_one_field_and_records_action(name, arguments, field, value):
    result = mutators.invoke(name, arguments, tool_call_id="call_1")

    assert result.field == field
    assert result.value == value
    assert result.record.kind == ActionKind(name)
    assert result.record.value == str(value)
    assert result.turn.role == "tool"
    assert result.turn.tool_call_id == "call_1"
    assert result.turn.name == name


def test_invoke_same_value_twice_records_twice():
    first = mutators.invoke("editAge", {"age": 24})
    second = mutators.invoke("editAge", {"age": 24})

    assert first.value == second.value == 24
    assert first.record == second.record
    assert first.record is not second.record


def test_invoke_unknown_tool():
    with pytest.raises(OracleError, match="unknown tool"):
        mutators.invoke("deleteUser", "{}")


@pytest.mark.parametrize("arguments", ['{"age": "old"}', "{not json", {}])
def test_invoke_rejects_bad_arguments(arguments):
    with pytest.raises(OracleError, match="Invalid arguments"):
        mutators.invoke("editAge", arguments)
