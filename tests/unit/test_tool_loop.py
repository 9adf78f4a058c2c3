from __future__ import annotations

import pytest

from fakes import ScriptedGateway, tool_turn
from meal_orchestrator.errors import GatewayError, IterationBudgetExceeded
from meal_orchestrator.graph.nodes.dispatch_tools import budget_warning
from meal_orchestrator.graph.loop import ToolLoop
from meal_orchestrator.tools.dispatcher import ToolDispatcher
from meal_orchestrator.tools.registry import build_registry


def _loop(gateway: ScriptedGateway, catalog) -> ToolLoop:
    return ToolLoop(gateway=gateway, dispatcher=ToolDispatcher(build_registry(catalog)))


def test_final_json_on_first_turn_needs_one_call(gateway, catalog) -> None:
    gateway.push('{"meals": [{"name": "Salmon"}]}')

    text = _loop(gateway, catalog).run("sys", "plan", max_iterations=5)

    assert text == '{"meals": [{"name": "Salmon"}]}'
    assert len(gateway.calls) == 1
    tool_names = [item["name"] for item in gateway.calls[0]["tools"]]
    assert tool_names == ["search_recipes", "get_recipe_details"]


def test_tool_results_are_fed_back_to_the_model(gateway, catalog) -> None:
    gateway.push(
        tool_turn(("search_recipes", {"protein": "seafood"})),
        '{"meals": []}',
    )

    text = _loop(gateway, catalog).run("sys", "plan", max_iterations=5)

    assert text == '{"meals": []}'
    assert len(gateway.calls) == 2
    conversation = gateway.calls[1]["conversation"]
    assert [turn.role for turn in conversation] == ["user", "model", "user"]
    assert conversation[1].parts[0].function_call.name == "search_recipes"
    response_parts = conversation[2].parts
    assert len(response_parts) == 1
    assert response_parts[0].function_name == "search_recipes"
    ids = [row["id"] for row in response_parts[0].function_response["results"]]
    assert ids == [1004, 1008]


def test_parallel_tool_calls_each_get_a_response_part(gateway, catalog) -> None:
    gateway.push(
        tool_turn(
            ("search_recipes", {"cuisine": "mexican"}),
            ("get_recipe_details", {"recipeIds": [1001]}),
            ("no_such_tool", {}),
        ),
        '{"meals": []}',
    )

    _loop(gateway, catalog).run("sys", "plan", max_iterations=5)

    parts = gateway.calls[1]["conversation"][2].parts
    assert [part.function_name for part in parts] == [
        "search_recipes",
        "get_recipe_details",
        "no_such_tool",
    ]
    assert parts[2].function_response == {
        "error": "Unknown tool: no_such_tool",
        "tool": "no_such_tool",
    }


def test_budget_warning_is_appended_near_the_end(gateway, catalog) -> None:
    gateway.push(
        tool_turn(("search_recipes", {})),
        tool_turn(("search_recipes", {"tags": ["quick"]})),
        '{"items": []}',
    )

    text = _loop(gateway, catalog).run("sys", "plan", max_iterations=3, expected_key="items")

    assert text == '{"items": []}'
    first_results = gateway.calls[1]["conversation"][-1].parts
    assert all(part.text is None for part in first_results)
    last_parts = gateway.calls[2]["conversation"][-1].parts
    assert last_parts[-1].text.startswith("STOP! You have only 1 tool calls remaining.")
    assert '"items" array' in last_parts[-1].text


def test_exhausting_the_budget_raises(gateway, catalog) -> None:
    gateway.push(
        tool_turn(("search_recipes", {})),
        tool_turn(("search_recipes", {})),
    )

    with pytest.raises(IterationBudgetExceeded) as exc_info:
        _loop(gateway, catalog).run("sys", "plan", max_iterations=2)

    assert exc_info.value.max_iterations == 2
    assert len(gateway.calls) == 2


def test_prose_answer_triggers_one_structured_retry(gateway, catalog) -> None:
    gateway.push("Here are some great dinner ideas for you!", '{"meals": [1]}')

    text = _loop(gateway, catalog).run("sys", "plan", max_iterations=5)

    assert text == '{"meals": [1]}'
    assert len(gateway.calls) == 2
    retry = gateway.calls[1]
    assert retry["tools"] is None
    last = retry["conversation"][-1]
    assert last.role == "user"
    assert 'JSON object with a "meals" array' in last.parts[0].text
    assert retry["conversation"][-2].parts[0].text == "Here are some great dinner ideas for you!"


def test_gateway_errors_propagate(gateway, catalog) -> None:
    gateway.push(GatewayError("down", transient=True))

    with pytest.raises(GatewayError, match="down"):
        _loop(gateway, catalog).run("sys", "plan", max_iterations=5)


def test_max_iterations_must_be_positive(gateway, catalog) -> None:
    with pytest.raises(ValueError):
        _loop(gateway, catalog).run("sys", "plan", max_iterations=0)


@pytest.mark.parametrize(
    ("iteration", "max_iterations", "prefix"),
    [
        (0, 10, ""),
        (6, 10, ""),
        (7, 10, "WARNING: 2 tool calls remaining."),
        (8, 10, "STOP! You have only 1 tool calls remaining."),
        (9, 10, "STOP! You have only 0 tool calls remaining."),
    ],
)
def test_budget_warning_thresholds(iteration, max_iterations, prefix) -> None:
    warning = budget_warning(iteration, max_iterations, "meals")

    if prefix:
        assert warning.startswith(prefix)
    else:
        assert warning == ""
