"""Dispatch-tools node: run requested tools and feed results back to the model."""

from __future__ import annotations

import logging

from meal_orchestrator.errors import IterationBudgetExceeded
from meal_orchestrator.graph.state import LoopState
from meal_orchestrator.llm.models import Part, Turn
from meal_orchestrator.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


def run(state: LoopState, *, dispatcher: ToolDispatcher) -> LoopState:
    turn = state.get("last_turn")
    if turn is None or not turn.wants_tools:
        raise RuntimeError("dispatch_tools reached without pending tool calls")

    iteration = int(state.get("iteration", 0))
    max_iterations = int(state.get("max_iterations", 1))
    expected_key = state.get("expected_key", "meals")

    results = dispatcher.dispatch_all(turn.tool_calls)
    parts = [
        Part.from_response(call.name, result)
        for call, result in zip(turn.tool_calls, results)
    ]
    warning = budget_warning(iteration, max_iterations, expected_key)
    if warning:
        parts.append(Part.from_text(warning))

    conversation = list(state.get("conversation", []))
    conversation.append(turn.as_turn())
    conversation.append(Turn(role="user", parts=tuple(parts)))

    next_iteration = iteration + 1
    if next_iteration >= max_iterations:
        logger.error(
            "Tool loop exhausted max_iterations=%d without a final response",
            max_iterations,
        )
        raise IterationBudgetExceeded(max_iterations)

    return {"conversation": conversation, "iteration": next_iteration, "last_turn": None}


def budget_warning(iteration: int, max_iterations: int, expected_key: str) -> str:
    """Warning appended to tool results as the iteration budget runs down."""
    remaining = max_iterations - iteration - 1
    if iteration >= max_iterations - 2:
        return (
            f"STOP! You have only {remaining} tool calls remaining. DO NOT make any more "
            "tool calls. Output your final JSON response RIGHT NOW with whatever results "
            f'you have. The JSON must start with {{ and contain a "{expected_key}" array.'
        )
    if iteration >= int(max_iterations * 0.7):
        return (
            f"WARNING: {remaining} tool calls remaining. You MUST finish searching and "
            "output your final JSON response within the next 2-3 iterations."
        )
    return ""
