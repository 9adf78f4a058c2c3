"""Typed state contract for the tool-calling LangGraph workflow."""

from typing import TypedDict

from meal_orchestrator.llm.models import ModelTurn, Turn, user_text


class LoopState(TypedDict, total=False):
    system_instruction: str
    conversation: list[Turn]
    expected_key: str
    max_iterations: int
    iteration: int
    model_calls: int
    last_turn: ModelTurn | None
    final_text: str | None
    recovered: bool


def initial_state(
    system_instruction: str,
    user_prompt: str,
    *,
    max_iterations: int,
    expected_key: str = "meals",
) -> LoopState:
    return {
        "system_instruction": system_instruction,
        "conversation": [user_text(user_prompt)],
        "expected_key": expected_key,
        "max_iterations": max_iterations,
        "iteration": 0,
        "model_calls": 0,
        "last_turn": None,
        "final_text": None,
        "recovered": False,
    }
