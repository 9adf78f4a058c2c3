"""Recover-json node: one structured-mode retry when the model answered in prose."""

from __future__ import annotations

import logging

from meal_orchestrator.graph.state import LoopState
from meal_orchestrator.llm.gateway import ModelGateway
from meal_orchestrator.llm.models import Part, Turn, user_text

logger = logging.getLogger(__name__)


def run(state: LoopState, *, gateway: ModelGateway) -> LoopState:
    turn = state.get("last_turn")
    text = turn.text if turn is not None else ""
    expected_key = state.get("expected_key", "meals")
    logger.info("Tool loop response is not JSON length=%d; requesting JSON-only answer", len(text))

    conversation = list(state.get("conversation", []))
    conversation.append(Turn(role="model", parts=(Part.from_text(text),)))
    conversation.append(user_text(recovery_prompt(expected_key)))

    recovery = gateway.complete(state.get("system_instruction", ""), conversation, None)
    logger.info("Tool loop recovery response length=%d", len(recovery.text))
    return {
        "conversation": conversation,
        "final_text": recovery.text,
        "recovered": True,
    }


def recovery_prompt(expected_key: str) -> str:
    return (
        "Your response above is not in the required JSON format. You MUST output a valid "
        f'JSON object with a "{expected_key}" array containing the results you have found. '
        "Output ONLY the JSON, no explanation. Start your response with { and end with }. "
        "If you haven't found enough results, include whatever you have."
    )
