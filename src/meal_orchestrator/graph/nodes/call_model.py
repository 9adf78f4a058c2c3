"""Call-model node: one gateway completion with tool declarations attached."""

from __future__ import annotations

import json
import logging
from typing import Any

from meal_orchestrator.graph.state import LoopState
from meal_orchestrator.llm.gateway import ModelGateway

logger = logging.getLogger(__name__)


def run(state: LoopState, *, gateway: ModelGateway, tools: list[dict[str, Any]]) -> LoopState:
    iteration = int(state.get("iteration", 0))
    max_iterations = int(state.get("max_iterations", 1))
    turn = gateway.complete(
        state.get("system_instruction", ""),
        state.get("conversation", []),
        tools,
    )

    logger.info(
        "Tool loop iteration=%d/%d function_calls=%d",
        iteration + 1,
        max_iterations,
        len(turn.tool_calls),
    )
    for call in turn.tool_calls:
        args_text = json.dumps(call.args)
        logger.info(
            "  -> %s(%s%s)",
            call.name,
            args_text[:80],
            "..." if len(args_text) > 80 else "",
        )

    update: LoopState = {
        "last_turn": turn,
        "model_calls": int(state.get("model_calls", 0)) + 1,
    }
    if not turn.wants_tools and looks_like_json(turn.text):
        logger.info("Tool loop got final text length=%d", len(turn.text))
        update["final_text"] = turn.text
    return update


def looks_like_json(text: str) -> bool:
    return "{" in text and '"' in text
