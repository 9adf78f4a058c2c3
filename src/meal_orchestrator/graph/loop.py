"""Iterative tool-augmented conversation with the model."""

from __future__ import annotations

import logging

from meal_orchestrator.graph.state import initial_state
from meal_orchestrator.graph.workflow import build_graph, recursion_limit_for
from meal_orchestrator.llm.gateway import ModelGateway
from meal_orchestrator.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


class ToolLoop:
    """Drive the model until it produces final text or the budget runs out.

    The model is called at most `max_iterations` times, plus one structured-mode
    recovery call when its final answer does not look like JSON. Gateway errors
    propagate unchanged; exhausting the budget raises IterationBudgetExceeded.
    """

    def __init__(self, *, gateway: ModelGateway, dispatcher: ToolDispatcher) -> None:
        self.gateway = gateway
        self.dispatcher = dispatcher
        self._workflow = build_graph(gateway=gateway, dispatcher=dispatcher)

    def run(
        self,
        system_instruction: str,
        user_prompt: str,
        max_iterations: int,
        expected_key: str = "meals",
    ) -> str:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        state = initial_state(
            system_instruction,
            user_prompt,
            max_iterations=max_iterations,
            expected_key=expected_key,
        )
        result = self._workflow.invoke(
            state,
            config={"recursion_limit": recursion_limit_for(max_iterations)},
        )
        final_text = result.get("final_text") or ""
        logger.info(
            "Tool loop finished iterations=%d model_calls=%d recovered=%s",
            result.get("iteration", 0),
            result.get("model_calls", 0),
            result.get("recovered", False),
        )
        return final_text
