"""Generative model gateway and conversation types."""

from meal_orchestrator.llm.gateway import GeminiGateway, ModelGateway, complete_text
from meal_orchestrator.llm.models import ModelTurn, Part, ToolCall, Turn, user_text

__all__ = [
    "GeminiGateway",
    "ModelGateway",
    "ModelTurn",
    "Part",
    "ToolCall",
    "Turn",
    "complete_text",
    "user_text",
]
