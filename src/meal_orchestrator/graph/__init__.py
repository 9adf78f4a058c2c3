"""Tool-calling workflow built on LangGraph."""

from meal_orchestrator.graph.loop import ToolLoop
from meal_orchestrator.graph.workflow import build_graph

__all__ = ["ToolLoop", "build_graph"]
