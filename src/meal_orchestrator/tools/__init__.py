"""Tooling layer for schema-validated execution."""

from meal_orchestrator.tools.dispatcher import ToolDispatcher
from meal_orchestrator.tools.registry import ToolSpec, build_registry, declarations, list_tools

__all__ = ["ToolDispatcher", "ToolSpec", "build_registry", "declarations", "list_tools"]
