"""Schema-enforcing dispatch of model-requested tool calls."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

from pydantic import ValidationError

from meal_orchestrator.errors import ToolDispatchError
from meal_orchestrator.llm.models import ToolCall
from meal_orchestrator.tools.registry import ToolSpec, declarations

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """Execute registered tools; failures become `{"error", "tool"}` payloads."""

    def __init__(self, registry: dict[str, ToolSpec], *, max_workers: int = 4) -> None:
        self.registry = registry
        self.max_workers = max(1, max_workers)

    def declarations(self) -> list[dict[str, Any]]:
        return declarations(self.registry)

    def dispatch(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._dispatch_once(name, args)
        except ToolDispatchError as exc:
            logger.warning("Tool call failed tool=%s reason=%s", name, exc)
            return {"error": str(exc), "tool": name}

    def dispatch_all(self, calls: Sequence[ToolCall]) -> list[dict[str, Any]]:
        if len(calls) <= 1:
            return [self.dispatch(call.name, call.args) for call in calls]
        workers = min(self.max_workers, len(calls))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda call: self.dispatch(call.name, call.args), calls))

    def _dispatch_once(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        spec = self.registry.get(name)
        if spec is None:
            raise ToolDispatchError(f"Unknown tool: {name}")

        try:
            payload = spec.input_model.model_validate(args or {})
        except ValidationError as exc:
            raise ToolDispatchError(
                f"Invalid arguments for {name}: {_validation_summary(exc)}"
            ) from exc

        try:
            raw_output = spec.fn(payload)
            output = spec.output_model.model_validate(raw_output).model_dump(
                mode="json", by_alias=True
            )
        except Exception as exc:  # noqa: BLE001
            raise ToolDispatchError(f"Tool '{name}' failed: {exc}") from exc

        if isinstance(output, list):
            return {"results": output}
        return output


def _validation_summary(exc: ValidationError) -> str:
    problems = []
    for item in exc.errors()[:5]:
        location = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        problems.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(problems)
