"""Progress reporting hook passed from the job runner into pipelines."""

from __future__ import annotations

from typing import Callable

from meal_orchestrator.storage.models import ProgressPhase, ProgressSnapshot

ProgressCallback = Callable[[ProgressSnapshot], None]


def report(
    on_progress: ProgressCallback | None,
    phase: ProgressPhase,
    current: int,
    total: int,
    message: str | None = None,
) -> None:
    if on_progress is None:
        return
    on_progress(
        ProgressSnapshot(
            phase=phase,
            current=max(0, current),
            total=max(0, total),
            message=message,
        )
    )
