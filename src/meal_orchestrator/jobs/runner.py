"""Runs job pipelines in the background and records their outcome."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor

from pydantic import BaseModel

from meal_orchestrator.jobs.kinds import JobKind
from meal_orchestrator.jobs.manager import JobManager
from meal_orchestrator.jobs.registry import JobRegistry
from meal_orchestrator.storage.models import JobRecord, ProgressSnapshot

logger = logging.getLogger(__name__)


class JobRunner:
    """Schedule one pipeline execution per job on a shared worker pool."""

    def __init__(
        self,
        registry: JobRegistry,
        kinds: dict[str, JobKind],
        *,
        max_workers: int = 4,
        executor: Executor | None = None,
    ) -> None:
        self.registry = registry
        self.kinds = kinds
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="meal-job"
        )

    def submit(self, kind: str, payload: BaseModel) -> JobRecord:
        if kind not in self.kinds:
            raise KeyError(f"Unknown job kind: {kind}")
        job = self.registry.create(kind)
        self._executor.submit(self.execute, kind, job.id, payload)
        return job

    def execute(self, kind: str, job_id: str, payload: BaseModel) -> None:
        manager = self.registry.get(kind)
        job_kind = self.kinds.get(kind)
        if manager is None or job_kind is None:
            raise KeyError(f"Unknown job kind: {kind}")

        if manager.start(job_id) is None:
            logger.info("Job gone before start kind=%s job_id=%s", kind, job_id)
            return

        def _on_progress(snapshot: ProgressSnapshot) -> None:
            manager.update_progress(job_id, snapshot)

        try:
            result = job_kind.handler(payload, _on_progress)
            manager.complete(job_id, result.to_wire())
        except Exception as exc:  # noqa: BLE001
            logger.exception("Job execution failed kind=%s job_id=%s", kind, job_id)
            self._record_failure(manager, job_id, str(exc) or exc.__class__.__name__)

    @staticmethod
    def _record_failure(manager: JobManager, job_id: str, error: str) -> None:
        try:
            manager.fail(job_id, error)
        except Exception:  # noqa: BLE001
            logger.exception("Could not record failure kind=%s job_id=%s", manager.kind, job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
