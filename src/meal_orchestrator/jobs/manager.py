"""Job lifecycle: create, transition, expire and delete job records of one kind."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Callable
from uuid import uuid4

from meal_orchestrator.errors import InvalidTransition
from meal_orchestrator.storage.base import JobStore
from meal_orchestrator.storage.models import JobRecord, JobStatus, ProgressPhase, ProgressSnapshot

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_EXPIRY_S = 30 * 60


def utc_now() -> datetime:
    return datetime.now(UTC)


class JobManager:
    """Owns the status machine `pending -> running -> completed|failed` for one job kind.

    Illegal transitions on an existing job raise InvalidTransition. Mutating a job
    that no longer exists (deleted or expired) is a logged no-op returning None, so
    the execution of a job deleted mid-flight finishes quietly.
    """

    def __init__(
        self,
        kind: str,
        store: JobStore,
        *,
        expiry_s: float = DEFAULT_EXPIRY_S,
        clock: Clock = utc_now,
    ) -> None:
        self.kind = kind
        self.store = store
        self.expiry = timedelta(seconds=expiry_s)
        self.clock = clock

    def create(self) -> JobRecord:
        now = self.clock()
        job = JobRecord(
            id=uuid4().hex,
            kind=self.kind,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.store.create(job)
        logger.info("Job created kind=%s job_id=%s", self.kind, job.id)
        return job

    def get(self, job_id: str) -> JobRecord | None:
        job = self.store.get(job_id)
        if job is None or self._expired(job):
            return None
        return job

    def start(self, job_id: str) -> JobRecord | None:
        return self._transition(
            job_id,
            "start",
            allowed_from=(JobStatus.PENDING,),
            changes={"status": JobStatus.RUNNING},
        )

    def update_progress(self, job_id: str, snapshot: ProgressSnapshot) -> JobRecord | None:
        return self._transition(
            job_id,
            "update progress of",
            allowed_from=(JobStatus.RUNNING,),
            changes={"progress": snapshot},
        )

    def complete(self, job_id: str, result: dict[str, Any]) -> JobRecord | None:
        job = self._transition(
            job_id,
            "complete",
            allowed_from=(JobStatus.RUNNING,),
            changes={
                "status": JobStatus.COMPLETED,
                "result": result,
                "progress": ProgressSnapshot(
                    phase=ProgressPhase.COMPLETE, current=1, total=1, message="Complete"
                ),
            },
        )
        if job is not None:
            logger.info("Job completed kind=%s job_id=%s", self.kind, job_id)
        return job

    def fail(self, job_id: str, error: str) -> JobRecord | None:
        job = self._transition(
            job_id,
            "fail",
            allowed_from=(JobStatus.RUNNING,),
            changes={"status": JobStatus.FAILED, "error": error},
        )
        if job is not None:
            logger.warning("Job failed kind=%s job_id=%s error=%s", self.kind, job_id, error)
        return job

    def delete(self, job_id: str) -> bool:
        deleted = self.store.delete(job_id)
        logger.info("Job delete kind=%s job_id=%s deleted=%s", self.kind, job_id, deleted)
        return deleted

    def sweep(self) -> int:
        removed = self.store.sweep(self.clock() - self.expiry)
        if removed:
            logger.info("Expired jobs swept kind=%s removed=%d", self.kind, removed)
        return removed

    def _expired(self, job: JobRecord) -> bool:
        return self.clock() - job.created_at >= self.expiry

    def _transition(
        self,
        job_id: str,
        action: str,
        *,
        allowed_from: tuple[JobStatus, ...],
        changes: dict[str, Any],
    ) -> JobRecord | None:
        current = self.get(job_id)
        if current is None:
            logger.debug("Ignoring %s for missing job kind=%s job_id=%s", action, self.kind, job_id)
            return None
        if current.status not in allowed_from:
            raise InvalidTransition(
                f"Cannot {action} job {job_id} in status {current.status.value}"
            )

        updated = current.model_copy(update={**changes, "updated_at": self.clock()})
        if not self.store.update(updated):
            logger.debug("Job vanished during %s kind=%s job_id=%s", action, self.kind, job_id)
            return None
        return updated
