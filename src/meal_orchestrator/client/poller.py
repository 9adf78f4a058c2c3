"""Poll a background job until it reaches a terminal outcome."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from meal_orchestrator.client.jobs_client import JobSnapshot
from meal_orchestrator.errors import JobsClientError
from meal_orchestrator.storage.models import JobStatus, ProgressSnapshot

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 2.0
DEFAULT_MAX_POLLS = 450


class JobsApi(Protocol):
    def get_job(self, kind: str, job_id: str) -> JobSnapshot | None: ...

    def delete_job(self, kind: str, job_id: str) -> bool: ...


class PollStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"

    @property
    def terminal(self) -> bool:
        """Whether the server-side job is finished (or gone) for good."""
        return self in (PollStatus.COMPLETED, PollStatus.FAILED, PollStatus.NOT_FOUND)


@dataclass(frozen=True)
class PollOutcome:
    status: PollStatus
    job_id: str
    result: dict[str, Any] | None = None
    error: str | None = None
    polls: int = 0


def poll_job(
    client: JobsApi,
    kind: str,
    job_id: str,
    *,
    cancel_token: threading.Event | None = None,
    interval_s: float = DEFAULT_INTERVAL_S,
    max_polls: int = DEFAULT_MAX_POLLS,
    on_progress: Callable[[ProgressSnapshot], None] | None = None,
) -> PollOutcome:
    """Poll `job_id` every `interval_s` seconds for at most `max_polls` reads.

    Cancellation is checked between waits and reported as an outcome, never raised.
    Completed and failed jobs are deleted on the server once consumed (best effort).
    Transport errors propagate as JobsClientError.
    """
    token = cancel_token or threading.Event()
    polls = 0

    while polls < max_polls:
        if token.is_set():
            logger.info("Polling cancelled kind=%s job_id=%s polls=%d", kind, job_id, polls)
            return PollOutcome(PollStatus.CANCELLED, job_id, polls=polls)

        snapshot = client.get_job(kind, job_id)
        polls += 1
        if snapshot is None:
            logger.warning("Job not found kind=%s job_id=%s", kind, job_id)
            return PollOutcome(PollStatus.NOT_FOUND, job_id, polls=polls)

        if snapshot.progress is not None and on_progress is not None:
            on_progress(snapshot.progress)

        if snapshot.status is JobStatus.COMPLETED:
            _cleanup(client, kind, job_id)
            if snapshot.result is None:
                return PollOutcome(
                    PollStatus.FAILED,
                    job_id,
                    error="Job completed but no result returned",
                    polls=polls,
                )
            return PollOutcome(PollStatus.COMPLETED, job_id, result=snapshot.result, polls=polls)

        if snapshot.status is JobStatus.FAILED:
            _cleanup(client, kind, job_id)
            return PollOutcome(
                PollStatus.FAILED,
                job_id,
                error=snapshot.error or "Job failed",
                polls=polls,
            )

        if polls < max_polls and token.wait(interval_s):
            logger.info("Polling cancelled kind=%s job_id=%s polls=%d", kind, job_id, polls)
            return PollOutcome(PollStatus.CANCELLED, job_id, polls=polls)

    logger.warning("Polling timed out kind=%s job_id=%s polls=%d", kind, job_id, polls)
    return PollOutcome(PollStatus.TIMED_OUT, job_id, polls=polls)


def _cleanup(client: JobsApi, kind: str, job_id: str) -> None:
    try:
        client.delete_job(kind, job_id)
    except JobsClientError as exc:
        logger.debug("Ignoring job cleanup failure kind=%s job_id=%s reason=%s", kind, job_id, exc)
