"""Client-side record of in-flight jobs so polling can resume after a restart."""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from meal_orchestrator.client.jobs_client import JobsClient
from meal_orchestrator.client.poller import PollOutcome, poll_job

logger = logging.getLogger(__name__)


class PendingJob(BaseModel):
    job_id: str
    job_type: str
    related_id: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PendingJobRegistry:
    """JSON-file backed set of jobs the client has submitted but not yet consumed."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def save(self, record: PendingJob) -> None:
        with self._lock:
            records = self._load()
            records[record.job_id] = record
            self._write(records)

    def get(self, job_id: str) -> PendingJob | None:
        with self._lock:
            return self._load().get(job_id)

    def remove(self, job_id: str) -> bool:
        with self._lock:
            records = self._load()
            removed = records.pop(job_id, None) is not None
            if removed:
                self._write(records)
        return removed

    def pending(self, job_type: str | None = None) -> list[PendingJob]:
        with self._lock:
            records = list(self._load().values())
        if job_type is not None:
            records = [record for record in records if record.job_type == job_type]
        return sorted(records, key=lambda record: record.started_at)

    def start(
        self,
        client: JobsClient,
        kind: str,
        payload: dict[str, Any],
        *,
        related_id: str | None = None,
        **poll_options: Any,
    ) -> PollOutcome:
        """Submit a job, remember it, then poll it to an outcome."""
        job_id = client.create_job(kind, payload)
        record = PendingJob(job_id=job_id, job_type=kind, related_id=related_id)
        self.save(record)
        return self._poll(client, record, **poll_options)

    def resume(self, client: JobsClient, job_id: str, **poll_options: Any) -> PollOutcome | None:
        """Re-enter polling for a saved job instead of submitting a new one."""
        record = self.get(job_id)
        if record is None:
            return None
        logger.info("Resuming pending job kind=%s job_id=%s", record.job_type, job_id)
        return self._poll(client, record, **poll_options)

    def _poll(self, client: JobsClient, record: PendingJob, **poll_options: Any) -> PollOutcome:
        outcome = poll_job(client, record.job_type, record.job_id, **poll_options)
        if outcome.status.terminal:
            self.remove(record.job_id)
        return outcome

    def _load(self) -> dict[str, PendingJob]:
        if not self.path.exists():
            return {}
        raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed pending job file path=%s", self.path)
            return {}
        records = [PendingJob.model_validate(item) for item in raw if isinstance(item, dict)]
        return {record.job_id: record for record in records}

    def _write(self, records: dict[str, PendingJob]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps([record.model_dump(mode="json") for record in records.values()], indent=2),
            encoding="utf-8",
        )
        os.replace(tmp_path, self.path)
