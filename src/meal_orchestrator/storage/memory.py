"""In-memory job store; process-local and lost on restart."""

from __future__ import annotations

import threading
from datetime import datetime

from meal_orchestrator.storage.models import JobRecord


class InMemoryJobStore:
    """Thread-safe dict-backed store shared by the API thread and job workers."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def migrate(self) -> None:
        return None

    def create(self, job: JobRecord) -> JobRecord:
        with self._lock:
            if job.id in self._jobs:
                raise KeyError(f"Job {job.id} already exists")
            self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> JobRecord | None:
        with self._lock:
            return self._jobs.get(job_id)

    def update(self, job: JobRecord) -> bool:
        with self._lock:
            if job.id not in self._jobs:
                return False
            self._jobs[job.id] = job
            return True

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def sweep(self, older_than: datetime) -> int:
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items() if job.created_at <= older_than
            ]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
