"""Storage interface for background job records."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from meal_orchestrator.storage.models import JobRecord


class JobStore(Protocol):
    def migrate(self) -> None: ...

    def create(self, job: JobRecord) -> JobRecord: ...

    def get(self, job_id: str) -> JobRecord | None: ...

    def update(self, job: JobRecord) -> bool: ...

    def delete(self, job_id: str) -> bool: ...

    def sweep(self, older_than: datetime) -> int: ...
