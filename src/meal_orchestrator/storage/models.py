"""Job records shared by the API, the runner and persistence backends."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class ProgressPhase(str, Enum):
    PLANNING = "planning"
    BUILDING = "building"
    POLISHING = "polishing"
    MERGING = "merging"
    CATEGORIZING = "categorizing"
    COMPLETE = "complete"


class ProgressSnapshot(BaseModel):
    """Latest progress of a running job; replaced wholesale on every update."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    phase: ProgressPhase
    current: int = Field(ge=0)
    total: int = Field(ge=0)
    message: str | None = None


class JobRecord(BaseModel):
    """Persisted job record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    kind: str
    status: JobStatus = JobStatus.PENDING
    progress: ProgressSnapshot | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime

    def status_view(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": (
                self.progress.model_dump(mode="json", by_alias=True) if self.progress else None
            ),
            "result": self.result,
            "error": self.error,
        }
