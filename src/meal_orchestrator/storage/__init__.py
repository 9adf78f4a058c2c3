"""Job storage backends and models."""

from meal_orchestrator.storage.base import JobStore
from meal_orchestrator.storage.memory import InMemoryJobStore
from meal_orchestrator.storage.models import JobRecord, JobStatus, ProgressPhase, ProgressSnapshot
from meal_orchestrator.storage.postgres import PostgresJobStore

__all__ = [
    "InMemoryJobStore",
    "JobRecord",
    "JobStatus",
    "JobStore",
    "PostgresJobStore",
    "ProgressPhase",
    "ProgressSnapshot",
]
