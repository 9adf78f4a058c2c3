"""Background job lifecycle and execution."""

from meal_orchestrator.jobs.kinds import (
    CATEGORIZATION,
    GENERATION,
    GROCERY_POLISH,
    JOB_KINDS,
    JobKind,
    build_job_kinds,
)
from meal_orchestrator.jobs.manager import JobManager
from meal_orchestrator.jobs.registry import JobRegistry
from meal_orchestrator.jobs.runner import JobRunner

__all__ = [
    "CATEGORIZATION",
    "GENERATION",
    "GROCERY_POLISH",
    "JOB_KINDS",
    "JobKind",
    "JobManager",
    "JobRegistry",
    "JobRunner",
    "build_job_kinds",
]
