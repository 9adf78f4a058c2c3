"""Client helpers for submitting and polling background jobs."""

from meal_orchestrator.client.jobs_client import JobsClient, JobSnapshot
from meal_orchestrator.client.pending import PendingJob, PendingJobRegistry
from meal_orchestrator.client.poller import PollOutcome, PollStatus, poll_job

__all__ = [
    "JobSnapshot",
    "JobsClient",
    "PendingJob",
    "PendingJobRegistry",
    "PollOutcome",
    "PollStatus",
    "poll_job",
]
