from __future__ import annotations

import io
import json
import threading
from datetime import UTC, datetime
from urllib import error

import pytest

import meal_orchestrator.client.jobs_client as jobs_client_module
from meal_orchestrator.client.jobs_client import JobsClient, JobSnapshot
from meal_orchestrator.client.pending import PendingJob, PendingJobRegistry
from meal_orchestrator.client.poller import PollStatus, poll_job
from meal_orchestrator.errors import JobsClientError


def _snapshot(status: str, **fields) -> dict:
    snapshot = {"id": "job-1", "status": status, "progress": None, "result": None, "error": None}
    return {**snapshot, **fields}


RUNNING = _snapshot(
    "running", progress={"phase": "building", "current": 2, "total": 8, "message": None}
)
COMPLETED = _snapshot(
    "completed",
    progress={"phase": "complete", "current": 1, "total": 1, "message": "Complete"},
    result={"items": []},
)


class FakeJobsClient:
    def __init__(self, snapshots: list, *, delete_error: bool = False) -> None:
        self.snapshots = list(snapshots)
        self.delete_error = delete_error
        self.created: list[tuple[str, dict]] = []
        self.deleted: list[tuple[str, str]] = []

    def create_job(self, kind: str, payload: dict) -> str:
        self.created.append((kind, payload))
        return "job-1"

    def get_job(self, kind: str, job_id: str) -> JobSnapshot | None:
        item = self.snapshots.pop(0)
        if isinstance(item, BaseException):
            raise item
        return JobSnapshot.model_validate(item) if item is not None else None

    def delete_job(self, kind: str, job_id: str) -> bool:
        self.deleted.append((kind, job_id))
        if self.delete_error:
            raise JobsClientError("cleanup failed", status=500)
        return True


def test_poll_until_completed_cleans_up() -> None:
    client = FakeJobsClient([_snapshot("pending"), RUNNING, COMPLETED])
    progress = []

    outcome = poll_job(client, "generation", "job-1", interval_s=0, on_progress=progress.append)

    assert outcome.status is PollStatus.COMPLETED
    assert outcome.result == {"items": []}
    assert outcome.polls == 3
    assert [(item.phase.value, item.current) for item in progress] == [
        ("building", 2),
        ("complete", 1),
    ]
    assert client.deleted == [("generation", "job-1")]


def test_completed_without_result_is_a_failure() -> None:
    client = FakeJobsClient([_snapshot("completed")])

    outcome = poll_job(client, "generation", "job-1", interval_s=0)

    assert outcome.status is PollStatus.FAILED
    assert outcome.error == "Job completed but no result returned"


def test_failed_job_reports_server_error() -> None:
    client = FakeJobsClient([_snapshot("failed", error="Model gateway unreachable")])

    outcome = poll_job(client, "grocery-polish", "job-1", interval_s=0)

    assert outcome.status is PollStatus.FAILED
    assert outcome.error == "Model gateway unreachable"
    assert client.deleted == [("grocery-polish", "job-1")]


def test_missing_job_is_not_found() -> None:
    client = FakeJobsClient([None])

    outcome = poll_job(client, "generation", "job-1", interval_s=0)

    assert outcome.status is PollStatus.NOT_FOUND
    assert outcome.status.terminal is True
    assert client.deleted == []


def test_polling_gives_up_after_max_polls() -> None:
    client = FakeJobsClient([RUNNING, RUNNING, RUNNING, COMPLETED])

    outcome = poll_job(client, "generation", "job-1", interval_s=0, max_polls=3)

    assert outcome.status is PollStatus.TIMED_OUT
    assert outcome.status.terminal is False
    assert outcome.polls == 3
    assert len(client.snapshots) == 1


def test_cancelled_token_stops_before_polling() -> None:
    token = threading.Event()
    token.set()
    client = FakeJobsClient([])

    outcome = poll_job(client, "generation", "job-1", cancel_token=token)

    assert outcome.status is PollStatus.CANCELLED
    assert outcome.polls == 0


def test_cancellation_during_wait_is_an_outcome() -> None:
    token = threading.Event()
    client = FakeJobsClient([RUNNING, COMPLETED])

    outcome = poll_job(
        client,
        "generation",
        "job-1",
        cancel_token=token,
        interval_s=5,
        on_progress=lambda snapshot: token.set(),
    )

    assert outcome.status is PollStatus.CANCELLED
    assert outcome.polls == 1
    assert client.deleted == []


def test_cleanup_failure_does_not_change_outcome() -> None:
    client = FakeJobsClient([COMPLETED], delete_error=True)

    outcome = poll_job(client, "generation", "job-1", interval_s=0)

    assert outcome.status is PollStatus.COMPLETED


def test_transport_errors_propagate() -> None:
    client = FakeJobsClient([JobsClientError("connection refused")])

    with pytest.raises(JobsClientError):
        poll_job(client, "generation", "job-1", interval_s=0)


def test_pending_registry_forgets_finished_jobs(tmp_path) -> None:
    registry = PendingJobRegistry(tmp_path / "pending.json")
    client = FakeJobsClient([COMPLETED])

    outcome = registry.start(
        client, "generation", {"numMeals": 4}, related_id="plan-7", interval_s=0
    )

    assert outcome.status is PollStatus.COMPLETED
    assert client.created == [("generation", {"numMeals": 4})]
    assert registry.pending() == []


def test_pending_registry_resumes_after_timeout(tmp_path) -> None:
    path = tmp_path / "state" / "pending.json"
    client = FakeJobsClient([RUNNING])

    first = PendingJobRegistry(path).start(
        client, "grocery-polish", {"ingredients": []}, related_id="list-3", max_polls=1
    )
    assert first.status is PollStatus.TIMED_OUT

    reopened = PendingJobRegistry(path)
    saved = reopened.get("job-1")
    assert saved.job_type == "grocery-polish"
    assert saved.related_id == "list-3"

    client.snapshots.append(COMPLETED)
    resumed = reopened.resume(client, "job-1", interval_s=0)

    assert resumed.status is PollStatus.COMPLETED
    assert reopened.get("job-1") is None


def test_pending_registry_keeps_cancelled_jobs(tmp_path) -> None:
    registry = PendingJobRegistry(tmp_path / "pending.json")
    token = threading.Event()
    token.set()

    outcome = registry.start(FakeJobsClient([]), "categorization", {}, cancel_token=token)

    assert outcome.status is PollStatus.CANCELLED
    assert [record.job_id for record in registry.pending()] == ["job-1"]


def test_resume_unknown_job_returns_none(tmp_path) -> None:
    registry = PendingJobRegistry(tmp_path / "pending.json")

    assert registry.resume(FakeJobsClient([]), "missing") is None


def test_pending_filters_by_type_and_sorts_by_start(tmp_path) -> None:
    registry = PendingJobRegistry(tmp_path / "pending.json")
    registry.save(
        PendingJob(job_id="b", job_type="generation", started_at=datetime(2026, 1, 2, tzinfo=UTC))
    )
    registry.save(
        PendingJob(job_id="a", job_type="generation", started_at=datetime(2026, 1, 1, tzinfo=UTC))
    )
    registry.save(PendingJob(job_id="c", job_type="categorization"))

    assert [record.job_id for record in registry.pending("generation")] == ["a", "b"]
    assert len(registry.pending()) == 3
    assert registry.remove("c") is True
    assert registry.remove("c") is False


def test_malformed_pending_file_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "pending.json"
    path.write_text('{"not": "a list"}', encoding="utf-8")

    assert PendingJobRegistry(path).pending() == []


class FakeResponse:
    def __init__(self, body: str) -> None:
        self.body = body

    def read(self) -> bytes:
        return self.body.encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        return None


def _script_urlopen(monkeypatch, outcomes: list) -> list:
    seen = []

    def fake_urlopen(req, timeout=None):
        seen.append(req)
        outcome = outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeResponse(outcome)

    monkeypatch.setattr(jobs_client_module.request, "urlopen", fake_urlopen)
    return seen


def _http_error(code: int) -> error.HTTPError:
    return error.HTTPError(
        url="http://jobs.test", code=code, msg="error", hdrs=None, fp=io.BytesIO(b'{"detail": "x"}')
    )


def test_jobs_client_create_and_fetch(monkeypatch) -> None:
    seen = _script_urlopen(
        monkeypatch,
        ['{"jobId": "abc123"}', json.dumps(_snapshot("running")), '{"deleted": true}'],
    )
    client = JobsClient("http://jobs.test/")

    job_id = client.create_job("grocery-polish", {"ingredients": []})
    snapshot = client.get_job("grocery-polish", job_id)
    deleted = client.delete_job("grocery-polish", job_id)

    assert job_id == "abc123"
    assert snapshot.status.value == "running"
    assert deleted is True
    assert [(req.get_method(), req.full_url) for req in seen] == [
        ("POST", "http://jobs.test/jobs/grocery-polish"),
        ("GET", "http://jobs.test/jobs/grocery-polish/abc123"),
        ("DELETE", "http://jobs.test/jobs/grocery-polish/abc123"),
    ]
    assert json.loads(seen[0].data.decode("utf-8")) == {"ingredients": []}


def test_jobs_client_maps_404_to_none(monkeypatch) -> None:
    _script_urlopen(monkeypatch, [_http_error(404)])

    assert JobsClient("http://jobs.test").get_job("generation", "gone") is None


def test_jobs_client_raises_on_server_errors(monkeypatch) -> None:
    _script_urlopen(monkeypatch, [_http_error(500), error.URLError("refused")])
    client = JobsClient("http://jobs.test")

    with pytest.raises(JobsClientError) as exc_info:
        client.get_job("generation", "job-1")
    assert exc_info.value.status == 500

    with pytest.raises(JobsClientError, match="refused"):
        client.get_job("generation", "job-1")


def test_jobs_client_requires_job_id(monkeypatch) -> None:
    _script_urlopen(monkeypatch, ['{"ok": true}'])

    with pytest.raises(JobsClientError, match="missing jobId"):
        JobsClient("http://jobs.test").create_job("generation", {})
