from __future__ import annotations

import pytest

from meal_orchestrator.errors import InvalidTransition
from meal_orchestrator.jobs.kinds import GENERATION, GROCERY_POLISH, JOB_KINDS
from meal_orchestrator.jobs.manager import JobManager
from meal_orchestrator.jobs.registry import JobRegistry
from meal_orchestrator.storage.memory import InMemoryJobStore
from meal_orchestrator.storage.models import JobStatus, ProgressPhase, ProgressSnapshot


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def manager(store, clock) -> JobManager:
    return JobManager(GENERATION, store, expiry_s=1800, clock=clock)


def _progress(current: int, total: int) -> ProgressSnapshot:
    return ProgressSnapshot(phase=ProgressPhase.BUILDING, current=current, total=total)


def test_job_lifecycle_to_completion(manager, clock) -> None:
    job = manager.create()
    assert job.status is JobStatus.PENDING
    assert len(job.id) == 32
    assert manager.get(job.id).created_at == clock.now

    clock.advance(1)
    running = manager.start(job.id)
    assert running.status is JobStatus.RUNNING
    assert running.updated_at > running.created_at

    manager.update_progress(job.id, _progress(2, 8))
    assert manager.get(job.id).progress.current == 2

    done = manager.complete(job.id, {"recipes": []})
    assert done.status is JobStatus.COMPLETED
    assert manager.get(job.id).status_view() == {
        "id": job.id,
        "status": "completed",
        "progress": {"phase": "complete", "current": 1, "total": 1, "message": "Complete"},
        "result": {"recipes": []},
        "error": None,
    }


def test_failed_job_keeps_last_progress(manager) -> None:
    job = manager.create()
    manager.start(job.id)
    manager.update_progress(job.id, _progress(1, 4))

    failed = manager.fail(job.id, "Model gateway unreachable")

    assert failed.status is JobStatus.FAILED
    view = manager.get(job.id).status_view()
    assert view["error"] == "Model gateway unreachable"
    assert view["result"] is None
    assert view["progress"]["current"] == 1


def test_illegal_transitions_raise(manager) -> None:
    job = manager.create()
    with pytest.raises(InvalidTransition):
        manager.complete(job.id, {})
    with pytest.raises(InvalidTransition):
        manager.update_progress(job.id, _progress(0, 1))
    with pytest.raises(InvalidTransition):
        manager.fail(job.id, "too early")

    manager.start(job.id)
    with pytest.raises(InvalidTransition, match="Cannot start job"):
        manager.start(job.id)

    manager.complete(job.id, {})
    with pytest.raises(InvalidTransition):
        manager.fail(job.id, "too late")
    with pytest.raises(InvalidTransition):
        manager.update_progress(job.id, _progress(1, 1))


def test_jobs_expire_thirty_minutes_after_creation(manager, store, clock) -> None:
    job = manager.create()
    manager.start(job.id)

    clock.advance(1799)
    assert manager.get(job.id) is not None

    clock.advance(1)
    assert manager.get(job.id) is None
    assert manager.complete(job.id, {"late": True}) is None

    assert manager.sweep() == 1
    assert len(store) == 0


def test_mutating_a_missing_job_is_a_no_op(manager) -> None:
    assert manager.start("missing") is None
    assert manager.update_progress("missing", _progress(0, 1)) is None
    assert manager.complete("missing", {}) is None
    assert manager.fail("missing", "gone") is None


def test_delete_is_idempotent(manager) -> None:
    job = manager.create()
    manager.start(job.id)

    assert manager.delete(job.id) is True
    assert manager.delete(job.id) is False
    assert manager.get(job.id) is None
    assert manager.complete(job.id, {}) is None


def test_registry_keeps_kinds_isolated(clock) -> None:
    registry = JobRegistry.build(
        JOB_KINDS, lambda kind: InMemoryJobStore(), expiry_s=1800, clock=clock
    )

    job = registry.create(GENERATION)

    assert registry.kinds() == ["categorization", "generation", "grocery-polish"]
    assert registry.get(GENERATION).get(job.id) is not None
    assert registry.get(GROCERY_POLISH).get(job.id) is None
    with pytest.raises(KeyError):
        registry.create("laundry")


def test_registry_create_sweeps_expired_jobs_of_every_kind(clock) -> None:
    stores: dict[str, InMemoryJobStore] = {}

    def _factory(kind: str) -> InMemoryJobStore:
        stores[kind] = InMemoryJobStore()
        return stores[kind]

    registry = JobRegistry.build(JOB_KINDS, _factory, expiry_s=1800, clock=clock)
    registry.create(GROCERY_POLISH)
    registry.create(GENERATION)

    clock.advance(1800)
    registry.create(GENERATION)

    assert len(stores[GROCERY_POLISH]) == 0
    assert len(stores[GENERATION]) == 1


def test_registry_rejects_duplicate_kinds(store, clock) -> None:
    registry = JobRegistry()
    registry.register(JobManager(GENERATION, store, clock=clock))

    with pytest.raises(ValueError):
        registry.register(JobManager(GENERATION, InMemoryJobStore(), clock=clock))


def test_memory_store_contract(manager, store, clock) -> None:
    job = manager.create()

    with pytest.raises(KeyError):
        store.create(job)
    assert store.update(job.model_copy(update={"id": "other"})) is False
    assert store.sweep(clock.now.replace(year=2025)) == 0
    assert store.sweep(clock.now) == 1
    assert store.get(job.id) is None
