"""Per-kind job managers, each with its own store and identity space."""

from __future__ import annotations

from typing import Callable, Iterable

from meal_orchestrator.jobs.manager import Clock, JobManager, utc_now
from meal_orchestrator.storage.base import JobStore
from meal_orchestrator.storage.models import JobRecord


class JobRegistry:
    def __init__(self) -> None:
        self._managers: dict[str, JobManager] = {}

    @classmethod
    def build(
        cls,
        kinds: Iterable[str],
        store_factory: Callable[[str], JobStore],
        *,
        expiry_s: float,
        clock: Clock = utc_now,
    ) -> JobRegistry:
        registry = cls()
        for kind in kinds:
            store = store_factory(kind)
            store.migrate()
            registry.register(JobManager(kind, store, expiry_s=expiry_s, clock=clock))
        return registry

    def register(self, manager: JobManager) -> None:
        if manager.kind in self._managers:
            raise ValueError(f"Job kind already registered: {manager.kind}")
        self._managers[manager.kind] = manager

    def get(self, kind: str) -> JobManager | None:
        return self._managers.get(kind)

    def kinds(self) -> list[str]:
        return sorted(self._managers)

    def create(self, kind: str) -> JobRecord:
        """Create a job of `kind` after sweeping expired jobs of every kind."""
        manager = self._managers.get(kind)
        if manager is None:
            raise KeyError(f"Unknown job kind: {kind}")
        self.sweep_all()
        return manager.create()

    def sweep_all(self) -> int:
        return sum(manager.sweep() for manager in self._managers.values())
