"""PostgreSQL-backed job store with automatic table migration."""

from __future__ import annotations

import json
import re
import threading
from datetime import datetime
from typing import Any

from meal_orchestrator.storage.models import JobRecord, JobStatus, ProgressSnapshot

_KIND_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


def table_name_for(kind: str) -> str:
    if not _KIND_PATTERN.match(kind):
        raise ValueError(f"Invalid job kind for table name: {kind!r}")
    return "jobs_" + kind.replace("-", "_")


class PostgresJobStore:
    """Persist one job kind in its own table so records survive restarts."""

    def __init__(self, database_url: str, kind: str) -> None:
        if not database_url:
            raise ValueError("MEAL_ORCHESTRATOR_DATABASE_URL is required")
        self.database_url = database_url
        self.kind = kind
        self.table = table_name_for(kind)
        self._lock = threading.Lock()
        self._psycopg, self._dict_row, self._json_wrapper = self._load_psycopg()

    def migrate(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    job_id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL,
                    status TEXT NOT NULL,
                    progress_json JSONB,
                    result_json JSONB,
                    error TEXT,
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table}_created_at
                ON {self.table}(created_at)
                """)
            conn.commit()

    def create(self, job: JobRecord) -> JobRecord:
        with self._lock, self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO {self.table} (
                    job_id,
                    kind,
                    status,
                    progress_json,
                    result_json,
                    error,
                    created_at,
                    updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    job.id,
                    job.kind,
                    job.status.value,
                    self._progress_payload(job),
                    self._json_wrapper(job.result) if job.result is not None else None,
                    job.error,
                    job.created_at,
                    job.updated_at,
                ),
            )
            conn.commit()
        return job

    def get(self, job_id: str) -> JobRecord | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {self.table} WHERE job_id = %s",
                (job_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_job(row)

    def update(self, job: JobRecord) -> bool:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE {self.table}
                SET status = %s,
                    progress_json = %s,
                    result_json = %s,
                    error = %s,
                    updated_at = %s
                WHERE job_id = %s
                """,
                (
                    job.status.value,
                    self._progress_payload(job),
                    self._json_wrapper(job.result) if job.result is not None else None,
                    job.error,
                    job.updated_at,
                    job.id,
                ),
            )
            conn.commit()
        return cursor.rowcount > 0

    def delete(self, job_id: str) -> bool:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {self.table} WHERE job_id = %s", (job_id,))
            conn.commit()
        return cursor.rowcount > 0

    def sweep(self, older_than: datetime) -> int:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM {self.table} WHERE created_at <= %s",
                (older_than,),
            )
            conn.commit()
        return max(cursor.rowcount, 0)

    def _progress_payload(self, job: JobRecord) -> Any:
        if job.progress is None:
            return None
        return self._json_wrapper(job.progress.model_dump(mode="json"))

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
            from psycopg.types.json import Json
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "PostgreSQL job store requires psycopg. "
                'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row, Json

    @staticmethod
    def _parse_json_optional(raw: Any) -> dict[str, Any] | None:
        if raw is None:
            return None
        parsed = json.loads(raw) if isinstance(raw, str) else raw
        if isinstance(parsed, dict):
            return parsed
        return None

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        if isinstance(raw, datetime):
            return raw
        if isinstance(raw, str):
            return datetime.fromisoformat(raw)
        raise TypeError(f"Unsupported datetime value: {type(raw)!r}")

    @classmethod
    def _row_to_job(cls, row: Any) -> JobRecord:
        progress = cls._parse_json_optional(row.get("progress_json"))
        return JobRecord(
            id=str(row["job_id"]),
            kind=str(row["kind"]),
            status=JobStatus(row["status"]),
            progress=ProgressSnapshot.model_validate(progress) if progress else None,
            result=cls._parse_json_optional(row.get("result_json")),
            error=row.get("error"),
            created_at=cls._parse_datetime(row["created_at"]),
            updated_at=cls._parse_datetime(row["updated_at"]),
        )
