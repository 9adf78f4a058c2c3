"""HTTP client for the background jobs API."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, parse, request

from pydantic import BaseModel, ConfigDict

from meal_orchestrator.errors import JobsClientError
from meal_orchestrator.storage.models import JobStatus, ProgressSnapshot

logger = logging.getLogger(__name__)


class JobSnapshot(BaseModel):
    """Status view of a job as returned by `GET /jobs/{kind}/{id}`."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: JobStatus
    progress: ProgressSnapshot | None = None
    result: dict[str, Any] | None = None
    error: str | None = None


class JobsClient:
    def __init__(self, base_url: str, *, timeout_s: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def create_job(self, kind: str, payload: dict[str, Any]) -> str:
        body = self._request("POST", self._path(kind), payload)
        job_id = body.get("jobId") if body else None
        if not isinstance(job_id, str) or not job_id:
            raise JobsClientError("Job creation response is missing jobId")
        logger.info("Job submitted kind=%s job_id=%s", kind, job_id)
        return job_id

    def get_job(self, kind: str, job_id: str) -> JobSnapshot | None:
        body = self._request("GET", self._path(kind, job_id))
        if body is None:
            return None
        return JobSnapshot.model_validate(body)

    def delete_job(self, kind: str, job_id: str) -> bool:
        body = self._request("DELETE", self._path(kind, job_id))
        return bool(body and body.get("deleted"))

    def _path(self, kind: str, job_id: str | None = None) -> str:
        path = f"/jobs/{parse.quote(kind)}"
        if job_id is not None:
            path += f"/{parse.quote(job_id)}"
        return path

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Send one request; a 404 answer returns None."""
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = request.Request(
            url=f"{self.base_url}{path}",
            data=data,
            method=method,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                raw = response.read().decode("utf-8")
        except error.HTTPError as exc:
            if exc.code == 404:
                return None
            message = exc.read().decode("utf-8", errors="replace")
            raise JobsClientError(
                f"{method} {path} failed with status {exc.code}: {message[:400]}",
                status=exc.code,
            ) from exc
        except error.URLError as exc:
            raise JobsClientError(f"{method} {path} failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise JobsClientError(f"{method} {path} timed out after {self.timeout_s:.1f}s") from exc

        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise JobsClientError(f"{method} {path} returned non-JSON response") from exc
        if not isinstance(parsed, dict):
            raise JobsClientError(f"{method} {path} response must be a JSON object")
        return parsed
