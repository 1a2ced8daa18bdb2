from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from jobkeeper.errors import RemoteCallError
from jobkeeper.models import JobDescription, JobHandle, TableInfo, TableReference


class HttpRemoteJobService:
    """JSON-over-HTTP client for a remote job service."""

    def __init__(
        self,
        base_url: str,
        *,
        headers: dict[str, str] | None = None,
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.request_timeout_seconds = request_timeout_seconds
        self.transport = transport

    def create_job(self, scope: str, job: JobDescription) -> JobHandle:
        with self._client() as client:
            response = client.post(
                f"/projects/{_segment(scope)}/jobs",
                json=job.model_dump(mode="json"),
            )
        _raise_for_error(response, operation="create job")
        return JobHandle.model_validate(_json_object(response, operation="create job"))

    def get_job(self, scope: str, job_id: str) -> JobHandle:
        with self._client() as client:
            response = client.get(f"/projects/{_segment(scope)}/jobs/{_segment(job_id)}")
        _raise_for_error(response, operation="get job")
        return JobHandle.model_validate(_json_object(response, operation="get job"))

    def get_table(self, ref: TableReference) -> TableInfo:
        with self._client() as client:
            response = client.get(
                f"/projects/{_segment(ref.project_id)}/datasets/{_segment(ref.dataset_id)}"
                f"/tables/{_segment(ref.table_id)}"
            )
        _raise_for_error(response, operation="get table")
        payload = _json_object(response, operation="get table")
        payload.setdefault("reference", ref.model_dump())
        return TableInfo.model_validate(payload)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers=self.headers,
            timeout=httpx.Timeout(self.request_timeout_seconds),
            transport=self.transport,
        )


def _segment(value: str) -> str:
    return quote(value, safe="")


def _raise_for_error(response: httpx.Response, *, operation: str) -> None:
    if response.status_code < 400:
        return
    reason, message = _parse_error_payload(response)
    raise RemoteCallError(
        f"{operation} failed: HTTP {response.status_code} ({message})",
        status_code=response.status_code,
        reason=reason,
    )


def _json_object(response: httpx.Response, *, operation: str) -> dict[str, Any]:
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        raise RemoteCallError(
            f"{operation} failed: expected a JSON object, got {response.text[:300]!r}",
            status_code=response.status_code,
        )
    return payload


def _parse_error_payload(response: httpx.Response) -> tuple[str | None, str]:
    try:
        payload: Any = response.json()
    except ValueError:
        return None, response.text[:300]

    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return None, response.text[:300]

    reason: str | None = None
    details = error.get("errors")
    if isinstance(details, list):
        for item in details:
            if isinstance(item, dict) and isinstance(item.get("reason"), str):
                reason = item["reason"]
                break
    message = error.get("message")
    return reason, message if isinstance(message, str) else response.text[:300]
