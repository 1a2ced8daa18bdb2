from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

from jobkeeper.errors import RemoteCallError
from jobkeeper.models import (
    JobDescription,
    JobErrorInfo,
    JobHandle,
    JobStatus,
    TableInfo,
    TableReference,
)

DEFAULT_STATUS_SEQUENCE = [JobStatus.PENDING, JobStatus.RUNNING, JobStatus.DONE]


@dataclass
class _StoredJob:
    description: JobDescription
    fetches: int = 0


class InMemoryRemoteJobService:
    """Thread-safe stand-in for the remote service.

    Every ``get_job`` advances the job one step along ``status_sequence`` and
    then stays on the last entry. ``(scope, job_id)`` is the dedup key, and a
    second create for the same key fails with a 409 ``duplicate``.
    """

    def __init__(
        self,
        *,
        status_sequence: list[JobStatus] | None = None,
        error_result: JobErrorInfo | None = None,
    ) -> None:
        self.status_sequence = list(status_sequence or DEFAULT_STATUS_SEQUENCE)
        if not self.status_sequence:
            raise ValueError("status_sequence must not be empty")
        self.error_result = error_result or JobErrorInfo(reason="internalError", message="job failed")
        self.create_calls = 0
        self.accepted_creates = 0
        self.get_calls = 0
        self._lock = threading.Lock()
        self._jobs: dict[tuple[str, str], _StoredJob] = {}
        self._tables: dict[TableReference, TableInfo] = {}
        self._create_failures: deque[BaseException] = deque()
        self._get_failures: deque[BaseException] = deque()

    def fail_next_create(self, error: BaseException) -> None:
        with self._lock:
            self._create_failures.append(error)

    def fail_next_get(self, error: BaseException) -> None:
        with self._lock:
            self._get_failures.append(error)

    def add_table(self, table: TableInfo) -> None:
        with self._lock:
            self._tables[table.reference] = table

    def create_job(self, scope: str, job: JobDescription) -> JobHandle:
        with self._lock:
            self.create_calls += 1
            if self._create_failures:
                raise self._create_failures.popleft()
            key = (scope, job.identity.job_id)
            if key in self._jobs:
                raise RemoteCallError(
                    f"Already Exists: Job {scope}:{job.identity.job_id}",
                    status_code=409,
                    reason="duplicate",
                )
            self._jobs[key] = _StoredJob(description=job)
            self.accepted_creates += 1
            return JobHandle(
                identity=job.identity,
                status=JobStatus.PENDING,
                configuration=job.configuration,
            )

    def get_job(self, scope: str, job_id: str) -> JobHandle:
        with self._lock:
            self.get_calls += 1
            if self._get_failures:
                raise self._get_failures.popleft()
            stored = self._jobs.get((scope, job_id))
            if stored is None:
                raise RemoteCallError(
                    f"Not found: Job {scope}:{job_id}",
                    status_code=404,
                    reason="notFound",
                )
            status = self.status_sequence[min(stored.fetches, len(self.status_sequence) - 1)]
            stored.fetches += 1
            return JobHandle(
                identity=stored.description.identity,
                status=status,
                configuration=stored.description.configuration,
                error_result=self.error_result if status == JobStatus.ERROR else None,
            )

    def get_table(self, ref: TableReference) -> TableInfo:
        with self._lock:
            table = self._tables.get(ref)
        if table is None:
            raise RemoteCallError(f"Not found: Table {ref}", status_code=404, reason="notFound")
        return table

    def job_count(self) -> int:
        with self._lock:
            return len(self._jobs)
