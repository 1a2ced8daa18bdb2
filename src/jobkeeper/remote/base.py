from __future__ import annotations

from typing import Protocol

from jobkeeper.models import JobDescription, JobHandle, TableInfo, TableReference


class RemoteJobService(Protocol):
    """Client of the remote query service.

    Implementations raise ``RemoteCallError`` (or transport errors) on failure
    and never retry on their own behalf.
    """

    def create_job(self, scope: str, job: JobDescription) -> JobHandle: ...

    def get_job(self, scope: str, job_id: str) -> JobHandle: ...

    def get_table(self, ref: TableReference) -> TableInfo: ...
