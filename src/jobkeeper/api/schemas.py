from __future__ import annotations

from pydantic import BaseModel, Field

from jobkeeper.models import JobErrorInfo, TableReference, TableSchema


class ExportRequest(BaseModel):
    scope: str
    source: TableReference
    destinations: list[str] = Field(min_length=1)
    await_completion: bool = False


class ExportResponse(BaseModel):
    scope: str
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    scope: str
    job_id: str
    status: str
    terminal: bool
    error_result: JobErrorInfo | None = None


class TableSchemaResponse(BaseModel):
    reference: TableReference
    table_schema: TableSchema
    num_rows: int | None = None
