from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"


TERMINAL_STATUSES = {JobStatus.DONE, JobStatus.ERROR}


class JobType(str, Enum):
    EXTRACT = "extract"


class JobIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    scope: str
    job_id: str

    def __str__(self) -> str:
        return f"{self.scope}:{self.job_id}"


class TableReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: str
    dataset_id: str
    table_id: str

    def __str__(self) -> str:
        return f"{self.project_id}:{self.dataset_id}.{self.table_id}"

    @classmethod
    def parse(cls, text: str) -> "TableReference":
        """Parses ``project:dataset.table`` into a reference."""
        project, sep, rest = text.partition(":")
        dataset, dot, table = rest.partition(".")
        if not sep or not dot or not project or not dataset or not table:
            raise ValueError(f"table reference must look like 'project:dataset.table', got '{text}'")
        return cls(project_id=project, dataset_id=dataset, table_id=table)


class ExtractConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_table: TableReference
    destination_uris: tuple[str, ...]
    destination_format: str = "NEWLINE_DELIMITED_JSON"

    @model_validator(mode="after")
    def validate_destinations(self) -> "ExtractConfiguration":
        if not self.destination_uris:
            raise ValueError("destination_uris must not be empty")
        return self


class JobConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_type: JobType
    extract: ExtractConfiguration | None = None

    @model_validator(mode="after")
    def validate_payload(self) -> "JobConfiguration":
        if self.job_type == JobType.EXTRACT and self.extract is None:
            raise ValueError("extract jobs require an extract configuration")
        return self


class JobDescription(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: JobIdentity
    configuration: JobConfiguration


class JobErrorInfo(BaseModel):
    reason: str
    message: str = ""
    location: str | None = None


class JobHandle(BaseModel):
    """Remote record of a submitted job, as of the fetch that produced it."""

    model_config = ConfigDict(frozen=True)

    identity: JobIdentity
    status: JobStatus = JobStatus.PENDING
    configuration: JobConfiguration | None = None
    error_result: JobErrorInfo | None = None
    statistics: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TableField(BaseModel):
    name: str
    type: str
    mode: str = "NULLABLE"
    fields: list["TableField"] = Field(default_factory=list)


class TableSchema(BaseModel):
    fields: list[TableField] = Field(default_factory=list)


class TableInfo(BaseModel):
    reference: TableReference
    table_schema: TableSchema = Field(default_factory=TableSchema, alias="schema")
    num_rows: int | None = None
    description: str | None = None

    model_config = ConfigDict(populate_by_name=True)
