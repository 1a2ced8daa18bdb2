import re
import threading
from pathlib import Path

import pytest

from jobkeeper.errors import (
    ErrorKind,
    InvalidArgumentError,
    JobCancelledError,
    JobFailedError,
    RemoteCallError,
    RemoteServiceError,
)
from jobkeeper.export import ExportOrchestrator
from jobkeeper.models import JobErrorInfo, JobStatus, JobType, TableReference
from jobkeeper.references import JobReferenceGenerator
from jobkeeper.remote.in_memory import InMemoryRemoteJobService
from jobkeeper.runtime.audit import JsonlAuditLogger
from jobkeeper.settings import CoordinatorConfig, ExportSettings, IdentityRules


def test_export_awaits_completion(table_x: TableReference, fast_config: CoordinatorConfig) -> None:
    service = InMemoryRemoteJobService(status_sequence=[JobStatus.PENDING, JobStatus.DONE])
    orchestrator = ExportOrchestrator(service, fast_config)

    handle = orchestrator.export_to_storage(
        "proj1", table_x, ["store://bucket/out-*.json"], True
    )

    assert handle.status == JobStatus.DONE
    assert handle.identity.scope == "proj1"
    assert re.fullmatch(r"direct-export-[0-9a-f-]{36}", handle.identity.job_id)
    assert service.create_calls == 1
    assert service.get_calls == 2


def test_export_without_await_returns_after_submission(
    table_x: TableReference, fast_config: CoordinatorConfig
) -> None:
    service = InMemoryRemoteJobService()
    orchestrator = ExportOrchestrator(service, fast_config)

    handle = orchestrator.export_to_storage(
        "proj1", table_x, ["store://bucket/a-*.json", "store://bucket/b-*.json"], False
    )

    assert handle.status == JobStatus.PENDING
    assert service.create_calls == 1
    assert service.get_calls == 0
    extract = handle.configuration.extract
    assert handle.configuration.job_type == JobType.EXTRACT
    assert extract.source_table == table_x
    assert extract.destination_uris == ("store://bucket/a-*.json", "store://bucket/b-*.json")
    assert extract.destination_format == "NEWLINE_DELIMITED_JSON"


def test_export_error_status_surfaces_as_fatal(
    table_x: TableReference, fast_config: CoordinatorConfig
) -> None:
    service = InMemoryRemoteJobService(
        status_sequence=[JobStatus.PENDING, JobStatus.ERROR],
        error_result=JobErrorInfo(reason="invalid", message="bucket is not writable"),
    )
    orchestrator = ExportOrchestrator(service, fast_config)

    with pytest.raises(JobFailedError) as exc_info:
        orchestrator.export_to_storage("proj1", table_x, ["store://bucket/out-*.json"], True)

    error = exc_info.value
    assert isinstance(error, RemoteServiceError)
    assert error.kind == ErrorKind.FATAL
    assert error.handle.status == JobStatus.ERROR
    assert "bucket is not writable" in str(error)


def test_export_rejects_empty_destinations(
    table_x: TableReference, fast_config: CoordinatorConfig
) -> None:
    service = InMemoryRemoteJobService()
    orchestrator = ExportOrchestrator(service, fast_config)

    with pytest.raises(InvalidArgumentError):
        orchestrator.export_to_storage("proj1", table_x, [], True)
    assert service.create_calls == 0


def test_export_submission_failure_means_job_never_started(
    table_x: TableReference, fast_config: CoordinatorConfig
) -> None:
    service = InMemoryRemoteJobService()
    service.fail_next_create(RemoteCallError("denied", status_code=403, reason="accessDenied"))
    orchestrator = ExportOrchestrator(service, fast_config)

    with pytest.raises(RemoteServiceError) as exc_info:
        orchestrator.export_to_storage("proj1", table_x, ["store://bucket/out-*.json"], True)

    assert not isinstance(exc_info.value, JobFailedError)
    assert service.get_calls == 0
    assert service.job_count() == 0


def test_export_cancelled_while_waiting(
    table_x: TableReference, fast_config: CoordinatorConfig
) -> None:
    service = InMemoryRemoteJobService(status_sequence=[JobStatus.RUNNING])
    orchestrator = ExportOrchestrator(service, fast_config)
    cancel_event = threading.Event()
    ticks = {"count": 0}

    def tick() -> None:
        ticks["count"] += 1
        if ticks["count"] == 3:
            cancel_event.set()

    with pytest.raises(JobCancelledError) as exc_info:
        orchestrator.export_to_storage(
            "proj1",
            table_x,
            ["store://bucket/out-*.json"],
            True,
            tick=tick,
            cancel_event=cancel_event,
        )

    assert exc_info.value.identity.scope == "proj1"
    assert service.get_calls == 3


def test_export_uses_configured_prefix_and_format(table_x: TableReference) -> None:
    config = CoordinatorConfig(
        export=ExportSettings(job_id_prefix="nightly_dump", destination_format="AVRO")
    )
    orchestrator = ExportOrchestrator(InMemoryRemoteJobService(), config)

    handle = orchestrator.export_to_storage("proj1", table_x, ["store://bucket/x.avro"], False)

    assert handle.identity.job_id.startswith("nightly_dump-")
    assert handle.configuration.extract.destination_format == "AVRO"


def test_export_writes_audit_trail(
    tmp_path: Path, table_x: TableReference, fast_config: CoordinatorConfig
) -> None:
    audit_logger = JsonlAuditLogger(str(tmp_path / "audit.log"))
    service = InMemoryRemoteJobService(status_sequence=[JobStatus.DONE])
    orchestrator = ExportOrchestrator(service, fast_config, audit_logger=audit_logger)

    handle = orchestrator.export_to_storage("proj1", table_x, ["store://bucket/out-*.json"], True)

    entries = audit_logger.read_entries(job_id=handle.identity.job_id)
    assert [entry.action for entry in entries] == ["submitted", "completed"]
    assert entries[0].metadata["source"] == "proj1:sales.tableX"
    assert entries[1].metadata["fetches"] == 1


def test_export_event_history_is_bounded(table_x: TableReference) -> None:
    config = CoordinatorConfig(event_history_limit=5)
    orchestrator = ExportOrchestrator(InMemoryRemoteJobService(), config)

    handles = [
        orchestrator.export_to_storage("proj1", table_x, ["store://bucket/out-*.json"], False)
        for _ in range(20)
    ]

    events = orchestrator.events.list_events()
    assert orchestrator.events.max_events == 5
    assert len(events) == 5
    assert events[-1].name == "success"
    assert events[-1].payload["job_id"] == handles[-1].identity.job_id


def test_export_submission_enforces_configured_job_id_rules(table_x: TableReference) -> None:
    service = InMemoryRemoteJobService()
    config = CoordinatorConfig(export=ExportSettings(job_id_prefix="nightly dump"))
    loose = JobReferenceGenerator(IdentityRules(pattern=r".+"))
    orchestrator = ExportOrchestrator(service, config, generator=loose)

    with pytest.raises(InvalidArgumentError):
        orchestrator.export_to_storage("proj1", table_x, ["store://bucket/out-*.json"], False)
    assert service.create_calls == 0
