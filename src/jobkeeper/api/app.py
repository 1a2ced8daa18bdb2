from __future__ import annotations

import threading

from fastapi import FastAPI, HTTPException

from jobkeeper.api.schemas import (
    ExportRequest,
    ExportResponse,
    JobStatusResponse,
    TableSchemaResponse,
)
from jobkeeper.classifier import ErrorClassifier
from jobkeeper.errors import (
    ErrorKind,
    IntegrityError,
    InvalidArgumentError,
    JobCancelledError,
    JobFailedError,
    RemoteServiceError,
)
from jobkeeper.export import ExportOrchestrator
from jobkeeper.models import TableReference
from jobkeeper.remote import HttpRemoteJobService, InMemoryRemoteJobService, RemoteJobService
from jobkeeper.runtime import JsonlAuditLogger
from jobkeeper.settings import CoordinatorConfig
from jobkeeper.tables import TableInspector


def build_service(config: CoordinatorConfig) -> RemoteJobService:
    if config.dry_run:
        return InMemoryRemoteJobService()
    if not config.remote_base_url:
        raise ValueError(
            "remote base URL is required (set JOBKEEPER_REMOTE_BASE_URL or JOBKEEPER_DRY_RUN=1)"
        )
    return HttpRemoteJobService(
        config.remote_base_url,
        request_timeout_seconds=config.request_timeout_seconds,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidArgumentError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, JobFailedError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, JobCancelledError):
        identity = exc.identity
        return HTTPException(
            status_code=504,
            detail=f"{exc}; job may still be running, see /jobs/{identity.scope}/{identity.job_id}",
        )
    if isinstance(exc, IntegrityError):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, RemoteServiceError):
        if exc.kind == ErrorKind.NOT_FOUND:
            return HTTPException(status_code=404, detail=str(exc))
        if exc.kind == ErrorKind.TRANSIENT:
            return HTTPException(status_code=503, detail=str(exc))
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def create_app(
    service: RemoteJobService | None = None,
    config: CoordinatorConfig | None = None,
) -> FastAPI:
    config = config or CoordinatorConfig.from_env()
    service = service or build_service(config)
    audit_logger = JsonlAuditLogger(config.audit_log_path) if config.audit_log_path else None
    orchestrator = ExportOrchestrator(service, config, audit_logger=audit_logger)
    classifier = ErrorClassifier()
    tables = TableInspector(service, classifier=classifier)

    app = FastAPI(title="jobkeeper API", version="0.1.0")
    app.state.orchestrator = orchestrator

    @app.post("/exports", response_model=ExportResponse)
    def create_export(payload: ExportRequest) -> ExportResponse:
        # Awaited exports give up after await_timeout_seconds; the remote job keeps running.
        deadline = threading.Event()
        timer = threading.Timer(config.await_timeout_seconds, deadline.set)
        timer.daemon = True
        if payload.await_completion:
            timer.start()
        try:
            handle = orchestrator.export_to_storage(
                payload.scope,
                payload.source,
                payload.destinations,
                payload.await_completion,
                cancel_event=deadline,
            )
        except (InvalidArgumentError, IntegrityError, RemoteServiceError, JobCancelledError) as exc:
            raise _to_http_error(exc) from exc
        finally:
            timer.cancel()

        return ExportResponse(
            scope=handle.identity.scope,
            job_id=handle.identity.job_id,
            status=handle.status.value,
        )

    @app.get("/jobs/{scope}/{job_id}", response_model=JobStatusResponse)
    def get_job(scope: str, job_id: str) -> JobStatusResponse:
        try:
            handle = service.get_job(scope, job_id)
        except Exception as exc:
            error = RemoteServiceError(
                f"failed to fetch job '{scope}:{job_id}': {exc}",
                kind=classifier.classify(exc),
                cause=exc,
            )
            raise _to_http_error(error) from exc

        return JobStatusResponse(
            scope=handle.identity.scope,
            job_id=handle.identity.job_id,
            status=handle.status.value,
            terminal=handle.is_terminal,
            error_result=handle.error_result,
        )

    @app.get("/tables/{project_id}/{dataset_id}/{table_id}", response_model=TableSchemaResponse)
    def get_table(project_id: str, dataset_id: str, table_id: str) -> TableSchemaResponse:
        ref = TableReference(project_id=project_id, dataset_id=dataset_id, table_id=table_id)
        try:
            table = tables.get_table(ref)
        except RemoteServiceError as exc:
            raise _to_http_error(exc) from exc

        return TableSchemaResponse(
            reference=table.reference,
            table_schema=table.table_schema,
            num_rows=table.num_rows,
        )

    return app

