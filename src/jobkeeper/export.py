from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from jobkeeper.classifier import ErrorClassifier
from jobkeeper.errors import InvalidArgumentError, JobCancelledError, JobFailedError
from jobkeeper.hooks.observability import EventLogger
from jobkeeper.models import (
    ExtractConfiguration,
    JobConfiguration,
    JobDescription,
    JobHandle,
    JobStatus,
    JobType,
    TableReference,
)
from jobkeeper.poller import Cancelled, CompletionPoller, LivenessCallback
from jobkeeper.references import JobReferenceGenerator
from jobkeeper.remote.base import RemoteJobService
from jobkeeper.runtime.audit import JsonlAuditLogger
from jobkeeper.settings import CoordinatorConfig
from jobkeeper.submitter import AlreadyExists, DuplicateSafeSubmitter

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """Exports a table to object storage through a remote extract job."""

    def __init__(
        self,
        service: RemoteJobService,
        config: CoordinatorConfig | None = None,
        *,
        generator: JobReferenceGenerator | None = None,
        events: EventLogger | None = None,
        audit_logger: JsonlAuditLogger | None = None,
    ) -> None:
        self.config = config or CoordinatorConfig()
        self.events = events or EventLogger(max_events=self.config.event_history_limit)
        classifier = ErrorClassifier()
        self.generator = generator or JobReferenceGenerator(self.config.identity)
        self.submitter = DuplicateSafeSubmitter(
            service,
            rules=self.config.identity,
            classifier=classifier,
            events=self.events,
        )
        self.poller = CompletionPoller(
            service,
            self.config.poll,
            classifier=classifier,
            events=self.events,
        )
        self.audit_logger = audit_logger

    def build_export_job(
        self,
        scope: str,
        source: TableReference,
        destinations: Sequence[str],
    ) -> JobDescription:
        if not destinations:
            raise InvalidArgumentError("destinations must not be empty")
        identity = self.generator.generate(scope, self.config.export.job_id_prefix)
        return JobDescription(
            identity=identity,
            configuration=JobConfiguration(
                job_type=JobType.EXTRACT,
                extract=ExtractConfiguration(
                    source_table=source,
                    destination_uris=tuple(destinations),
                    destination_format=self.config.export.destination_format,
                ),
            ),
        )

    def export_to_storage(
        self,
        scope: str,
        source: TableReference,
        destinations: Sequence[str],
        await_completion: bool,
        *,
        tick: LivenessCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> JobHandle:
        """Submits the export and, if asked, blocks until it finishes.

        Raises ``JobFailedError`` when the job ends in ERROR and
        ``JobCancelledError`` when ``cancel_event`` is set while waiting. The
        returned handle is the latest one fetched.
        """
        job = self.build_export_job(scope, source, destinations)
        logger.info(
            "Exporting table '%s' to %d paths; path[0] is '%s'; await_completion: %s",
            source,
            len(destinations),
            destinations[0],
            await_completion,
        )

        outcome = self.submitter.reconcile(scope, job)
        handle = outcome.handle
        self._audit(
            job,
            "reused" if isinstance(outcome, AlreadyExists) else "submitted",
            {"source": str(source), "destinations": list(destinations)},
        )
        if not await_completion:
            return handle

        result = self.poller.await_completion(scope, handle, tick=tick, cancel_event=cancel_event)
        if isinstance(result, Cancelled):
            self._audit(job, "cancelled", {"fetches": result.fetches})
            raise JobCancelledError(
                f"cancelled while waiting for job '{job.identity}'", identity=job.identity
            )

        final = result.handle
        if final.status == JobStatus.ERROR:
            error = final.error_result
            self._audit(
                job,
                "failed",
                {"error": error.model_dump() if error else None, "fetches": result.fetches},
            )
            detail = f"{error.reason}: {error.message}" if error else "no error details"
            raise JobFailedError(f"export job '{job.identity}' failed ({detail})", handle=final)

        self._audit(job, "completed", {"fetches": result.fetches})
        return final

    def _audit(self, job: JobDescription, action: str, metadata: dict) -> None:
        if self.audit_logger:
            self.audit_logger.log(identity=job.identity, action=action, metadata=metadata)
