from __future__ import annotations

import logging
from dataclasses import dataclass

from jobkeeper.classifier import ErrorClassifier
from jobkeeper.errors import (
    ErrorKind,
    IntegrityError,
    InvalidArgumentError,
    RemoteServiceError,
)
from jobkeeper.hooks.observability import EventLogger
from jobkeeper.models import JobDescription, JobHandle, JobIdentity
from jobkeeper.references import validate_job_id
from jobkeeper.remote.base import RemoteJobService
from jobkeeper.settings import IdentityRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Created:
    handle: JobHandle


@dataclass(frozen=True)
class AlreadyExists:
    handle: JobHandle


@dataclass(frozen=True)
class SubmitFailed:
    kind: ErrorKind
    cause: BaseException


CreateOutcome = Created | AlreadyExists | SubmitFailed


def check_identity_equality(expected: JobIdentity, actual: JobHandle) -> None:
    if actual.identity != expected:
        raise IntegrityError(
            f"job identities must match (expected '{expected}', got '{actual.identity}')"
        )


class DuplicateSafeSubmitter:
    """Submits a job at most once per ``(scope, job_id)``.

    A create that loses a race (or repeats after an ambiguous timeout) is
    reported by the service as already existing; the existing job is then
    fetched and returned as the canonical handle.
    """

    def __init__(
        self,
        service: RemoteJobService,
        *,
        rules: IdentityRules | None = None,
        classifier: ErrorClassifier | None = None,
        events: EventLogger | None = None,
    ) -> None:
        self.service = service
        self.rules = rules or IdentityRules()
        self.classifier = classifier or ErrorClassifier()
        self.events = events or EventLogger()

    def submit(self, scope: str, job: JobDescription) -> JobHandle:
        return self.reconcile(scope, job).handle

    def reconcile(self, scope: str, job: JobDescription) -> Created | AlreadyExists:
        identity = job.identity
        if not identity.job_id:
            raise InvalidArgumentError("job must carry a non-empty job_id before submission")
        if identity.scope != scope:
            raise InvalidArgumentError(
                f"job scope '{identity.scope}' does not match submission scope '{scope}'"
            )
        validate_job_id(identity.job_id, self.rules)

        outcome = self._attempt_create(scope, job)
        if isinstance(outcome, SubmitFailed):
            logger.info("Unhandled %s failure inserting job '%s'", outcome.kind.value, identity)
            raise RemoteServiceError(
                f"failed to submit job '{identity}': {outcome.cause}",
                kind=outcome.kind,
                cause=outcome.cause,
                identity=identity,
            ) from outcome.cause

        check_identity_equality(identity, outcome.handle)
        return outcome

    def _attempt_create(self, scope: str, job: JobDescription) -> CreateOutcome:
        identity = job.identity
        self.events.on_remote_call("create_job", scope, identity.job_id, phase="start")
        try:
            handle = self.service.create_job(scope, job)
        except Exception as exc:
            kind = self.classifier.classify(exc)
            if kind != ErrorKind.ALREADY_EXISTS:
                self.events.on_remote_call("create_job", scope, identity.job_id, phase=kind.value)
                return SubmitFailed(kind=kind, cause=exc)
            self.events.on_remote_call("create_job", scope, identity.job_id, phase="duplicate")
            logger.info("Fetching existing job after duplicate job_id '%s'", identity.job_id)
            return self._fetch_existing(scope, identity)

        self.events.on_remote_call("create_job", scope, identity.job_id, phase="success")
        logger.debug("Successfully inserted job '%s'; status %s", identity, handle.status.value)
        return Created(handle=handle)

    def _fetch_existing(self, scope: str, identity: JobIdentity) -> AlreadyExists | SubmitFailed:
        try:
            handle = self.service.get_job(scope, identity.job_id)
        except Exception as exc:
            kind = self.classifier.classify(exc)
            self.events.on_remote_call("get_job", scope, identity.job_id, phase=kind.value)
            return SubmitFailed(kind=kind, cause=exc)
        self.events.on_remote_call("get_job", scope, identity.job_id, phase="success")
        return AlreadyExists(handle=handle)
