from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from jobkeeper.classifier import ErrorClassifier
from jobkeeper.errors import ErrorKind, RemoteServiceError
from jobkeeper.hooks.observability import EventLogger
from jobkeeper.models import JobHandle, JobIdentity
from jobkeeper.remote.base import RemoteJobService
from jobkeeper.settings import PollPolicy

logger = logging.getLogger(__name__)

LivenessCallback = Callable[[], None]


@dataclass(frozen=True)
class Completed:
    handle: JobHandle
    fetches: int


@dataclass(frozen=True)
class Cancelled:
    identity: JobIdentity
    fetches: int


def _noop_tick() -> None:
    return None


class CompletionPoller:
    """Re-fetches a job until the remote service reports a terminal status."""

    def __init__(
        self,
        service: RemoteJobService,
        policy: PollPolicy | None = None,
        *,
        classifier: ErrorClassifier | None = None,
        events: EventLogger | None = None,
    ) -> None:
        self.service = service
        self.policy = policy or PollPolicy()
        self.classifier = classifier or ErrorClassifier()
        self.events = events or EventLogger()

    def await_completion(
        self,
        scope: str,
        handle: JobHandle,
        tick: LivenessCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Completed | Cancelled:
        identity = handle.identity
        tick = tick or _noop_tick
        cancel_event = cancel_event or threading.Event()

        fetches = 0
        consecutive_transient = 0
        while True:
            if cancel_event.is_set():
                logger.info("Cancelled wait for job '%s' after %d fetches", identity, fetches)
                return Cancelled(identity=identity, fetches=fetches)

            fetches += 1
            try:
                current = self.service.get_job(scope, identity.job_id)
            except Exception as exc:
                tick()
                kind = self.classifier.classify(exc)
                self.events.on_remote_call("get_job", scope, identity.job_id, phase=kind.value)
                if kind != ErrorKind.TRANSIENT:
                    raise RemoteServiceError(
                        f"failed to fetch status of job '{identity}': {exc}",
                        kind=kind,
                        cause=exc,
                        identity=identity,
                    ) from exc
                consecutive_transient += 1
                if consecutive_transient > self.policy.max_transient_retries:
                    raise RemoteServiceError(
                        f"giving up on job '{identity}' after {consecutive_transient} "
                        f"consecutive transient failures: {exc}",
                        kind=ErrorKind.FATAL,
                        cause=exc,
                        identity=identity,
                    ) from exc
                logger.debug(
                    "Transient failure %d/%d polling job '%s': %s",
                    consecutive_transient,
                    self.policy.max_transient_retries,
                    identity,
                    exc,
                )
            else:
                tick()
                consecutive_transient = 0
                self.events.on_poll(scope, identity.job_id, current.status.value, fetches)
                if current.is_terminal:
                    logger.info(
                        "Job '%s' reached %s after %d fetches", identity, current.status.value, fetches
                    )
                    return Completed(handle=current, fetches=fetches)
                logger.debug("Job '%s' is %s; polling again", identity, current.status.value)

            if cancel_event.wait(self.policy.interval_for(fetches - 1)):
                logger.info("Cancelled wait for job '%s' after %d fetches", identity, fetches)
                return Cancelled(identity=identity, fetches=fetches)
