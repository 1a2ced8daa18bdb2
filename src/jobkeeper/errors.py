from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jobkeeper.models import JobHandle, JobIdentity


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    TRANSIENT = "transient"
    FATAL = "fatal"


class InvalidArgumentError(ValueError):
    pass


class IntegrityError(RuntimeError):
    pass


class RemoteCallError(RuntimeError):
    """Structured failure reported by a remote job service."""

    def __init__(self, message: str, *, status_code: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason

    def __repr__(self) -> str:
        return (
            f"RemoteCallError(status_code={self.status_code!r}, reason={self.reason!r}, "
            f"message={self.message!r})"
        )


class RemoteServiceError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        cause: BaseException | None = None,
        identity: "JobIdentity | None" = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause = cause
        self.identity = identity

    @property
    def is_transient(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT


class JobFailedError(RemoteServiceError):
    """The job was accepted by the remote service and finished in ERROR."""

    def __init__(self, message: str, *, handle: "JobHandle") -> None:
        super().__init__(message, kind=ErrorKind.FATAL, identity=handle.identity)
        self.handle = handle


class JobCancelledError(RuntimeError):
    def __init__(self, message: str, *, identity: "JobIdentity") -> None:
        super().__init__(message)
        self.identity = identity
