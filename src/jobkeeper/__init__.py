"""Idempotent submission and completion tracking for remote export jobs."""

from .classifier import ErrorClassifier
from .errors import (
    ErrorKind,
    IntegrityError,
    InvalidArgumentError,
    JobCancelledError,
    JobFailedError,
    RemoteCallError,
    RemoteServiceError,
)
from .export import ExportOrchestrator
from .models import (
    TERMINAL_STATUSES,
    JobDescription,
    JobHandle,
    JobIdentity,
    JobStatus,
    TableReference,
)
from .poller import Cancelled, Completed, CompletionPoller
from .references import JobReferenceGenerator
from .settings import CoordinatorConfig, IdentityRules, PollPolicy
from .submitter import AlreadyExists, Created, DuplicateSafeSubmitter

__all__ = [
    "AlreadyExists",
    "Cancelled",
    "Completed",
    "CompletionPoller",
    "CoordinatorConfig",
    "Created",
    "DuplicateSafeSubmitter",
    "ErrorClassifier",
    "ErrorKind",
    "ExportOrchestrator",
    "IdentityRules",
    "IntegrityError",
    "InvalidArgumentError",
    "JobCancelledError",
    "JobDescription",
    "JobFailedError",
    "JobHandle",
    "JobIdentity",
    "JobReferenceGenerator",
    "JobStatus",
    "PollPolicy",
    "RemoteCallError",
    "RemoteServiceError",
    "TERMINAL_STATUSES",
    "TableReference",
]
