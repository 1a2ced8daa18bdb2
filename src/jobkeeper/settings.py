from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, model_validator

# Remote job ids must match this pattern.
DEFAULT_JOB_ID_PATTERN = r"[A-Za-z0-9_-]+"

# Maximum number of characters in a remote job id.
DEFAULT_JOB_ID_MAX_LENGTH = 1024

DEFAULT_EXPORT_JOB_PREFIX = "direct-export"
DEFAULT_DESTINATION_FORMAT = "NEWLINE_DELIMITED_JSON"

# Hook events kept in memory per orchestrator; older events are dropped.
DEFAULT_EVENT_HISTORY_LIMIT = 1000

# Upper bound on how long the API waits for an export it was asked to await.
DEFAULT_AWAIT_TIMEOUT_SECONDS = 300.0


class IdentityRules(BaseModel):
    pattern: str = DEFAULT_JOB_ID_PATTERN
    max_length: int = DEFAULT_JOB_ID_MAX_LENGTH

    @model_validator(mode="after")
    def validate_rules(self) -> "IdentityRules":
        if self.max_length < 1:
            raise ValueError("max_length must be >= 1")
        if not self.pattern:
            raise ValueError("pattern must not be empty")
        return self


class PollPolicy(BaseModel):
    interval_schedule_seconds: list[float] = Field(default_factory=lambda: [1.0, 2.0, 4.0, 8.0])
    max_transient_retries: int = 5

    @model_validator(mode="after")
    def validate_policy(self) -> "PollPolicy":
        if not self.interval_schedule_seconds:
            raise ValueError("interval_schedule_seconds must not be empty")
        if any(v < 0 for v in self.interval_schedule_seconds):
            raise ValueError("poll intervals must not be negative")
        if self.max_transient_retries < 0:
            raise ValueError("max_transient_retries must be >= 0")
        return self

    def interval_for(self, poll_index: int) -> float:
        schedule = self.interval_schedule_seconds
        return schedule[min(poll_index, len(schedule) - 1)]


class ExportSettings(BaseModel):
    job_id_prefix: str = DEFAULT_EXPORT_JOB_PREFIX
    destination_format: str = DEFAULT_DESTINATION_FORMAT


class CoordinatorConfig(BaseModel):
    identity: IdentityRules = Field(default_factory=IdentityRules)
    poll: PollPolicy = Field(default_factory=PollPolicy)
    export: ExportSettings = Field(default_factory=ExportSettings)
    remote_base_url: str | None = None
    request_timeout_seconds: float = 30.0
    audit_log_path: str | None = None
    dry_run: bool = False
    event_history_limit: int = DEFAULT_EVENT_HISTORY_LIMIT
    await_timeout_seconds: float = DEFAULT_AWAIT_TIMEOUT_SECONDS

    @model_validator(mode="after")
    def validate_config(self) -> "CoordinatorConfig":
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be positive")
        if self.event_history_limit < 1:
            raise ValueError("event_history_limit must be >= 1")
        if self.await_timeout_seconds <= 0:
            raise ValueError("await_timeout_seconds must be positive")
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CoordinatorConfig":
        env = environ if environ is not None else os.environ

        poll_kwargs: dict = {}
        schedule = _env_text(env, "JOBKEEPER_POLL_INTERVALS_SECONDS")
        if schedule:
            poll_kwargs["interval_schedule_seconds"] = [
                float(item) for item in schedule.replace(",", " ").split()
            ]
        retries = _env_text(env, "JOBKEEPER_POLL_MAX_TRANSIENT_RETRIES")
        if retries:
            poll_kwargs["max_transient_retries"] = int(retries)

        return cls(
            identity=IdentityRules(
                pattern=_env_text(env, "JOBKEEPER_JOB_ID_PATTERN") or DEFAULT_JOB_ID_PATTERN,
                max_length=int(
                    _env_text(env, "JOBKEEPER_JOB_ID_MAX_LENGTH") or DEFAULT_JOB_ID_MAX_LENGTH
                ),
            ),
            poll=PollPolicy(**poll_kwargs),
            export=ExportSettings(
                job_id_prefix=_env_text(env, "JOBKEEPER_EXPORT_JOB_PREFIX")
                or DEFAULT_EXPORT_JOB_PREFIX,
                destination_format=_env_text(env, "JOBKEEPER_EXPORT_FORMAT")
                or DEFAULT_DESTINATION_FORMAT,
            ),
            remote_base_url=_env_text(env, "JOBKEEPER_REMOTE_BASE_URL"),
            request_timeout_seconds=float(
                _env_text(env, "JOBKEEPER_REQUEST_TIMEOUT_SECONDS") or "30"
            ),
            audit_log_path=_env_text(env, "JOBKEEPER_AUDIT_LOG_PATH"),
            dry_run=_env_flag(env, "JOBKEEPER_DRY_RUN", "0"),
            event_history_limit=int(
                _env_text(env, "JOBKEEPER_EVENT_HISTORY_LIMIT") or DEFAULT_EVENT_HISTORY_LIMIT
            ),
            await_timeout_seconds=float(
                _env_text(env, "JOBKEEPER_AWAIT_TIMEOUT_SECONDS") or DEFAULT_AWAIT_TIMEOUT_SECONDS
            ),
        )


def _env_text(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _env_flag(env: Mapping[str, str], name: str, default: str = "0") -> bool:
    return env.get(name, default) == "1"
