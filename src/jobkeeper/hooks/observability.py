from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

DEFAULT_MAX_EVENTS = 1000


@dataclass
class HookEvent:
    at: datetime
    kind: str
    name: str
    payload: dict[str, Any] = field(default_factory=dict)


class EventLogger:
    """Keeps the most recent ``max_events`` hook events; older ones are dropped."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        if max_events < 1:
            raise ValueError("max_events must be >= 1")
        self._events: deque[HookEvent] = deque(maxlen=max_events)

    @property
    def max_events(self) -> int:
        return self._events.maxlen or 0

    def record(self, kind: str, name: str, payload: dict[str, Any] | None = None) -> None:
        self._events.append(
            HookEvent(
                at=datetime.now(timezone.utc),
                kind=kind,
                name=name,
                payload=payload or {},
            )
        )

    def on_remote_call(self, operation: str, scope: str, job_id: str, phase: str) -> None:
        self.record("remote_call", phase, {"operation": operation, "scope": scope, "job_id": job_id})

    def on_poll(self, scope: str, job_id: str, status: str, attempt: int) -> None:
        self.record("poll", status, {"scope": scope, "job_id": job_id, "attempt": attempt})

    def list_events(self, kind: str | None = None) -> list[HookEvent]:
        if kind is None:
            return list(self._events)
        return [event for event in self._events if event.kind == kind]
