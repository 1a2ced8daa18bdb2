from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jobkeeper.models import JobIdentity


@dataclass
class AuditEntry:
    at: str
    scope: str
    job_id: str
    action: str
    metadata: dict[str, Any]


class JsonlAuditLogger:
    """Appends one JSON line per job lifecycle step."""

    def __init__(self, path: str) -> None:
        self.path = Path(path).expanduser().resolve()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, *, identity: JobIdentity, action: str, metadata: dict[str, Any] | None = None) -> None:
        entry = AuditEntry(
            at=datetime.now(timezone.utc).isoformat(),
            scope=identity.scope,
            job_id=identity.job_id,
            action=action,
            metadata=metadata or {},
        )
        with self.path.open("a", encoding="utf-8") as file:
            file.write(json.dumps(asdict(entry), ensure_ascii=True) + "\n")

    def read_entries(self, job_id: str | None = None) -> list[AuditEntry]:
        if not self.path.exists():
            return []
        entries: list[AuditEntry] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            raw = line.strip()
            if not raw:
                continue
            entry = AuditEntry(**json.loads(raw))
            if job_id is None or entry.job_id == job_id:
                entries.append(entry)
        return entries
