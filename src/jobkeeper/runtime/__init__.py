"""Runtime support components."""

from .audit import AuditEntry, JsonlAuditLogger

__all__ = ["AuditEntry", "JsonlAuditLogger"]
