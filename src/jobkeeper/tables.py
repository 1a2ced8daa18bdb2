from __future__ import annotations

import logging

from jobkeeper.classifier import ErrorClassifier
from jobkeeper.errors import ErrorKind, RemoteServiceError
from jobkeeper.models import TableInfo, TableReference, TableSchema
from jobkeeper.remote.base import RemoteJobService

logger = logging.getLogger(__name__)


class TableInspector:
    def __init__(self, service: RemoteJobService, *, classifier: ErrorClassifier | None = None) -> None:
        self.service = service
        self.classifier = classifier or ErrorClassifier()

    def table_exists(self, ref: TableReference) -> bool:
        try:
            table = self.service.get_table(ref)
        except Exception as exc:
            kind = self.classifier.classify(exc)
            if kind == ErrorKind.NOT_FOUND:
                return False
            raise RemoteServiceError(
                f"failed to look up table '{ref}': {exc}", kind=kind, cause=exc
            ) from exc
        logger.debug("Fetched table '%s' for reference '%s'", table.reference, ref)
        return True

    def get_table(self, ref: TableReference) -> TableInfo:
        """Returns the table resource (its structure, not its rows)."""
        try:
            return self.service.get_table(ref)
        except Exception as exc:
            raise RemoteServiceError(
                f"failed to fetch table '{ref}': {exc}",
                kind=self.classifier.classify(exc),
                cause=exc,
            ) from exc

    def get_table_schema(self, ref: TableReference) -> TableSchema:
        return self.get_table(ref).table_schema
