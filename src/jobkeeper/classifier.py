from __future__ import annotations

import httpx

from jobkeeper.errors import ErrorKind, RemoteCallError, RemoteServiceError

NOT_FOUND_REASONS = {"notFound"}
ALREADY_EXISTS_REASONS = {"duplicate"}
TRANSIENT_REASONS = {"rateLimitExceeded", "backendError", "internalError"}

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}

# Transport failures worth retrying. Configuration mistakes such as a bad URL
# scheme or a malformed request are fatal.
TRANSIENT_TRANSPORT_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


class ErrorClassifier:
    """Maps failures from the remote service onto ``ErrorKind``.

    A structured ``reason`` takes precedence over the HTTP-style status code,
    since a 400-class status can carry a more specific reason. Errors that were
    already classified are returned as-is.
    """

    def classify(self, err: BaseException) -> ErrorKind:
        for candidate in _cause_chain(err):
            if isinstance(candidate, RemoteServiceError):
                return candidate.kind
            if isinstance(candidate, RemoteCallError):
                return self._classify_remote_call(candidate)
            if isinstance(candidate, TRANSIENT_TRANSPORT_ERRORS):
                return ErrorKind.TRANSIENT
        return ErrorKind.FATAL

    def item_not_found(self, err: BaseException) -> bool:
        return self.classify(err) == ErrorKind.NOT_FOUND

    def item_already_exists(self, err: BaseException) -> bool:
        return self.classify(err) == ErrorKind.ALREADY_EXISTS

    @staticmethod
    def _classify_remote_call(err: RemoteCallError) -> ErrorKind:
        if err.reason in NOT_FOUND_REASONS:
            return ErrorKind.NOT_FOUND
        if err.reason in ALREADY_EXISTS_REASONS:
            return ErrorKind.ALREADY_EXISTS
        if err.reason in TRANSIENT_REASONS:
            return ErrorKind.TRANSIENT
        if err.status_code == 404:
            return ErrorKind.NOT_FOUND
        if err.status_code == 409:
            return ErrorKind.ALREADY_EXISTS
        if err.status_code in TRANSIENT_STATUS_CODES:
            return ErrorKind.TRANSIENT
        return ErrorKind.FATAL


def _cause_chain(err: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = err
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__
    return chain
