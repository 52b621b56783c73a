"""Error taxonomy shared by every factsync layer.

Every component-level operation either succeeds or raises exactly one of
these. Nothing here is retried implicitly; callers decide what to do.
"""

from __future__ import annotations


class FactSyncError(Exception):
    """Base exception for synchronization errors."""


class NetworkError(FactSyncError):
    """Request could not be sent or its response could not be read."""


class BadRemoteResponseError(FactSyncError):
    """Remote answered with an unexpected status or an unusable body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(f"Received bad response from the remote: {message}")
        self.status_code = status_code
        self.body = body


class BadRemoteStateError(FactSyncError):
    """Remote log data violates the protocol invariants."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Received bad remote state: {message}")


class DuplicateMetadataError(FactSyncError):
    """More than one value for a key that must be singular."""

    def __init__(self, key: str) -> None:
        super().__init__(f"encountered more than one metadata value for key: {key}")
        self.key = key


class TxProcessorUnfinishedError(FactSyncError):
    """Local apply step did not signal completion."""

    def __init__(self) -> None:
        super().__init__("transaction processor didn't say it was done")


class TxIncorrectlyMappedError(FactSyncError):
    """An identifier resolved to zero or several stable identifiers."""

    def __init__(self, count: int, subject: str | None = None) -> None:
        message = f"expected one, found {count} uuid mappings for tx"
        if subject is not None:
            message = f"{message} ({subject})"
        super().__init__(message)
        self.count = count
        self.subject = subject


class SerializationError(FactSyncError):
    """Malformed JSON on either side of the wire."""


class NotYetImplementedError(FactSyncError):
    """Protocol extension that is not implemented."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"not yet implemented: {feature}")
        self.feature = feature


class StoreError(FactSyncError):
    """Failure reported by the local store."""

    def __init__(self, message: str, cause: str | None = None) -> None:
        text = message if cause is None else f"{message}, cause: {cause}"
        super().__init__(text)
        self.cause = cause


class UnexpectedStateError(FactSyncError):
    """Local and remote views of the log disagree."""

    def __init__(self, message: str) -> None:
        super().__init__(f"encountered unexpected state: {message}")
