"""Error taxonomy shared by analyzers, caches and collaborators."""

from __future__ import annotations


class DepHealthError(Exception):
    """Base exception for all dependency analysis errors.

    ``recoverable`` errors are caught at the smallest meaningful scope and
    degrade to a conservative default; the rest propagate.
    """

    recoverable: bool = True

    def __init__(self, message: str, *, recoverable: bool | None = None) -> None:
        super().__init__(message)
        if recoverable is not None:
            self.recoverable = recoverable


class PackageNotFoundError(DepHealthError):
    """Raised when the registry confirms a package does not exist."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Package not found: {name}")


class NetworkError(DepHealthError):
    """Timeout or connection failure talking to an external source."""


class RateLimitError(NetworkError):
    """Raised when an external source rate-limits us."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class MalformedRecordError(DepHealthError):
    """An external source returned a record we cannot interpret."""


class VulnerabilitySourceError(DepHealthError):
    """The vulnerability source failed for a whole batch.

    Security data is load-bearing, so this aborts the analysis run.
    """

    recoverable = False
