"""Collector exceptions.

Every failure in the push path derives from SinkError so the dispatch
loop can log it and move on to the next record.
"""

from __future__ import annotations


class SinkError(Exception):
    """Base class for all loadsink errors."""


class CollectorConfigError(SinkError, ValueError):
    """Raised when a collector is constructed with unusable parameters."""


class ValidationError(SinkError):
    """Raised when a record is incomplete. Never reaches the network."""


class WriteError(SinkError):
    """A call to the backend did not succeed.

    Attributes:
        status: HTTP status of the response, or None if there was no response
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class TransportError(WriteError):
    """The request never produced a response (connection refused, timeout, ...)."""


class BackendRejection(WriteError):
    """The backend answered with a non-2xx status."""


class MalformedResponse(BackendRejection):
    """A failing response arrived without the originating request attached."""


class ProvisioningError(SinkError):
    """CREATE DATABASE for a destination failed.

    The underlying WriteError is chained as __cause__.
    """

    def __init__(self, destination: str, message: str) -> None:
        self.destination = destination
        super().__init__(f"provisioning {destination!r} failed: {message}")
