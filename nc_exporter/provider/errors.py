"""Scrape-path error taxonomy.

These errors are raised by the source client and absorbed by the collector,
which maps each one to a ``status_code`` label on the scrape counter:

 - TransportError: the request never produced an HTTP response (DNS, refused, timeout)
 - RemoteProtocolError: a response arrived but its body could not be decoded
 - RemoteReportedFailure: Nextcloud answered with a structured OCS error
"""
from __future__ import annotations

from nc_exporter.utils.exceptions import ExporterError

TRANSPORT_ERROR_CLASS = "transport_error"


class ScrapeError(ExporterError):
    """Base scrape error (do not raise directly)."""

    status_code: int | None = None

    @property
    def outcome(self) -> str:
        return str(self.status_code) if self.status_code is not None else "unknown"


class TransportError(ScrapeError):
    """Network-level failure reaching the remote."""

    @property
    def outcome(self) -> str:
        return TRANSPORT_ERROR_CLASS


class RemoteProtocolError(ScrapeError):
    """Response payload could not be parsed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteReportedFailure(ScrapeError):
    """Structured failure (status + message) reported by the remote side."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"error fetching NC metrics: {message}")
        self.status_code = status_code
        self.message = message


__all__ = [
    "TRANSPORT_ERROR_CLASS",
    "ScrapeError",
    "TransportError",
    "RemoteProtocolError",
    "RemoteReportedFailure",
]
