"""Nextcloud serverinfo source client, snapshot schema and error taxonomy."""
from __future__ import annotations

from .client import NextcloudClient, SourceClient
from .errors import RemoteProtocolError, RemoteReportedFailure, ScrapeError, TransportError
from .models import SERVERINFO_SPEC, Snapshot

__all__ = [
    "NextcloudClient",
    "SourceClient",
    "Snapshot",
    "SERVERINFO_SPEC",
    "ScrapeError",
    "TransportError",
    "RemoteProtocolError",
    "RemoteReportedFailure",
]
