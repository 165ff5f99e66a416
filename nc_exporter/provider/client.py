"""HTTP client for the Nextcloud serverinfo API.

``fetch()`` returns a ``Snapshot`` or raises one of the scrape errors from
``nc_exporter.provider.errors``. It never retries; each call is one request.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urljoin

import requests

from .errors import RemoteProtocolError, RemoteReportedFailure, TransportError
from .models import Snapshot

logger = logging.getLogger(__name__)

AUTH_HEADER = "NC-Token"
SERVERINFO_PATH = "/ocs/v2.php/apps/serverinfo/api/v1/info?format=json"
DEFAULT_TIMEOUT = 10.0


class SourceClient(Protocol):
    def fetch(self) -> Snapshot: ...


def _ocs_section(body: Any, key: str) -> Any:
    if not isinstance(body, dict):
        return None
    ocs = body.get("ocs")
    if not isinstance(ocs, dict):
        return None
    return ocs.get(key)


class NextcloudClient:
    def __init__(self, base_url: str, token: str, *, timeout: float = DEFAULT_TIMEOUT,
                 session: requests.Session | None = None) -> None:
        self.url = urljoin(base_url, SERVERINFO_PATH)
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    def fetch(self) -> Snapshot:
        try:
            resp = self._session.get(self.url, headers={AUTH_HEADER: self._token}, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportError(f"request to {self.url} failed: {e}") from e

        status = resp.status_code
        try:
            body = resp.json()
        except ValueError as e:
            raise RemoteProtocolError(f"failed to decode response (HTTP {status}): {e}", status) from e

        if status == requests.codes.ok:
            data = _ocs_section(body, "data")
            if not isinstance(data, dict):
                raise RemoteProtocolError("response is missing 'ocs.data'", status)
            meta = _ocs_section(body, "meta")
            return Snapshot(status_code=status, data=data, meta=meta if isinstance(meta, dict) else {})

        meta = _ocs_section(body, "meta")
        if not isinstance(meta, dict) or "message" not in meta:
            raise RemoteProtocolError(f"unexpected error payload (HTTP {status})", status)
        raise RemoteReportedFailure(status, str(meta.get("message")))

    def close(self) -> None:
        self._session.close()


__all__ = ["AUTH_HEADER", "SERVERINFO_PATH", "SourceClient", "NextcloudClient"]
