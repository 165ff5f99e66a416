"""Exporter exception hierarchy.

Define a small, clear exception tree for categorizing failures across the
exporter. Scrape-path errors (see ``nc_exporter.provider.errors``) are
absorbed by the collector; the remaining types either abort startup or are
classified by the supervisor loop.
"""
from __future__ import annotations


class ExporterError(Exception):
    """Base class for all exporter exceptions."""


class ConfigError(ExporterError):
    """Configuration-related issues (unknown keys, invalid values, unreadable file)."""


class DuplicateTemplateError(ExporterError):
    """A metric template name was registered twice (fatal at startup)."""

    def __init__(self, name: str) -> None:
        super().__init__(f"template already exists with name '{name}'")
        self.name = name


class LabelArityMismatch(ExporterError):
    """Label values supplied for a template do not match its declared label names."""

    def __init__(self, name: str, expected: int, got: int) -> None:
        super().__init__(
            f"metric '{name}' declares {expected} variable label(s) but {got} value(s) were supplied"
        )
        self.name = name
        self.expected = expected
        self.got = got


class ListenerClosedError(ExporterError):
    """The listener was already closed; expected during stop/restart."""


class ShutdownTimeoutError(ExporterError):
    """Graceful listener shutdown did not complete within its deadline (soft)."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"failed to stop server within deadline ({timeout:g} s)")
        self.timeout = timeout


class UnclassifiedFatalError(ExporterError):
    """Wraps any unexpected error that reached the supervisor loop."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"unexpected error: {cause!r}")
        self.cause = cause


__all__ = [
    "ExporterError",
    "ConfigError",
    "DuplicateTemplateError",
    "LabelArityMismatch",
    "ListenerClosedError",
    "ShutdownTimeoutError",
    "UnclassifiedFatalError",
]
