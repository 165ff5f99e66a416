"""Nextcloud Prometheus exporter.

Samples the Nextcloud ``serverinfo`` API and republishes the snapshot as
Prometheus metrics. Entry point: ``python -m nc_exporter``.
"""
from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
