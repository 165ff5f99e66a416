"""Parsing helpers for ``NC_*`` environment values.

Booleans accept {"1","true","yes","on"} / {"0","false","no","off"}, case-insensitive.
``NC_JSON_LOGS`` and the config overrides both go through here.
"""
from __future__ import annotations

import os

TRUTHY_SET: set[str] = {"1","true","yes","on"}
FALSY_SET: set[str] = {"0","false","no","off"}

def is_truthy(value: str | None) -> bool:
    return bool(value) and value.strip().lower() in TRUTHY_SET

def is_truthy_env(name: str) -> bool:
    return is_truthy(os.environ.get(name))

def parse_bool(value: str) -> bool:
    """Strict variant used for config overrides: unknown tokens raise ValueError."""
    token = value.strip().lower()
    if token in TRUTHY_SET:
        return True
    if token in FALSY_SET:
        return False
    raise ValueError(f"not a boolean flag: {value!r}")

def split_csv(value: str | None) -> list[str]:
    """``"a, b,,c"`` -> ``["a", "b", "c"]``."""
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]

__all__ = [
    'FALSY_SET',
    'TRUTHY_SET',
    'is_truthy',
    'is_truthy_env',
    'parse_bool',
    'split_csv',
]
