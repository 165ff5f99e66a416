"""Shared helpers (env flags, logging, exception hierarchy)."""
