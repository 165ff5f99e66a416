"""Listener lifecycle supervision."""
