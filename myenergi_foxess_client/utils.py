"""Utility functions for the telemetry client."""

from __future__ import annotations

import time


def current_timestamp_ms() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def redact(value: str | None) -> str:
    """Mask a secret for logging, keeping only its first and last character.

    Example:
        >>> redact("abcdef")
        'a****f'

    """
    if not value:
        return "<empty>"
    if len(value) <= 2:
        return "*" * len(value)
    return f"{value[0]}{'*' * (len(value) - 2)}{value[-1]}"


def build_server_url(server: str, path: str) -> str:
    """Join a discovered server and a request path into an https URL.

    The director hands back a bare host name; a value that already carries
    a scheme is used as-is.
    """
    server = server.strip().rstrip("/")
    if not server.startswith(("http://", "https://")):
        server = f"https://{server}"
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{server}{path}"
