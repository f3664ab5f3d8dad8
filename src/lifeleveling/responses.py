"""Uniform JSON envelope: ``{success, data?, message?, error?, details?}``."""

from __future__ import annotations

from typing import Any


def envelope(data: Any = None, message: str | None = None) -> dict[str, Any]:  # noqa: ANN401
    """Build a success envelope. Omits keys that are None."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def error_envelope(error: str, message: str | None = None, details: Any = None) -> dict[str, Any]:  # noqa: ANN401
    body: dict[str, Any] = {"success": False, "error": error}
    if message is not None:
        body["message"] = message
    if details is not None:
        body["details"] = details
    return body
