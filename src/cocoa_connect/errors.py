"""
Structured error types.

Every error raised by Cocoa Connect carries an ErrorDetail so callers (the
onboarding session, the HTTP layer, the CLI) can surface it without parsing
messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ErrorDetail:
    """Serializable error payload."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class CocoaConnectError(RuntimeError):
    """Base exception carrying a structured error detail."""

    code = "error"

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.error = ErrorDetail(code=self.code, message=message, details=dict(details or {}))


class StoreError(CocoaConnectError):
    """The backend rejected a query or write."""

    code = "store_error"


class NetworkFailure(StoreError):
    """Transient transport failure talking to the backend. Never retried here."""

    code = "network_failure"
