"""
Onboarding error taxonomy.

All of these are recovered by OnboardingSession (turned into a FailureReason)
or by the HTTP router (turned into an HTTPException). None should escape as
an uncaught fault.
"""

from enum import Enum

from cocoa_connect.errors import CocoaConnectError, NetworkFailure, StoreError

__all__ = [
    "AmbiguousOrMissing",
    "CommitError",
    "CommitErrorKind",
    "InvalidTransition",
    "LocationResolutionFailed",
    "NetworkFailure",
    "NotFound",
    "OnboardingError",
    "StoreError",
    "ValidationError",
]


class OnboardingError(CocoaConnectError):
    """Base class for onboarding failures."""

    code = "onboarding_error"


class InvalidTransition(OnboardingError):
    """An operation was attempted in a phase that does not allow it."""

    code = "invalid_transition"


class NotFound(OnboardingError):
    """A parent unit id does not resolve to a unit of the expected level."""

    code = "not_found"


class AmbiguousOrMissing(OnboardingError):
    """Zero or several units share a name within the given parent scope."""

    code = "ambiguous_or_missing"

    def __init__(self, level, name: str, matches: int):
        self.level = level
        self.name = name
        self.matches = matches
        reason = "no unit" if matches == 0 else f"{matches} units"
        super().__init__(
            f"{reason} named {name!r} at level {level.value}",
            {"level": level.value, "name": name, "matches": matches},
        )


class LocationResolutionFailed(OnboardingError):
    """A selected location name could not be turned into a stable id."""

    code = "location_resolution_failed"

    def __init__(self, level, name: str | None):
        self.level = level
        self.name = name
        super().__init__(
            f"Could not resolve {level.value} {name!r}",
            {"level": level.value, "name": name},
        )


class ValidationError(OnboardingError):
    """Required fields are missing or malformed for the chosen role."""

    code = "validation_error"

    def __init__(self, missing_fields: list, invalid_fields: list = ()):
        self.missing_fields = list(missing_fields)
        self.invalid_fields = list(invalid_fields)
        names = [f.value for f in self.missing_fields]
        bad = [f.value for f in self.invalid_fields]

        parts = []
        if names:
            parts.append(f"Missing required fields: {', '.join(names)}")
        if bad:
            parts.append(f"Invalid fields: {', '.join(bad)}")
        super().__init__(
            "; ".join(parts) or "Invalid profile",
            {"missing_fields": names, "invalid_fields": bad},
        )


class CommitErrorKind(str, Enum):
    """Why a profile commit failed."""
    INVALID_ACCOUNT = "invalid_account"
    LOCATION_RESOLUTION_FAILED = "location_resolution_failed"
    NETWORK_FAILURE = "network_failure"
    WRITE_REJECTED = "write_rejected"


class CommitError(OnboardingError):
    """A validated state could not be persisted. Nothing is retried."""

    code = "commit_error"

    def __init__(
        self,
        kind: CommitErrorKind,
        message: str,
        field=None,
        details: dict | None = None,
    ):
        self.kind = kind
        self.field = field
        merged = {"kind": kind.value, **(details or {})}
        if field is not None:
            merged["field"] = field.value
        super().__init__(message, merged)
