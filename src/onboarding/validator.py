"""
Profile Validator.

Purely structural: checks the draft holds a value for every field the role
requires. No lookups, no network.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .roles import ALWAYS_REQUIRED, ProfileField, required_fields, sort_fields
from .state import OnboardingState

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ValidationResult:
    """Ok when no field is missing or malformed; both lists are in declared order."""
    missing_fields: tuple[ProfileField, ...] = ()
    invalid_fields: tuple[ProfileField, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields and not self.invalid_fields

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def invalid(
        cls, missing: Iterable[ProfileField], malformed: Iterable[ProfileField] = ()
    ) -> "ValidationResult":
        return cls(tuple(missing), tuple(malformed))


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email.strip()))


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def validate(state: OnboardingState, required: Iterable[ProfileField]) -> ValidationResult:
    """
    Check `state` against a role's required fields.

    Role and email are checked first, then the role-specific fields in
    declared order, so the same draft always yields the same list.
    Whitespace-only values count as missing. A present email that is not
    shaped like name@domain.tld is reported as malformed.
    """
    missing = [f for f in ALWAYS_REQUIRED if _is_blank(state.value_of(f))]
    missing += [
        f for f in sort_fields(required)
        if f not in ALWAYS_REQUIRED and _is_blank(state.value_of(f))
    ]

    malformed = []
    if not _is_blank(state.email) and not is_valid_email(state.email):
        malformed.append(ProfileField.EMAIL)

    if missing or malformed:
        logger.info(
            f"Onboarding draft missing fields: {[f.value for f in missing]}, "
            f"malformed: {[f.value for f in malformed]}"
        )
        return ValidationResult.invalid(missing, malformed)
    return ValidationResult.ok()


def validate_for_role(state: OnboardingState) -> ValidationResult:
    """Validate against the contract of the role currently held by `state`."""
    required = required_fields(state.role) if state.role is not None else frozenset()
    return validate(state, required)
