"""
Onboarding State Management.

A single in-progress onboarding draft and the phase machine around it:

    ROLE_SELECTION -> LOCATION_SELECTION -> DETAIL_ENTRY
        -> VALIDATING -> SUBMITTING -> COMMITTED

VALIDATING and SUBMITTING can fall into FAILED, which keeps every entered
value and behaves like DETAIL_ENTRY: the user edits and submits again.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from cocoa_connect.errors import CocoaConnectError

from .errors import InvalidTransition
from .locations import AdministrativeUnit, Level
from .roles import DETAIL_FIELDS, ProfileField, Role, requires_location


class OnboardingPhase(Enum):
    """Onboarding flow phases."""
    ROLE_SELECTION = "role_selection"
    LOCATION_SELECTION = "location_selection"
    DETAIL_ENTRY = "detail_entry"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    FAILED = "failed"


# Phases in which the user may edit the draft
EDITABLE_PHASES = {
    OnboardingPhase.LOCATION_SELECTION,
    OnboardingPhase.DETAIL_ENTRY,
    OnboardingPhase.FAILED,
}

# Phases from which the role may still be changed
PRE_SUBMIT_PHASES = EDITABLE_PHASES | {
    OnboardingPhase.ROLE_SELECTION,
    OnboardingPhase.VALIDATING,
}

IN_FLIGHT_PHASES = {OnboardingPhase.VALIDATING, OnboardingPhase.SUBMITTING}


@dataclass
class FailureReason:
    """Why the last submission failed, with the fields to redisplay."""
    kind: str
    message: str
    fields: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: CocoaConnectError) -> "FailureReason":
        details = dict(error.error.details)
        if "missing_fields" in details:
            fields = list(details["missing_fields"]) + list(details.get("invalid_fields", []))
        elif "field" in details:
            fields = [details["field"]]
        else:
            fields = []
        kind = details.get("kind", error.error.code)
        return cls(kind=kind, message=error.error.message, fields=fields, details=details)


@dataclass
class OnboardingState:
    """
    The onboarding draft for one session.

    Location levels hold unit names; ids are resolved at commit time, scoped
    parent by parent. Fields a role does not need are simply left empty.
    """
    email: str = ""
    role: Role | None = None

    full_name: str | None = None
    region: str | None = None
    sub_region: str | None = None
    lga: str | None = None
    ward: str | None = None
    organization_name: str | None = None
    registration_number: str | None = None

    phase: OnboardingPhase = OnboardingPhase.ROLE_SELECTION
    failure: FailureReason | None = None

    started_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        """Set timestamps if not provided."""
        now = datetime.now(timezone.utc).isoformat()
        if not self.started_at:
            self.started_at = now
        if not self.updated_at:
            self.updated_at = now

    # -------------------------------------------------------------------------
    # Field access
    # -------------------------------------------------------------------------

    def value_of(self, profile_field: ProfileField) -> str | None:
        value = getattr(self, profile_field.value)
        if isinstance(value, Role):
            return value.value
        return value

    def location(self, level: Level) -> str | None:
        return getattr(self, level.value)

    @property
    def is_editable(self) -> bool:
        return self.phase in EDITABLE_PHASES

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def set_role(self, role: Role) -> None:
        """
        Choose (or change) the role.

        Every location and detail field is cleared, email is kept. Picking
        the role already held is a no-op.
        """
        self._require(PRE_SUBMIT_PHASES, "change the role")
        role = Role(role)
        if role == self.role and self.phase != OnboardingPhase.ROLE_SELECTION:
            return

        self.role = role
        for level in Level:
            setattr(self, level.value, None)
        for detail in DETAIL_FIELDS:
            setattr(self, detail.value, None)

        self.failure = None
        self.phase = (
            OnboardingPhase.LOCATION_SELECTION
            if requires_location(role)
            else OnboardingPhase.DETAIL_ENTRY
        )
        self._touch()

    def set_location(self, level: Level, unit: AdministrativeUnit | str | None) -> None:
        """
        Select `unit` at `level` (None clears it).

        Every deeper level is cleared: a new region invalidates the old
        sub-region, LGA and ward.
        """
        self._require(EDITABLE_PHASES, "select a location")
        level = Level(level)
        if level.parent is not None and unit is not None and not self.location(level.parent):
            raise InvalidTransition(
                f"Select a {level.parent.value} before the {level.value}",
                {"level": level.value, "missing": level.parent.value},
            )

        name = unit.name if isinstance(unit, AdministrativeUnit) else unit
        setattr(self, level.value, name.strip() if name and name.strip() else None)
        for deeper in level.deeper():
            setattr(self, deeper.value, None)

        self.failure = None
        if self.role is not None and requires_location(self.role):
            self.phase = (
                OnboardingPhase.DETAIL_ENTRY
                if self.ward
                else OnboardingPhase.LOCATION_SELECTION
            )
        else:
            self.phase = OnboardingPhase.DETAIL_ENTRY
        self._touch()

    def set_detail(self, profile_field: ProfileField, value: str | None) -> None:
        """Set full name, organization name or registration number."""
        self._require(EDITABLE_PHASES, "edit profile details")
        profile_field = ProfileField(profile_field)
        if profile_field not in DETAIL_FIELDS:
            raise InvalidTransition(
                f"{profile_field.value} is not a detail field",
                {"field": profile_field.value},
            )
        setattr(self, profile_field.value, value)
        self._leave_failed()
        self._touch()

    def set_email(self, email: str) -> None:
        self._require(EDITABLE_PHASES | {OnboardingPhase.ROLE_SELECTION}, "edit the email")
        self.email = email
        self._leave_failed()
        self._touch()

    def begin_validation(self) -> None:
        if self.phase in IN_FLIGHT_PHASES or self.phase == OnboardingPhase.COMMITTED:
            raise InvalidTransition(
                f"Cannot submit while {self.phase.value}",
                {"phase": self.phase.value},
            )
        self.phase = OnboardingPhase.VALIDATING
        self.failure = None
        self._touch()

    def begin_submission(self) -> None:
        self._require({OnboardingPhase.VALIDATING}, "start submitting")
        self.phase = OnboardingPhase.SUBMITTING
        self._touch()

    def mark_committed(self) -> None:
        self._require({OnboardingPhase.SUBMITTING}, "commit")
        self.phase = OnboardingPhase.COMMITTED
        self._touch()

    def mark_failed(self, reason: FailureReason) -> None:
        self._require(IN_FLIGHT_PHASES, "record a failure")
        self.phase = OnboardingPhase.FAILED
        self.failure = reason
        self._touch()

    def _leave_failed(self) -> None:
        # An edit after a failed submit returns control to detail entry
        if self.phase == OnboardingPhase.FAILED:
            self.phase = OnboardingPhase.DETAIL_ENTRY
            self.failure = None

    def _require(self, allowed: set[OnboardingPhase], action: str) -> None:
        if self.phase not in allowed:
            raise InvalidTransition(
                f"Cannot {action} while {self.phase.value}",
                {"phase": self.phase.value, "action": action},
            )

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc).isoformat()

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Serialize state to dict for JSON responses."""
        data = asdict(self)
        data["role"] = self.role.value if self.role else None
        data["phase"] = self.phase.value
        return data
