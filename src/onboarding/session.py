"""
Onboarding Session.

One account's onboarding attempt: the draft, the cascading pickers and the
submit flow. Every onboarding error raised while submitting is recovered
here and recorded on the draft as a FailureReason; entered data is never
discarded on failure.
"""

import logging
from dataclasses import dataclass

from cocoa_connect.auth import AccountIdentity
from cocoa_connect.errors import CocoaConnectError

from .cascade import LocationCascade
from .committer import ProfileCommitter, ProfileRecord
from .errors import InvalidTransition, ValidationError
from .locations import AdministrativeUnit, Level, LocationDirectory
from .roles import ProfileField, Role, visible_fields
from .state import FailureReason, IN_FLIGHT_PHASES, OnboardingPhase, OnboardingState
from .validator import validate_for_role

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """
    Outcome of submit().

    accepted=False means the call was rejected as a no-op (a submission was
    already in flight, or the profile is already committed).
    """
    accepted: bool
    record: ProfileRecord | None = None
    failure: FailureReason | None = None

    @property
    def committed(self) -> bool:
        return self.accepted and self.record is not None

    @property
    def status(self) -> str:
        if not self.accepted:
            return "rejected"
        return "committed" if self.record is not None else "failed"


class OnboardingSession:
    """Drives a single onboarding attempt for one account."""

    def __init__(
        self,
        identity: AccountIdentity,
        directory: LocationDirectory,
        committer: ProfileCommitter,
    ):
        self.identity = identity
        self.directory = directory
        self.committer = committer
        self.state = OnboardingState(email=identity.email or "")
        self.cascade = LocationCascade(directory)
        self.record: ProfileRecord | None = None

    @property
    def phase(self) -> OnboardingPhase:
        return self.state.phase

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def choose_role(self, role: Role) -> list[ProfileField]:
        """Set the role and return the fields to show for it."""
        previous = self.state.role
        self.state.set_role(role)
        if self.state.role != previous:
            self.cascade.reset()
        return visible_fields(self.state.role)

    async def load_options(self, level: Level) -> list[AdministrativeUnit] | None:
        """Load picker options for `level`; None if the result went stale."""
        return await self.cascade.load_options(level)

    async def select_location(self, level: Level, choice: AdministrativeUnit | str) -> AdministrativeUnit:
        """
        Select a unit (or a unit name) at `level`.

        Options for the level are loaded first if the picker has none yet.
        """
        level = Level(level)
        if not self.state.is_editable:
            raise InvalidTransition(
                f"Cannot select a location while {self.state.phase.value}",
                {"phase": self.state.phase.value},
            )
        if isinstance(choice, str) and level not in self.cascade.options:
            await self.cascade.load_options(level)

        unit = self.cascade.find_option(level, choice)
        self.state.set_location(level, unit)
        self.cascade.select(level, unit)
        return unit

    def clear_location(self, level: Level) -> None:
        level = Level(level)
        self.state.set_location(level, None)
        self.cascade.clear(level)

    def set_detail(self, profile_field: ProfileField, value: str | None) -> None:
        self.state.set_detail(profile_field, value)

    def set_email(self, email: str) -> None:
        self.state.set_email(email)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def submit(self) -> SubmitResult:
        """
        Validate and commit the draft.

        Only one submission may be in flight: a call made while another is
        unresolved is rejected without touching the backend.
        """
        if self.state.phase in IN_FLIGHT_PHASES:
            logger.info(f"Submit rejected for {self.identity.account_id}: already {self.state.phase.value}")
            return SubmitResult(accepted=False)
        if self.state.phase == OnboardingPhase.COMMITTED:
            return SubmitResult(accepted=False, record=self.record)

        self.state.begin_validation()
        result = validate_for_role(self.state)
        if not result.is_valid:
            return self._fail(ValidationError(list(result.missing_fields), list(result.invalid_fields)))

        self.state.begin_submission()
        try:
            record = await self.committer.commit(self.state, self.identity)
        except CocoaConnectError as e:
            return self._fail(e)
        except Exception as e:
            self.state.mark_failed(FailureReason(kind="unexpected", message=str(e)))
            raise

        self.state.mark_committed()
        self.record = record
        return SubmitResult(accepted=True, record=record)

    def _fail(self, error: CocoaConnectError) -> SubmitResult:
        reason = FailureReason.from_error(error)
        logger.info(f"Onboarding submit failed for {self.identity.account_id}: {reason.kind} {reason.fields}")
        self.state.mark_failed(reason)
        return SubmitResult(accepted=True, failure=reason)
