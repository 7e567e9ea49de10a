"""
Cocoa Connect Onboarding.

Role-conditional onboarding with hierarchical location resolution. A new
participant:

1. Picks a role (producer, processing-site owner, storage operator, organization)
2. Walks the region -> sub-region -> LGA -> ward pickers, when the role needs it
3. Fills in the role's details (name, organization, registration number)
4. Submits: the draft is validated, location names are resolved to ids and
   the profile is upserted on the account id
"""

from .locations import AdministrativeUnit, Level, LocationDirectory
from .roles import ProfileField, Role, required_fields
from .state import OnboardingPhase, OnboardingState
from .session import OnboardingSession, SubmitResult

__all__ = [
    "AdministrativeUnit",
    "Level",
    "LocationDirectory",
    "OnboardingPhase",
    "OnboardingSession",
    "OnboardingState",
    "ProfileField",
    "Role",
    "SubmitResult",
    "required_fields",
]
