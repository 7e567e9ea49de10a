"""
Role Registry.

The closed set of participant roles and, for each, the profile fields it
must fill in beyond role and email. This table drives both which fields the
app shows and what the validator demands; nothing else encodes the rule.
"""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Participant roles in the cocoa value chain."""
    PRODUCER = "producer"
    PROCESSING_SITE_OWNER = "processing_site_owner"
    STORAGE_OPERATOR = "storage_operator"
    ORGANIZATION = "organization"


class ProfileField(str, Enum):
    """Onboarding fields, in declared (validation and display) order."""
    ROLE = "role"
    EMAIL = "email"
    FULL_NAME = "full_name"
    REGION = "region"
    SUB_REGION = "sub_region"
    LGA = "lga"
    WARD = "ward"
    ORGANIZATION_NAME = "organization_name"
    REGISTRATION_NUMBER = "registration_number"


ALWAYS_REQUIRED: tuple[ProfileField, ...] = (ProfileField.ROLE, ProfileField.EMAIL)

LOCATION_FIELDS: tuple[ProfileField, ...] = (
    ProfileField.REGION,
    ProfileField.SUB_REGION,
    ProfileField.LGA,
    ProfileField.WARD,
)

# Fields cleared whenever the role changes (everything except email)
DETAIL_FIELDS: tuple[ProfileField, ...] = (
    ProfileField.FULL_NAME,
    ProfileField.ORGANIZATION_NAME,
    ProfileField.REGISTRATION_NUMBER,
)


_REQUIRED: dict[Role, frozenset[ProfileField]] = {
    Role.PRODUCER: frozenset({ProfileField.FULL_NAME, *LOCATION_FIELDS}),
    Role.PROCESSING_SITE_OWNER: frozenset(
        {ProfileField.FULL_NAME, *LOCATION_FIELDS, ProfileField.REGISTRATION_NUMBER}
    ),
    Role.STORAGE_OPERATOR: frozenset({ProfileField.ORGANIZATION_NAME}),
    Role.ORGANIZATION: frozenset({ProfileField.ORGANIZATION_NAME}),
}

_unmapped = set(Role) - set(_REQUIRED)
if _unmapped:
    raise RuntimeError(f"Roles without a field contract: {sorted(r.value for r in _unmapped)}")


def required_fields(role: Role) -> frozenset[ProfileField]:
    """Fields `role` must fill in beyond role and email."""
    try:
        return _REQUIRED[Role(role)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown role: {role!r}") from None


def requires_location(role: Role) -> bool:
    """True when the role places itself in the administrative hierarchy."""
    return ProfileField.REGION in required_fields(role)


def visible_fields(role: Role | None) -> list[ProfileField]:
    """Fields the app should show for `role`, in declared order."""
    if role is None:
        return list(ALWAYS_REQUIRED)
    wanted = set(ALWAYS_REQUIRED) | required_fields(role)
    return [f for f in ProfileField if f in wanted]


def sort_fields(fields) -> list[ProfileField]:
    """Order any collection of fields by declaration order."""
    wanted = set(fields)
    return [f for f in ProfileField if f in wanted]


# =============================================================================
# Display catalog
# =============================================================================

@dataclass(frozen=True)
class RoleInfo:
    """How a role is presented on the role picker."""
    role: Role
    label: str
    description: str


ROLE_CATALOG: dict[Role, RoleInfo] = {
    Role.PRODUCER: RoleInfo(
        Role.PRODUCER,
        "Farmer",
        "Track harvests, see local prices and connect with buyers.",
    ),
    Role.PROCESSING_SITE_OWNER: RoleInfo(
        Role.PROCESSING_SITE_OWNER,
        "Fermentary Owner",
        "Publish fermentary prices for the wards you buy from.",
    ),
    Role.STORAGE_OPERATOR: RoleInfo(
        Role.STORAGE_OPERATOR,
        "Warehouse / Exporter",
        "Post warehouse prices and reach processing sites.",
    ),
    Role.ORGANIZATION: RoleInfo(
        Role.ORGANIZATION,
        "Organization",
        "Share news and tips, support cocoa communities.",
    ),
}

# Labels older app builds wrote to the role column and the secure store
_LEGACY_ALIASES: dict[str, Role] = {
    "farmer": Role.PRODUCER,
    "fermentaryowner": Role.PROCESSING_SITE_OWNER,
    "fermentary owner": Role.PROCESSING_SITE_OWNER,
    "warehouse": Role.STORAGE_OPERATOR,
    "exporter": Role.STORAGE_OPERATOR,
    "organization": Role.ORGANIZATION,
}


def parse_role(value: str | Role | None) -> Role | None:
    """
    Parse a stored or user-supplied role.

    Accepts canonical values ("producer") and legacy labels ("Farmer",
    "FermentaryOwner", "Warehouse"). Returns None for blank or unknown input.
    """
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    key = value.strip().lower()
    if not key:
        return None
    try:
        return Role(key)
    except ValueError:
        return _LEGACY_ALIASES.get(key)


def get_role_options() -> list[dict]:
    """Role picker options for frontend rendering."""
    return [
        {
            "id": info.role.value,
            "label": info.label,
            "description": info.description,
            "fields": [f.value for f in visible_fields(info.role)],
            "requires_location": requires_location(info.role),
        }
        for info in ROLE_CATALOG.values()
    ]
