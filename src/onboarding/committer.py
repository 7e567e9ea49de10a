"""
Profile Committer.

Turns a validated onboarding draft into a `profiles` record:

1. Resolve location names to ids, region first, each scoped by the id
   resolved above it. Any failure aborts before anything is written.
2. Build the record. Registration number and organization name are written
   only for roles that require them; otherwise they are explicitly null.
3. Upsert on account_id. created_at is kept from the existing record.
4. Cache the role in secure storage under the account's key (best-effort).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

import pydantic
from pydantic import BaseModel

from cocoa_connect.auth import AccountIdentity
from cocoa_connect.db.store import RecordStore
from cocoa_connect.errors import NetworkFailure, StoreError
from cocoa_connect.storage import SecureStorage

from .errors import (
    AmbiguousOrMissing,
    CommitError,
    CommitErrorKind,
    LocationResolutionFailed,
    ValidationError,
)
from .locations import Level, LocationDirectory
from .roles import ProfileField, Role, parse_role, required_fields
from .state import OnboardingState
from .validator import validate_for_role

logger = logging.getLogger(__name__)


class ProfileRecord(BaseModel):
    """A persisted participant profile, keyed by account id."""
    account_id: str
    email: str
    full_name: str | None = None
    role: Role
    region_id: str | None = None
    sub_region_id: str | None = None
    lga_id: str | None = None
    ward_id: str | None = None
    registration_number: str | None = None
    organization_name: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    def to_row(self) -> dict:
        return self.model_dump(mode="json")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class ProfileCommitter:
    """Persists onboarding drafts as profile records."""

    def __init__(
        self,
        directory: LocationDirectory,
        store: RecordStore,
        secure_storage: SecureStorage | None = None,
        *,
        profiles_collection: str = "profiles",
        role_hint_key: str = "user_role",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.directory = directory
        self.store = store
        self.secure_storage = secure_storage
        self.profiles_collection = profiles_collection
        self.role_hint_key = role_hint_key
        self.clock = clock

    async def commit(self, state: OnboardingState, identity: AccountIdentity) -> ProfileRecord:
        """
        Write `state` as the profile of `identity`.

        Raises ValidationError if the draft is incomplete and CommitError for
        everything else. Nothing is retried; the user resubmits.
        """
        account_id = self._check_account_id(identity.account_id)

        result = validate_for_role(state)
        if not result.is_valid:
            raise ValidationError(list(result.missing_fields), list(result.invalid_fields))

        role = state.role
        location_ids = await self._resolve_locations(state)

        try:
            existing = await self.fetch_profile(account_id)
        except StoreError as e:
            raise self._store_failure(e, "read the existing profile") from e

        now = self.clock()
        required = required_fields(role)
        record = ProfileRecord(
            account_id=account_id,
            email=state.email.strip(),
            full_name=_clean(state.full_name),
            role=role,
            region_id=location_ids.get(Level.REGION),
            sub_region_id=location_ids.get(Level.SUB_REGION),
            lga_id=location_ids.get(Level.LGA),
            ward_id=location_ids.get(Level.WARD),
            registration_number=(
                _clean(state.registration_number)
                if ProfileField.REGISTRATION_NUMBER in required
                else None
            ),
            organization_name=(
                _clean(state.organization_name)
                if ProfileField.ORGANIZATION_NAME in required
                else None
            ),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )

        try:
            row = await self.store.upsert(
                self.profiles_collection, record.to_row(), on_conflict="account_id"
            )
        except StoreError as e:
            raise self._store_failure(e, "save the profile") from e

        logger.info(
            f"{'Updated' if existing else 'Created'} profile {account_id} as {role.value}"
        )
        await self._cache_role(account_id, role)
        return ProfileRecord.model_validate(row)

    async def fetch_profile(self, account_id: str) -> ProfileRecord | None:
        """
        Load the stored profile for `account_id`, if any.

        Roles written by older app builds (labels such as "Farmer") are mapped
        to their current value. Raises StoreError if the row is unusable.
        """
        rows = await self.store.select(self.profiles_collection, {"account_id": account_id})
        if not rows:
            return None

        row = dict(rows[0])
        role = parse_role(row.get("role"))
        if role is not None:
            row["role"] = role
        try:
            return ProfileRecord.model_validate(row)
        except pydantic.ValidationError as e:
            logger.error(f"Stored profile {account_id} is malformed: {e}")
            bad = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise StoreError(
                f"Stored profile {account_id} is malformed",
                {"account_id": account_id, "errors": bad},
            ) from e

    async def _resolve_locations(self, state: OnboardingState) -> dict[Level, str]:
        """
        Resolve the selected names, narrowest known scope first.

        Stops at the first unselected level; deeper levels stay null.
        """
        ids: dict[Level, str] = {}
        parent_id: str | None = None

        for level in Level:
            name = state.location(level)
            if not name:
                break
            try:
                parent_id = await self.directory.resolve_id(name, level, parent_id)
            except AmbiguousOrMissing as e:
                cause = LocationResolutionFailed(level, name)
                raise CommitError(
                    CommitErrorKind.LOCATION_RESOLUTION_FAILED,
                    str(cause),
                    field=level.field,
                    details={"level": level.value, "name": name, "matches": e.matches},
                ) from cause
            except NetworkFailure as e:
                raise CommitError(
                    CommitErrorKind.NETWORK_FAILURE,
                    f"Network failure resolving {level.value} {name!r}",
                    field=level.field,
                    details=e.error.details,
                ) from e
            except StoreError as e:
                raise CommitError(
                    CommitErrorKind.LOCATION_RESOLUTION_FAILED,
                    f"Backend error resolving {level.value} {name!r}",
                    field=level.field,
                    details={"level": level.value, "name": name, **e.error.details},
                ) from e
            ids[level] = parent_id

        return ids

    async def _cache_role(self, account_id: str, role: Role) -> None:
        if self.secure_storage is None:
            return
        try:
            await self.secure_storage.set(role_hint_key(self.role_hint_key, account_id), role.value)
        except Exception as e:
            logger.warning(f"Could not cache role hint: {e}")

    @staticmethod
    def _check_account_id(account_id: str | None) -> str:
        try:
            return str(uuid.UUID(str(account_id)))
        except ValueError:
            raise CommitError(
                CommitErrorKind.INVALID_ACCOUNT,
                "Invalid account id",
                details={"account_id": account_id},
            ) from None

    @staticmethod
    def _store_failure(error: StoreError, action: str) -> CommitError:
        kind = (
            CommitErrorKind.NETWORK_FAILURE
            if isinstance(error, NetworkFailure)
            else CommitErrorKind.WRITE_REJECTED
        )
        logger.error(f"Failed to {action}: {error}")
        return CommitError(kind, f"Failed to {action}", details=error.error.details)


def role_hint_key(key: str, account_id: str) -> str:
    """Storage key of the cached role for one account."""
    return f"{key}:{account_id}"


async def load_role_hint(
    secure_storage: SecureStorage,
    store: RecordStore,
    account_id: str,
    *,
    key: str = "user_role",
    profiles_collection: str = "profiles",
) -> Role | None:
    """
    Return the account's role, preferring the cached hint.

    Falls back to the stored profile and refreshes the cache from it. The
    cache is never authoritative: an unreadable hint is ignored.
    """
    hint_key = role_hint_key(key, account_id)
    try:
        cached = parse_role(await secure_storage.get(hint_key))
    except Exception as e:
        logger.warning(f"Could not read role hint: {e}")
        cached = None
    if cached is not None:
        return cached

    rows = await store.select(profiles_collection, {"account_id": account_id})
    role = parse_role(rows[0].get("role")) if rows else None
    if role is not None:
        try:
            await secure_storage.set(hint_key, role.value)
        except Exception as e:
            logger.warning(f"Could not cache role hint: {e}")
    return role
