"""
Onboarding API Endpoints.

Router for the profile onboarding flow. One in-memory OnboardingSession per
authenticated account; the session is dropped once its profile is committed
or the user abandons it.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from cocoa_connect.auth import AuthenticatedUser, get_current_user
from cocoa_connect.config import settings
from cocoa_connect.db.store import RecordStore, SupabaseRecordStore
from cocoa_connect.errors import CocoaConnectError, NetworkFailure, StoreError
from cocoa_connect.storage import MemorySecureStorage, SecureStorage

from .committer import ProfileCommitter, ProfileRecord, load_role_hint
from .errors import AmbiguousOrMissing, InvalidTransition, NotFound
from .locations import AdministrativeUnit, Level, LocationDirectory
from .roles import ProfileField, get_role_options, parse_role, visible_fields
from .session import OnboardingSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

# In-progress sessions keyed by account id
_sessions: dict[str, OnboardingSession] = {}

_secure_storage = MemorySecureStorage()


# =============================================================================
# Dependencies
# =============================================================================


def get_store() -> RecordStore:
    """Backend store for onboarding lookups and writes."""
    from cocoa_connect.db.client import get_service_client

    return SupabaseRecordStore(get_service_client())


def get_secure_storage() -> SecureStorage:
    return _secure_storage


def get_directory(store: RecordStore = Depends(get_store)) -> LocationDirectory:
    return LocationDirectory(store, collection=settings.units_table)


def get_committer(
    directory: LocationDirectory = Depends(get_directory),
    store: RecordStore = Depends(get_store),
    secure_storage: SecureStorage = Depends(get_secure_storage),
) -> ProfileCommitter:
    return ProfileCommitter(
        directory,
        store,
        secure_storage,
        profiles_collection=settings.profiles_table,
        role_hint_key=settings.role_hint_key,
    )


def get_session(
    user: AuthenticatedUser = Depends(get_current_user),
    directory: LocationDirectory = Depends(get_directory),
    committer: ProfileCommitter = Depends(get_committer),
) -> OnboardingSession:
    """Load the account's session or start a new one."""
    session = _sessions.get(user.account_id)
    if session is None:
        session = OnboardingSession(user, directory, committer)
        _sessions[user.account_id] = session
        logger.info(f"Started onboarding session for {user.account_id}")
    return session


def reset_sessions() -> None:
    """Forget every in-progress session."""
    _sessions.clear()


def to_http_error(error: CocoaConnectError) -> HTTPException:
    """Map an onboarding error to an HTTP status."""
    if isinstance(error, InvalidTransition):
        status = 409
    elif isinstance(error, NotFound):
        status = 404
    elif isinstance(error, AmbiguousOrMissing):
        status = 422
    elif isinstance(error, NetworkFailure):
        status = 503
    elif isinstance(error, StoreError):
        status = 502
    else:
        status = 400
    return HTTPException(status_code=status, detail=error.error.to_dict())


# =============================================================================
# Request/Response Models
# =============================================================================


class RoleRequest(BaseModel):
    role: str


class LocationRequest(BaseModel):
    """Select a unit by name at a level; name=None clears the level."""
    level: Level
    name: str | None = None


class DetailsRequest(BaseModel):
    full_name: str | None = None
    organization_name: str | None = None
    registration_number: str | None = None
    email: str | None = None


class StateResponse(BaseModel):
    """Current onboarding draft."""
    account_id: str
    phase: str
    state: dict
    visible_fields: list[str]
    options: dict[str, list[AdministrativeUnit]] = Field(default_factory=dict)


class SubmitResponse(BaseModel):
    status: str  # committed | failed | rejected
    profile: ProfileRecord | None = None
    failure: dict | None = None


def _state_response(session: OnboardingSession) -> StateResponse:
    return StateResponse(
        account_id=session.identity.account_id,
        phase=session.phase.value,
        state=session.state.to_dict(),
        visible_fields=[f.value for f in visible_fields(session.state.role)],
        options={level.value: units for level, units in session.cascade.options.items()},
    )


# =============================================================================
# Endpoints: Catalogs
# =============================================================================


@router.get("/roles")
async def get_roles():
    """Role picker options with the fields each role fills in."""
    return {"roles": get_role_options()}


@router.get("/locations", response_model=list[AdministrativeUnit])
async def list_locations(
    level: Level,
    parent_id: str | None = None,
    directory: LocationDirectory = Depends(get_directory),
) -> list[AdministrativeUnit]:
    """List the units of `level` under `parent_id` (regions when omitted)."""
    try:
        return await directory.list_children(parent_id, level)
    except CocoaConnectError as e:
        raise to_http_error(e)


# =============================================================================
# Endpoints: Session
# =============================================================================


@router.get("/state", response_model=StateResponse)
async def get_state(session: OnboardingSession = Depends(get_session)) -> StateResponse:
    """Get the current onboarding draft."""
    return _state_response(session)


@router.delete("/state")
async def abandon(user: AuthenticatedUser = Depends(get_current_user)):
    """Abandon the in-progress draft."""
    dropped = _sessions.pop(user.account_id, None) is not None
    return {"abandoned": dropped}


@router.post("/role", response_model=StateResponse)
async def choose_role(
    request: RoleRequest,
    session: OnboardingSession = Depends(get_session),
) -> StateResponse:
    """Choose the participant role. Clears location and details."""
    role = parse_role(request.role)
    if role is None:
        raise HTTPException(status_code=400, detail=f"Unknown role: {request.role}")
    try:
        session.choose_role(role)
        if session.state.is_editable:
            await session.load_options(Level.REGION)
    except CocoaConnectError as e:
        raise to_http_error(e)
    return _state_response(session)


@router.post("/location", response_model=StateResponse)
async def select_location(
    request: LocationRequest,
    session: OnboardingSession = Depends(get_session),
) -> StateResponse:
    """Select a unit at one level; deeper levels are cleared."""
    try:
        if request.name is None or not request.name.strip():
            session.clear_location(request.level)
        else:
            await session.select_location(request.level, request.name)
            if request.level.child is not None:
                await session.load_options(request.level.child)
    except CocoaConnectError as e:
        raise to_http_error(e)
    return _state_response(session)


@router.post("/details", response_model=StateResponse)
async def set_details(
    request: DetailsRequest,
    session: OnboardingSession = Depends(get_session),
) -> StateResponse:
    """Set free-text profile details. Omitted fields are left unchanged."""
    updates = {
        ProfileField.FULL_NAME: request.full_name,
        ProfileField.ORGANIZATION_NAME: request.organization_name,
        ProfileField.REGISTRATION_NUMBER: request.registration_number,
    }
    try:
        if request.email is not None:
            session.set_email(request.email)
        for profile_field, value in updates.items():
            if value is not None:
                session.set_detail(profile_field, value)
    except CocoaConnectError as e:
        raise to_http_error(e)
    return _state_response(session)


@router.post("/submit", response_model=SubmitResponse)
async def submit(
    user: AuthenticatedUser = Depends(get_current_user),
    session: OnboardingSession = Depends(get_session),
) -> SubmitResponse:
    """Validate and commit the draft."""
    result = await session.submit()

    if result.committed:
        _sessions.pop(user.account_id, None)

    return SubmitResponse(
        status=result.status,
        profile=result.record,
        failure=(
            {
                "kind": result.failure.kind,
                "message": result.failure.message,
                "fields": result.failure.fields,
            }
            if result.failure
            else None
        ),
    )


@router.get("/profile", response_model=ProfileRecord)
async def get_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    committer: ProfileCommitter = Depends(get_committer),
) -> ProfileRecord:
    """Get the committed profile for the current account."""
    try:
        profile = await committer.fetch_profile(user.account_id)
    except CocoaConnectError as e:
        raise to_http_error(e)
    if profile is None:
        raise HTTPException(status_code=404, detail="No profile found. Complete onboarding first.")
    return profile


@router.get("/role")
async def get_role(
    user: AuthenticatedUser = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    secure_storage: SecureStorage = Depends(get_secure_storage),
):
    """The account's role: cached hint first, then the stored profile."""
    try:
        role = await load_role_hint(
            secure_storage,
            store,
            user.account_id,
            key=settings.role_hint_key,
            profiles_collection=settings.profiles_table,
        )
    except CocoaConnectError as e:
        raise to_http_error(e)
    return {"role": role.value if role else None}
