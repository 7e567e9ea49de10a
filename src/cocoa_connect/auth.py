"""
Account identity.

Cocoa Connect never authenticates anyone itself: Supabase Auth issues the
session and we only read back who the access token belongs to.
"""

import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class AccountIdentity(BaseModel):
    """The account an onboarding session belongs to."""
    account_id: str
    email: str | None = None


class AuthenticatedUser(AccountIdentity):
    """Identity plus the bearer token it was read from."""
    access_token: str


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """
    Validate a Supabase JWT and extract the account.

    Expects Authorization header: "Bearer <access_token>"
    """
    from cocoa_connect.db.client import get_service_client

    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization format")

    access_token = authorization[7:]  # Remove "Bearer " prefix

    try:
        client = get_service_client()
        user_response = client.auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Auth validation failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = user_response.user
    return AuthenticatedUser(
        account_id=user.id,
        email=user.email,
        access_token=access_token,
    )
