"""Authentication routes.

## Sign-in Flow

1. POST /auth/google/signup - First sign-in: create the account
2. POST /auth/google/login - Later sign-ins
3. GET /auth/me - Who the session token belongs to

Both sign-in routes take `{"credential": "<Google ID token>"}` and return
`{"token": "<session token>", "user": {...}}`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.api.routes.users import UserResponse
from festival_events.auth.dependencies import get_claims, is_locked_out
from festival_events.auth.google import (
    PROVIDER,
    GoogleIdentity,
    GoogleTokenVerifier,
    get_google_verifier,
)
from festival_events.auth.session import Claims, create_session_token
from festival_events.database.connection import get_db_session
from festival_events.database.models import User
from festival_events.errors import ConflictError, ForbiddenError
from festival_events.stores.users import UserStore

logger = logging.getLogger(__name__)

router = APIRouter()


class GoogleCredential(BaseModel):
    credential: str


class SessionResponse(BaseModel):
    """Session token and the signed-in user."""

    token: str
    user: UserResponse


async def _verify(credential: GoogleCredential, verifier: GoogleTokenVerifier) -> GoogleIdentity:
    if not verifier.is_configured:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Google sign-in not configured",
        )
    return await verifier.verify(credential.credential)


def _session_for(user: User) -> SessionResponse:
    token = create_session_token(
        user_id=user.id,
        email=user.email,
        username=user.user_name,
        role=user.role,
    )
    return SessionResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/google/signup", response_model=SessionResponse, status_code=201)
async def google_signup(
    credential: GoogleCredential,
    verifier: GoogleTokenVerifier = Depends(get_google_verifier),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    """Create an account from a Google ID token."""
    identity = await _verify(credential, verifier)
    users = UserStore(db)

    if await users.find_by_oauth(PROVIDER, identity.subject) is not None:
        raise ConflictError("An account already exists for this Google identity, log in instead")

    try:
        user = await users.create(
            provider=PROVIDER,
            oauth_id=identity.subject,
            user_name=identity.display_name,
            email=identity.email,
            email_verified=identity.email_verified,
            profile_picture_url=identity.picture,
        )
        await users.record_login(user)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(
            "An account already exists for this Google identity, log in instead"
        ) from e

    logger.info(f"User {user.id} signed up")
    return _session_for(user)


@router.post("/google/login", response_model=SessionResponse)
async def google_login(
    credential: GoogleCredential,
    verifier: GoogleTokenVerifier = Depends(get_google_verifier),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    """Sign in to an existing account with a Google ID token."""
    identity = await _verify(credential, verifier)
    users = UserStore(db)

    user = await users.find_by_oauth(PROVIDER, identity.subject)
    if user is None:
        raise ConflictError("No account for this Google identity, create an account instead")

    if is_locked_out(user):
        logger.info(f"Locked out user {user.id} tried to log in")
        raise ForbiddenError(user.lockout_reason or "Account is locked")

    # Keep profile in step with Google
    user.email = identity.email
    user.email_verified = identity.email_verified
    user.profile_picture_url = identity.picture
    await users.record_login(user)
    await db.commit()

    logger.info(f"User {user.id} logged in")
    return _session_for(user)


@router.get("/me", response_model=UserResponse)
async def get_auth_status(
    claims: Claims = Depends(get_claims),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Get the user the session token belongs to."""
    user = await UserStore(db).find_by_id(claims.user_id)
    return UserResponse.model_validate(user)
