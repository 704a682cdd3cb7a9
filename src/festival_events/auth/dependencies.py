"""FastAPI dependencies for authentication.

## Usage

```python
from fastapi import Depends
from festival_events.auth import Claims, get_claims, require_admin

@router.get("/api/collection")
async def my_collection(claims: Claims = Depends(get_claims)):
    ...

@router.get("/api/users")
async def list_users(claims: Claims = Depends(require_admin)):
    # Only admins and super admins get here
    ...
```

Every authenticated request checks the account still exists and is not
locked out. The role in the returned claims is the account's current role,
so role changes apply without signing in again.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.auth.roles import Role, has_permission
from festival_events.auth.session import Claims, verify_session_token
from festival_events.database.connection import get_db_session
from festival_events.database.models import User
from festival_events.errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def is_locked_out(user: User) -> bool:
    """Whether a lockout is in force. Lockouts with an end time lapse on their own."""
    if not user.locked_out:
        return False
    if user.lockout_until is None:
        return True
    until = user.lockout_until
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) < until


async def get_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Claims:
    """Get the caller's claims from the Bearer token.

    Raises 401 if the token is missing, invalid or expired, or its user no
    longer exists, and 403 if the account is locked out.
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    claims = verify_session_token(credentials.credentials)
    if claims is None:
        raise UnauthorizedError("Invalid or expired session")

    user = await db.get(User, claims.user_id)
    if user is None:
        logger.warning(f"Session for non-existent user: {claims.user_id}")
        raise UnauthorizedError("Invalid or expired session")

    if is_locked_out(user):
        logger.info(f"Locked out user {user.id} rejected")
        raise ForbiddenError(user.lockout_reason or "Account is locked")

    return dataclasses.replace(claims, role=user.role)


def require_role(role: Role) -> Callable[..., Awaitable[Claims]]:
    """Build a dependency that requires at least `role`."""

    async def dependency(claims: Claims = Depends(get_claims)) -> Claims:
        if not has_permission(claims.role, role):
            logger.warning(f"User {claims.user_id} lacks role {role.value}")
            raise ForbiddenError(f"{role.value} access required")
        return claims

    return dependency


require_admin = require_role(Role.ADMIN)
require_super_admin = require_role(Role.SUPER_ADMIN)
