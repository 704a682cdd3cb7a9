"""Session tokens.

After Google sign-in the API issues its own signed JWT. Clients send it back
as `Authorization: Bearer <token>`.

## Token Structure

```json
{
  "sub": "user-uuid",
  "email": "ada@example.com",
  "username": "Ada",
  "role": "user",
  "iat": 1234567890,
  "exp": 1235172690,
  "type": "session"
}
```

Tokens are HS256-signed with `SECRET_KEY` and expire after
`SESSION_MAX_AGE_SECONDS` (default: 7 days).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from festival_events.config import get_settings

logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "session"


@dataclass(frozen=True)
class Claims:
    """The caller's identity, as carried by a session token."""

    user_id: str
    email: str | None
    username: str
    role: str
    issued_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > self.expires_at


def create_session_token(
    user_id: str,
    email: str | None,
    username: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token.

    Args:
        user_id: The user's id, stored as `sub`
        email: The user's email
        username: Display name
        role: Role at the time of sign-in
        expires_delta: Custom lifetime (or use default from settings)

    Returns:
        Signed JWT token string
    """
    settings = get_settings()

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(seconds=settings.session_max_age_seconds)

    payload = {
        "sub": user_id,
        "email": email,
        "username": username,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "type": TOKEN_TYPE,
    }

    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def verify_session_token(token: str) -> Claims | None:
    """Verify and decode a session token.

    Returns:
        Claims if valid, None if invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Session token verification failed: {e}")
        return None

    if payload.get("type") != TOKEN_TYPE:
        logger.debug("Invalid token type")
        return None

    try:
        claims = Claims(
            user_id=str(payload["sub"]),
            email=payload.get("email"),
            username=payload.get("username") or "",
            role=payload.get("role") or "user",
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"Invalid token payload: {e}")
        return None

    if claims.is_expired:
        logger.debug("Session token expired")
        return None

    return claims
