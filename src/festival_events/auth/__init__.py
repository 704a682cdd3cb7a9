"""Authentication and authorization.

## Sign-in Flow

1. Client signs in with Google and receives an ID token
2. Client posts it to /auth/google/signup or /auth/google/login
3. API verifies the token against Google's signing keys
4. API creates/updates the user and returns its own session token
5. Client sends the session token as `Authorization: Bearer ...`

## Authorization

- Role gate: user < admin < super_admin
- Ownership gate: admins, or the user whose created set holds the id
"""

from festival_events.auth.google import (
    GoogleIdentity,
    GoogleTokenVerifier,
    get_google_verifier,
)
from festival_events.auth.roles import (
    Role,
    has_permission,
    require_owner_or_admin,
)
from festival_events.auth.session import (
    Claims,
    create_session_token,
    verify_session_token,
)
from festival_events.auth.dependencies import (
    get_claims,
    require_admin,
    require_role,
    require_super_admin,
)

__all__ = [
    "GoogleIdentity",
    "GoogleTokenVerifier",
    "get_google_verifier",
    "Role",
    "has_permission",
    "require_owner_or_admin",
    "Claims",
    "create_session_token",
    "verify_session_token",
    "get_claims",
    "require_admin",
    "require_role",
    "require_super_admin",
]
