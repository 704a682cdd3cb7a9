"""Google sign-in.

Clients sign in with Google Identity Services and send the resulting ID
token (the `credential`) to the API. The token is verified locally:

1. Fetch Google's signing keys (JWKS) from `GOOGLE_CERTS_URL`
2. Pick the key matching the token's `kid` header
3. Check the RS256 signature, expiry and audience (`GOOGLE_CLIENT_ID`)
4. Check the issuer is accounts.google.com

Keys are kept for an hour before being fetched again. A token with an
unknown `kid` triggers an early refetch at most once a minute.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx
from jose import JWTError, jwt
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from festival_events.config import get_settings
from festival_events.errors import UnauthorizedError

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
PROVIDER = "google"
CERTS_MAX_AGE_SECONDS = 3600
# Minimum gap between refetches triggered by an unknown kid
CERTS_FORCED_REFRESH_SECONDS = 60


@dataclass
class GoogleIdentity:
    """Verified identity from a Google ID token."""

    subject: str
    email: str | None
    email_verified: bool
    name: str | None
    picture: str | None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.subject


class GoogleTokenVerifier:
    """Verifies Google ID tokens.

    Example:
        ```python
        verifier = GoogleTokenVerifier()
        identity = await verifier.verify(credential)
        ```
    """

    def __init__(self, client_id: str | None = None, certs_url: str | None = None):
        settings = get_settings()

        self.client_id = client_id or settings.google_client_id
        self.certs_url = certs_url or settings.google_certs_url
        self._certs: list[dict[str, Any]] = []
        self._certs_fetched_at: float | None = None
        self._forced_refresh_at: float | None = None

        if not self.client_id:
            logger.warning(
                "Google sign-in not configured. Set the GOOGLE_CLIENT_ID "
                "environment variable."
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id)

    async def verify(self, credential: str) -> GoogleIdentity:
        """Verify an ID token and return the identity it asserts.

        Raises:
            UnauthorizedError: If the token is malformed, expired, signed by
                an unknown key, or issued for another client
        """
        try:
            header = jwt.get_unverified_header(credential)
        except JWTError as e:
            raise UnauthorizedError("Malformed Google credential") from e

        key = await self._key_for(header.get("kid"))

        try:
            payload = jwt.decode(
                credential,
                key,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"verify_at_hash": False},
            )
        except JWTError as e:
            logger.info(f"Google credential rejected: {e}")
            raise UnauthorizedError("Invalid Google credential") from e

        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise UnauthorizedError("Invalid Google credential issuer")

        return GoogleIdentity(
            subject=str(payload["sub"]),
            email=payload.get("email"),
            email_verified=bool(payload.get("email_verified", False)),
            name=payload.get("name"),
            picture=payload.get("picture"),
        )

    async def _key_for(self, kid: str | None) -> dict[str, Any]:
        if not kid:
            raise UnauthorizedError("Malformed Google credential")

        if (
            self._certs_fetched_at is None
            or time.monotonic() - self._certs_fetched_at > CERTS_MAX_AGE_SECONDS
        ):
            await self._refresh_certs()

        key = next((k for k in self._certs if k.get("kid") == kid), None)
        if key is None and self._may_force_refresh():
            # Google rotates keys; a new kid may not be cached yet
            self._forced_refresh_at = time.monotonic()
            await self._refresh_certs()
            key = next((k for k in self._certs if k.get("kid") == kid), None)

        if key is None:
            raise UnauthorizedError("Google credential signed with unknown key")
        return key

    def _may_force_refresh(self) -> bool:
        if self._forced_refresh_at is None:
            return True
        return time.monotonic() - self._forced_refresh_at >= CERTS_FORCED_REFRESH_SECONDS

    async def _refresh_certs(self) -> None:
        try:
            response = await self._fetch_certs()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch Google signing keys: {e}")
            raise UnauthorizedError("Google credential could not be verified") from e
        try:
            keys = response.json().get("keys", [])
        except (ValueError, AttributeError) as e:
            logger.error(f"Google signing keys response is not a JWKS document: {e}")
            raise UnauthorizedError("Google credential could not be verified") from e
        self._certs = keys
        self._certs_fetched_at = time.monotonic()
        logger.debug(f"Fetched {len(self._certs)} Google signing keys")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def _fetch_certs(self) -> httpx.Response:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(self.certs_url)
            response.raise_for_status()
            return response


@lru_cache
def get_google_verifier() -> GoogleTokenVerifier:
    """Get cached Google token verifier instance."""
    return GoogleTokenVerifier()
