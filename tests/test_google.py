"""Tests for Google ID token verification."""

import time
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from festival_events.auth.google import CERTS_FORCED_REFRESH_SECONDS, GoogleTokenVerifier
from festival_events.errors import UnauthorizedError

CLIENT_ID = "client-123.apps.googleusercontent.com"


@pytest.fixture(scope="module")
def signing_key() -> tuple[str, dict]:
    """An RSA private key (PEM) and its public JWK with kid "key-1"."""
    private = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = private.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = "key-1"
    return private_pem, public_jwk


@pytest.fixture
def verifier(signing_key) -> GoogleTokenVerifier:
    _, public_jwk = signing_key
    response = MagicMock()
    response.json.return_value = {"keys": [public_jwk]}

    verifier = GoogleTokenVerifier(client_id=CLIENT_ID)
    verifier._fetch_certs = AsyncMock(return_value=response)
    return verifier


def make_credential(signing_key, kid: str = "key-1", **overrides) -> str:
    private_pem, _ = signing_key
    now = int(time.time())
    claims = {
        "iss": "https://accounts.google.com",
        "aud": CLIENT_ID,
        "sub": "1234567890",
        "email": "ada@example.com",
        "email_verified": True,
        "name": "Ada Lovelace",
        "iat": now,
        "exp": now + 600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


class TestGoogleTokenVerifier:
    async def test_valid_credential(self, verifier, signing_key):
        identity = await verifier.verify(make_credential(signing_key))

        assert identity.subject == "1234567890"
        assert identity.email == "ada@example.com"
        assert identity.email_verified is True
        assert identity.display_name == "Ada Lovelace"

    async def test_keys_are_cached(self, verifier, signing_key):
        await verifier.verify(make_credential(signing_key))
        await verifier.verify(make_credential(signing_key))

        assert verifier._fetch_certs.await_count == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"aud": "someone-else"},
            {"iss": "https://evil.example.com"},
            {"exp": int(time.time()) - 60},
        ],
    )
    async def test_rejected_claims(self, verifier, signing_key, overrides):
        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_credential(signing_key, **overrides))

    async def test_unknown_key_refetches_then_rejects(self, verifier, signing_key):
        await verifier.verify(make_credential(signing_key))

        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_credential(signing_key, kid="rotated"))
        assert verifier._fetch_certs.await_count == 2

    async def test_unknown_keys_refetch_at_most_once_a_minute(self, verifier, signing_key):
        await verifier.verify(make_credential(signing_key))

        for _ in range(5):
            with pytest.raises(UnauthorizedError):
                await verifier.verify(make_credential(signing_key, kid="rotated"))
        assert verifier._fetch_certs.await_count == 2

        verifier._forced_refresh_at -= CERTS_FORCED_REFRESH_SECONDS
        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_credential(signing_key, kid="rotated"))
        assert verifier._fetch_certs.await_count == 3

    async def test_keys_response_not_json(self, signing_key):
        response = MagicMock()
        response.json.side_effect = ValueError("Expecting value")
        verifier = GoogleTokenVerifier(client_id=CLIENT_ID)
        verifier._fetch_certs = AsyncMock(return_value=response)

        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_credential(signing_key))

    async def test_malformed_credential(self, verifier):
        with pytest.raises(UnauthorizedError):
            await verifier.verify("not-a-jwt")

    async def test_key_fetch_failure(self, signing_key):
        verifier = GoogleTokenVerifier(client_id=CLIENT_ID)
        verifier._fetch_certs = AsyncMock(side_effect=httpx.ConnectError("down"))

        with pytest.raises(UnauthorizedError):
            await verifier.verify(make_credential(signing_key))

    def test_not_configured(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "")

        assert GoogleTokenVerifier().is_configured is False
