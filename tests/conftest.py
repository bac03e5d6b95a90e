"""
Shared fixtures: Ed25519 key pairs, stores and wired-up services.
"""

import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from seedkey_core.audit import AuditLogger
from seedkey_core.config import SeedKeyConfig
from seedkey_core.crypto.challenge import canonicalize_challenge
from seedkey_core.services import AuthService, TokenService
from seedkey_core.storage import create_memory_stores
from seedkey_core.tokens import JWTTokenIssuer

DOMAIN = "example.com"
JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"


class KeyPair:
    """A client-side Ed25519 identity."""

    def __init__(self):
        self._private_key = Ed25519PrivateKey.generate()
        raw = self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.public_key = base64.b64encode(raw).decode("ascii")

    def sign(self, message) -> str:
        if isinstance(message, str):
            message = message.encode("utf-8")
        return base64.b64encode(self._private_key.sign(message)).decode("ascii")

    def sign_challenge(self, challenge) -> str:
        return self.sign(canonicalize_challenge(challenge))


@pytest.fixture
def keypair():
    return KeyPair()


@pytest.fixture
def other_keypair():
    return KeyPair()


@pytest.fixture
def config():
    return SeedKeyConfig(allowed_domains=[DOMAIN])


@pytest.fixture
def stores():
    return create_memory_stores()


@pytest.fixture
def issuer():
    return JWTTokenIssuer(JWT_SECRET)


@pytest.fixture
def audit():
    return AuditLogger("seedkey-test")


@pytest.fixture
def auth_service(config, stores, issuer, audit):
    return AuthService(
        config,
        stores.users,
        stores.challenges,
        stores.sessions,
        generate_tokens=issuer,
        audit=audit,
    )


@pytest.fixture
def token_service(issuer, stores, audit):
    return TokenService(issuer, stores.users, stores.sessions, audit=audit)


@pytest.fixture
def register_user(auth_service):
    """Run the full registration flow for a key pair."""

    async def _register(kp: KeyPair):
        result = await auth_service.create_challenge(
            {"publicKey": kp.public_key, "action": "register"}
        )
        assert result.success, result.error
        return await auth_service.register({
            "publicKey": kp.public_key,
            "challenge": result.challenge.to_dict(),
            "signature": kp.sign_challenge(result.challenge),
        })

    return _register
