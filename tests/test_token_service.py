"""
Unit Tests for Tokens
=====================
JWT issuing/decoding and the bearer, refresh and logout flows.
"""

import pytest

from conftest import JWT_SECRET


class TestJWTTokenIssuer:
    """Tests for the JWT issuer."""

    @pytest.mark.asyncio
    async def test_issue_and_decode(self, issuer):
        """Both tokens carry the session claims with their own type."""
        tokens = await issuer("user_1", "key_1", "ses_1")

        access = issuer.decode(tokens.access_token)
        refresh = issuer.decode(tokens.refresh_token)

        assert tokens.expires_in == 3600
        assert (access.sub, access.public_key_id, access.session_id) == ("user_1", "key_1", "ses_1")
        assert access.type == "access"
        assert refresh.type == "refresh"
        assert refresh.exp - refresh.iat == 30 * 24 * 60 * 60

    @pytest.mark.asyncio
    async def test_expected_type(self, issuer):
        from seedkey_core.models import TokenType

        tokens = await issuer("user_1", "key_1", "ses_1")

        assert issuer.decode(tokens.access_token, TokenType.REFRESH) is None
        assert issuer.decode(tokens.refresh_token, TokenType.REFRESH) is not None

    @pytest.mark.asyncio
    async def test_wrong_secret(self, issuer):
        from seedkey_core.tokens import JWTTokenIssuer

        tokens = await issuer("user_1", "key_1", "ses_1")
        other = JWTTokenIssuer(JWT_SECRET + "-other")

        assert other.decode(tokens.access_token) is None

    @pytest.mark.asyncio
    async def test_expired_token(self):
        from seedkey_core.tokens import JWTTokenIssuer

        issuer = JWTTokenIssuer(JWT_SECRET, access_ttl=-10)
        tokens = await issuer("user_1", "key_1", "ses_1")

        assert issuer.decode(tokens.access_token) is None

    def test_garbage_token(self, issuer):
        assert issuer.decode("not.a.jwt") is None

    def test_secret_required(self):
        from seedkey_core.tokens import JWTTokenIssuer

        with pytest.raises(ValueError):
            JWTTokenIssuer("")


class TestTokenService:
    """Tests for bearer authentication, refresh and logout."""

    @pytest.mark.asyncio
    async def test_authenticate(self, token_service, register_user, keypair):
        registered = await register_user(keypair)

        payload = await token_service.authenticate(f"Bearer {registered.tokens.access_token}")

        assert payload.sub == registered.user.id
        assert payload.session_id == registered.session.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc"])
    async def test_authenticate_requires_bearer(self, token_service, header):
        from seedkey_core.errors import SeedKeyError

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.authenticate(header)

        assert exc_info.value.code == "UNAUTHORIZED"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_authenticate_rejects_refresh_token(self, token_service, register_user, keypair):
        """Refresh tokens cannot be used as access tokens."""
        from seedkey_core.errors import SeedKeyError

        registered = await register_user(keypair)

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.authenticate(f"Bearer {registered.tokens.refresh_token}")

        assert exc_info.value.code == "INVALID_TOKEN"
        assert exc_info.value.message == "Invalid token type"

    @pytest.mark.asyncio
    async def test_authenticate_invalid_token(self, token_service):
        from seedkey_core.errors import SeedKeyError

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.authenticate("Bearer garbage")

        assert exc_info.value.code == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_refresh(self, token_service, register_user, issuer, keypair):
        registered = await register_user(keypair)

        tokens = await token_service.refresh(registered.tokens.refresh_token)

        payload = issuer.decode(tokens.access_token)
        assert payload.type == "access"
        assert payload.session_id == registered.session.id
        assert payload.public_key_id == registered.key_info.id

    @pytest.mark.asyncio
    async def test_refresh_requires_token(self, token_service):
        from seedkey_core.errors import SeedKeyError

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.refresh(None)

        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.message == "refreshToken is required"

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, token_service, register_user, keypair):
        from seedkey_core.errors import SeedKeyError

        registered = await register_user(keypair)

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.refresh(registered.tokens.access_token)

        assert exc_info.value.code == "INVALID_TOKEN"
        assert exc_info.value.message == "Invalid token type"

    @pytest.mark.asyncio
    async def test_refresh_garbage(self, token_service):
        from seedkey_core.errors import SeedKeyError

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.refresh("garbage")

        assert exc_info.value.message == "Invalid or expired refresh token"

    @pytest.mark.asyncio
    async def test_refresh_unknown_user(self, token_service, issuer, stores):
        """A valid session whose user is gone is USER_NOT_FOUND."""
        from seedkey_core.errors import SeedKeyError

        session = await stores.sessions.create("user_gone", "key_gone")
        tokens = await issuer("user_gone", "key_gone", session.id)

        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.refresh(tokens.refresh_token)

        assert exc_info.value.code == "USER_NOT_FOUND"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_logout_revokes_both_tokens(self, token_service, register_user, stores, keypair):
        """After logout neither token of the pair is honoured."""
        from seedkey_core.errors import SeedKeyError

        registered = await register_user(keypair)
        header = f"Bearer {registered.tokens.access_token}"

        await token_service.logout(header)

        assert not await stores.sessions.is_valid(registered.session.id)
        with pytest.raises(SeedKeyError) as exc_info:
            await token_service.authenticate(header)
        assert exc_info.value.message == "Session is invalid or expired"
        with pytest.raises(SeedKeyError):
            await token_service.refresh(registered.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_logout_and_refresh_audited(self, token_service, register_user, audit, keypair):
        from seedkey_core.audit import verify_chain_integrity

        registered = await register_user(keypair)
        await token_service.refresh(registered.tokens.refresh_token)
        await token_service.logout(f"Bearer {registered.tokens.access_token}")

        events = audit.flush()
        assert [e.event_type for e in events][-2:] == ["auth.token_refresh", "auth.logout"]
        assert verify_chain_integrity(events)[0] is True
