"""
Token Service
=============
Bearer authentication, token refresh and logout on top of issued sessions.
"""

from typing import Optional

import structlog

from ..audit import AuditEventType, AuditLogger
from ..errors import ErrorCode, SeedKeyError
from ..models import TokenPair, TokenPayload, TokenType
from ..storage.interfaces import SessionStore, UserStore
from ..tokens import JWTTokenIssuer

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


class TokenService:
    """
    Checks access tokens against live sessions and rotates token pairs.

    A token is only honoured while its session is valid, so logging out
    revokes both tokens of the pair immediately.
    """

    def __init__(
        self,
        issuer: JWTTokenIssuer,
        users: UserStore,
        sessions: SessionStore,
        audit: Optional[AuditLogger] = None,
    ):
        self.issuer = issuer
        self.users = users
        self.sessions = sessions
        self.audit = audit

    async def authenticate(self, authorization: Optional[str]) -> TokenPayload:
        """
        Resolve an ``Authorization`` header to its token payload.

        Raises:
            SeedKeyError: UNAUTHORIZED without a bearer token, INVALID_TOKEN
                for a bad token or dead session
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise SeedKeyError(ErrorCode.UNAUTHORIZED, "Authorization required", 401)

        payload = self.issuer.decode(authorization[len(BEARER_PREFIX):].strip())
        if payload is None:
            raise SeedKeyError(ErrorCode.INVALID_TOKEN, "Invalid token", 401)

        if payload.type != TokenType.ACCESS.value:
            raise SeedKeyError(ErrorCode.INVALID_TOKEN, "Invalid token type", 401)

        if not await self.sessions.is_valid(payload.session_id):
            raise SeedKeyError(ErrorCode.INVALID_TOKEN, "Session is invalid or expired", 401)

        return payload

    async def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        """
        Exchange a refresh token for a new pair on the same session.

        Raises:
            SeedKeyError: On a missing, invalid or mistyped token, a dead
                session or a deleted user
        """
        if not refresh_token:
            raise SeedKeyError(ErrorCode.VALIDATION_ERROR, "refreshToken is required")

        payload = self.issuer.decode(refresh_token)
        if payload is None:
            raise SeedKeyError(ErrorCode.INVALID_TOKEN, "Invalid or expired refresh token", 401)

        if payload.type != TokenType.REFRESH.value:
            raise SeedKeyError(ErrorCode.INVALID_TOKEN, "Invalid token type", 401)

        if not await self.sessions.is_valid(payload.session_id):
            raise SeedKeyError(ErrorCode.INVALID_TOKEN, "Session is invalid or expired", 401)

        user = await self.users.find_by_id(payload.sub)
        if user is None:
            raise SeedKeyError(ErrorCode.USER_NOT_FOUND, "User not found", 404)

        tokens = await self.issuer(user.id, payload.public_key_id, payload.session_id)

        logger.info("Tokens refreshed", user_id=user.id, session_id=payload.session_id)
        if self.audit is not None:
            self.audit.log(
                AuditEventType.AUTH_TOKEN_REFRESH,
                actor_id=user.id,
                resource_id=payload.session_id,
            )
        return tokens

    async def logout(self, authorization: Optional[str]) -> TokenPayload:
        """Invalidate the session behind an access token."""
        payload = await self.authenticate(authorization)
        await self.sessions.invalidate(payload.session_id)

        logger.info("User logged out", user_id=payload.sub, session_id=payload.session_id)
        if self.audit is not None:
            self.audit.log(
                AuditEventType.AUTH_LOGOUT,
                actor_id=payload.sub,
                resource_id=payload.session_id,
            )
        return payload
