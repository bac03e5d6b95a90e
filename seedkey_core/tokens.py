"""
JWT Token Issuer
================
Mints and decodes the access/refresh token pair handed out after a
successful register or verify.

Usage:
    issuer = JWTTokenIssuer(secret=os.environ["SEEDKEY_JWT_SECRET"])
    service = AuthService(config, users, challenges, sessions, generate_tokens=issuer)
"""

import time
from typing import Optional

import jwt
import structlog

from .models import TokenPair, TokenPayload, TokenType

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_TTL_SECONDS = 60 * 60
REFRESH_TOKEN_TTL_SECONDS = 30 * 24 * 60 * 60


class JWTTokenIssuer:
    """
    HMAC-signed JWTs bound to a session.

    Instances are awaitable callables with the signature AuthService
    expects for `generate_tokens`.
    """

    def __init__(
        self,
        secret: str,
        access_ttl: int = ACCESS_TOKEN_TTL_SECONDS,
        refresh_ttl: int = REFRESH_TOKEN_TTL_SECONDS,
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ValueError("JWT secret is required")
        self._secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    def _encode(self, token_type: TokenType, user_id: str, public_key_id: str,
                session_id: str, ttl: int) -> str:
        now = int(time.time())
        claims = {
            "sub": user_id,
            "type": token_type.value,
            "publicKeyId": public_key_id,
            "sessionId": session_id,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    async def __call__(self, user_id: str, public_key_id: str, session_id: str) -> TokenPair:
        return TokenPair(
            access_token=self._encode(
                TokenType.ACCESS, user_id, public_key_id, session_id, self.access_ttl
            ),
            refresh_token=self._encode(
                TokenType.REFRESH, user_id, public_key_id, session_id, self.refresh_ttl
            ),
            expires_in=self.access_ttl,
        )

    def decode(self, token: str, expected_type: Optional[TokenType] = None) -> Optional[TokenPayload]:
        """
        Verify and decode a token.

        Returns:
            The payload, or None if the token is invalid, expired or of
            the wrong type
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("Token rejected", reason=str(e))
            return None

        try:
            payload = TokenPayload(
                sub=claims["sub"],
                type=claims["type"],
                public_key_id=claims["publicKeyId"],
                session_id=claims["sessionId"],
                iat=claims.get("iat"),
                exp=claims.get("exp"),
            )
        except KeyError as e:
            logger.debug("Token missing claim", claim=str(e))
            return None

        if expected_type is not None and payload.type != TokenType(expected_type).value:
            return None
        return payload
