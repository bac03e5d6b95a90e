"""
Session and Token Models
========================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class TokenPayload:
    """Claims carried by access and refresh tokens."""
    sub: str
    type: str
    public_key_id: str
    session_id: str
    iat: Optional[int] = None
    exp: Optional[int] = None


@dataclass
class TokenPair:
    """Opaque credentials minted by the token issuer."""
    access_token: str
    refresh_token: str
    expires_in: int  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
        }


@dataclass
class Session:
    """
    An authenticated period for one user and one key.

    Whether a session is still usable is decided by the SessionStore
    (`is_valid`), not by this record.
    """
    id: str
    user_id: str
    public_key_id: str
    created_at: int
    expires_at: int
    invalidated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "publicKeyId": self.public_key_id,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "invalidated": self.invalidated,
        }
