"""
Auth Request/Response Models
============================
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .challenge import Challenge
from .token import Session, TokenPair
from .user import PublicKeyInfo, User, UserMetadata


def _challenge_from(data: Mapping[str, Any]) -> Optional[Challenge]:
    raw = data.get("challenge")
    if not raw:
        return None
    if isinstance(raw, Challenge):
        return raw
    return Challenge.from_dict(raw)


@dataclass
class RegisterRequest:
    public_key: str
    challenge: Optional[Challenge]
    signature: str
    metadata: Optional[UserMetadata] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RegisterRequest":
        return cls(
            public_key=data.get("publicKey", ""),
            challenge=_challenge_from(data),
            signature=data.get("signature", ""),
            metadata=UserMetadata.from_dict(data.get("metadata")),
        )


@dataclass
class VerifyRequest:
    challenge_id: str
    challenge: Optional[Challenge]
    signature: str
    public_key: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VerifyRequest":
        return cls(
            challenge_id=data.get("challengeId", ""),
            challenge=_challenge_from(data),
            signature=data.get("signature", ""),
            public_key=data.get("publicKey", ""),
        )


@dataclass
class RefreshRequest:
    refresh_token: str


@dataclass
class AuthResult:
    """Successful register or verify: the user, their key, a session and tokens."""
    user: User
    key_info: PublicKeyInfo
    session: Session
    tokens: TokenPair
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "user": self.user.to_dict(),
            "keyInfo": self.key_info.to_dict(),
            "session": self.session.to_dict(),
            "tokens": self.tokens.to_dict(),
        }
