"""
Challenge Models
================
The signable challenge, its stored form, and the challenge-creation result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ChallengeAction(str, Enum):
    """Protocol flow a challenge was issued for."""
    REGISTER = "register"
    AUTHENTICATE = "authenticate"


def _as_int(value: Any, name: str) -> int:
    """Coerce a JSON number to int, rejecting bools and fractional values."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValueError(f"{name} must be an integer")


def _pick(data: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in data:
        return data[camel]
    return data[snake]


@dataclass(frozen=True)
class Challenge:
    """
    A server-issued, time-bounded value the client signs.

    Timestamps are Unix epoch milliseconds. The client signs the canonical
    encoding of exactly these five fields.
    """
    nonce: str
    timestamp: int
    domain: str
    action: str
    expires_at: int

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation with camelCase keys."""
        return {
            "nonce": self.nonce,
            "timestamp": self.timestamp,
            "domain": self.domain,
            "action": getattr(self.action, "value", self.action),
            "expiresAt": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Challenge":
        """
        Parse a challenge received from a client.

        Raises:
            KeyError: If a field is missing
            ValueError: If a field has the wrong type
        """
        nonce = data["nonce"]
        domain = data["domain"]
        action = data["action"]
        for name, value in (("nonce", nonce), ("domain", domain), ("action", action)):
            if not isinstance(value, str):
                raise ValueError(f"{name} must be a string")

        return cls(
            nonce=nonce,
            timestamp=_as_int(data["timestamp"], "timestamp"),
            domain=domain,
            action=action,
            expires_at=_as_int(_pick(data, "expiresAt", "expires_at"), "expiresAt"),
        )


@dataclass
class StoredChallenge:
    """A challenge as persisted by a ChallengeStore."""
    id: str
    nonce: str
    timestamp: int
    domain: str
    action: str
    expires_at: int
    created_at: int
    public_key: Optional[str] = None
    used: bool = False

    @classmethod
    def from_challenge(
        cls,
        challenge: Challenge,
        id: str,
        created_at: int,
        public_key: Optional[str] = None,
        used: bool = False,
    ) -> "StoredChallenge":
        return cls(
            id=id,
            nonce=challenge.nonce,
            timestamp=challenge.timestamp,
            domain=challenge.domain,
            action=challenge.action,
            expires_at=challenge.expires_at,
            created_at=created_at,
            public_key=public_key,
            used=used,
        )

    @property
    def challenge(self) -> Challenge:
        """The signable part of this record."""
        return Challenge(
            nonce=self.nonce,
            timestamp=self.timestamp,
            domain=self.domain,
            action=self.action,
            expires_at=self.expires_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.challenge.to_dict()
        data.update({
            "id": self.id,
            "publicKey": self.public_key,
            "used": self.used,
            "createdAt": self.created_at,
        })
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoredChallenge":
        challenge = Challenge.from_dict(data)
        return cls.from_challenge(
            challenge,
            id=data["id"],
            created_at=_as_int(_pick(data, "createdAt", "created_at"), "createdAt"),
            public_key=data.get("publicKey", data.get("public_key")),
            used=bool(data.get("used", False)),
        )


@dataclass
class ChallengeRequest:
    """Client request for a new challenge."""
    public_key: str
    action: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChallengeRequest":
        return cls(
            public_key=data.get("publicKey", data.get("public_key", "")),
            action=data.get("action", ""),
        )


@dataclass
class ChallengeResult:
    """
    Outcome of challenge creation.

    Unknown users and already-registered keys are expected branches, so
    they come back as `success=False` with a hint instead of an exception.
    """
    success: bool
    challenge: Optional[Challenge] = None
    challenge_id: Optional[str] = None
    error: Optional[str] = None
    hint: Optional[str] = None

    @classmethod
    def ok(cls, challenge: Challenge, challenge_id: str) -> "ChallengeResult":
        return cls(success=True, challenge=challenge, challenge_id=challenge_id)

    @classmethod
    def fail(cls, error: str, hint: Optional[str] = None) -> "ChallengeResult":
        return cls(success=False, error=error, hint=hint)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "challenge": self.challenge.to_dict(),
                "challengeId": self.challenge_id,
            }
        data: Dict[str, Any] = {"success": False, "error": self.error}
        if self.hint:
            data["hint"] = self.hint
        return data
