"""
User Models
===========
Users and their public keys. Each user holds exactly one key.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class PublicKeyInfo:
    """A registered Ed25519 public key (base64 text)."""
    id: str
    public_key: str
    added_at: int
    last_used: int
    device_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "publicKey": self.public_key,
            "deviceName": self.device_name,
            "addedAt": self.added_at,
            "lastUsed": self.last_used,
        }


@dataclass
class User:
    """A registered user."""
    id: str
    public_key: PublicKeyInfo
    created_at: int
    last_login: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "publicKey": self.public_key.to_dict(),
            "createdAt": self.created_at,
            "lastLogin": self.last_login,
        }


@dataclass
class UserMetadata:
    """Optional client details captured at registration."""
    device_name: Optional[str] = None
    extension_version: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["UserMetadata"]:
        if not data:
            return None
        return cls(
            device_name=data.get("deviceName", data.get("device_name")),
            extension_version=data.get("extensionVersion", data.get("extension_version")),
        )


@dataclass
class KeyMetadata:
    """Optional details for a replacement key."""
    device_name: Optional[str] = None
