"""
Storage Interfaces
==================
Abstract stores the AuthService depends on. Implementations may use any
backend (memory, Redis, PostgreSQL, ...).

Concurrency contract:
- ChallengeStore.mark_as_used must be an atomic check-and-mark and return
  False if the challenge was already used. This is what keeps a signed
  challenge from minting two sessions.
- UserStore.create must enforce public key uniqueness at the storage layer
  and raise PublicKeyConflictError on a duplicate.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models import (
    KeyMetadata,
    PublicKeyInfo,
    Session,
    StoredChallenge,
    User,
    UserMetadata,
)


class UserStore(ABC):
    """User persistence (one public key per user)."""

    @abstractmethod
    async def find_by_id(self, id: str) -> Optional[User]:
        """Find a user by ID."""

    @abstractmethod
    async def find_by_public_key(self, public_key: str) -> Optional[User]:
        """Find a user by their public key."""

    @abstractmethod
    async def create(self, public_key: str, metadata: Optional[UserMetadata] = None) -> User:
        """
        Create a user holding `public_key`.

        Raises:
            PublicKeyConflictError: If the key is already registered
        """

    @abstractmethod
    async def update_last_login(self, user_id: str, public_key: str) -> None:
        """Stamp the user's last login and the matching key's last use."""

    @abstractmethod
    async def public_key_exists(self, public_key: str) -> bool:
        """Check whether a public key is registered."""

    async def replace_public_key(
        self,
        user_id: str,
        new_public_key: str,
        metadata: Optional[KeyMetadata] = None,
    ) -> Optional[PublicKeyInfo]:
        """Swap the user's key (recovery flows). Optional."""
        raise NotImplementedError(f"{type(self).__name__} does not support key replacement")


class ChallengeStore(ABC):
    """Challenge persistence and the used-nonce index."""

    @abstractmethod
    async def save(self, challenge: StoredChallenge) -> None:
        """Persist a challenge. A used record also marks its nonce used."""

    @abstractmethod
    async def find_by_id(self, id: str) -> Optional[StoredChallenge]:
        """Find a challenge by ID."""

    @abstractmethod
    async def mark_as_used(self, id: str) -> bool:
        """
        Atomically mark a challenge used.

        Returns:
            True if this call consumed it; False if missing or already used
        """

    @abstractmethod
    async def is_nonce_used(self, nonce: str) -> bool:
        """Check the used-nonce index (replay protection)."""

    async def delete(self, id: str) -> None:
        """Remove a challenge (cleanup). Optional."""
        raise NotImplementedError(f"{type(self).__name__} does not support deletion")


class SessionStore(ABC):
    """Session persistence."""

    @abstractmethod
    async def create(
        self,
        user_id: str,
        public_key_id: str,
        expires_in_seconds: Optional[int] = None,
    ) -> Session:
        """Create a session."""

    @abstractmethod
    async def find_by_id(self, id: str) -> Optional[Session]:
        """Find a session by ID."""

    @abstractmethod
    async def invalidate(self, id: str) -> bool:
        """Invalidate a session (logout)."""

    @abstractmethod
    async def invalidate_all_for_user(self, user_id: str) -> None:
        """Invalidate every session of a user."""

    @abstractmethod
    async def is_valid(self, id: str) -> bool:
        """True if the session exists, is not invalidated and not expired."""


@dataclass
class SeedKeyStores:
    """
    The three stores, built once at startup and passed to the services.
    """
    users: UserStore
    challenges: ChallengeStore
    sessions: SessionStore
