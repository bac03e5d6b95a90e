"""
In-Memory Stores
================
Dictionary-backed stores for development and testing.

Use the Redis and SQL stores in production.
"""

import asyncio
from typing import Dict, Optional, Set

import structlog

from ..crypto.nonce import generate_id
from ..errors import PublicKeyConflictError
from ..models import (
    KeyMetadata,
    PublicKeyInfo,
    Session,
    StoredChallenge,
    User,
    UserMetadata,
)
from ..utils import now_ms
from .interfaces import ChallengeStore, SeedKeyStores, SessionStore, UserStore

logger = structlog.get_logger(__name__)

# Default session lifetime: 30 days
DEFAULT_SESSION_TTL_SECONDS = 30 * 24 * 60 * 60


class MemoryUserStore(UserStore):
    """In-memory users with a public key index."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._public_key_index: Dict[str, str] = {}

    async def find_by_id(self, id: str) -> Optional[User]:
        return self._users.get(id)

    async def find_by_public_key(self, public_key: str) -> Optional[User]:
        user_id = self._public_key_index.get(public_key)
        if user_id is None:
            return None
        return self._users.get(user_id)

    async def create(self, public_key: str, metadata: Optional[UserMetadata] = None) -> User:
        if public_key in self._public_key_index:
            raise PublicKeyConflictError(public_key)

        now = now_ms()
        key_info = PublicKeyInfo(
            id=generate_id("key"),
            public_key=public_key,
            device_name=metadata.device_name if metadata else None,
            added_at=now,
            last_used=now,
        )
        user = User(
            id=generate_id("user"),
            public_key=key_info,
            created_at=now,
            last_login=now,
        )

        self._users[user.id] = user
        self._public_key_index[public_key] = user.id
        return user

    async def update_last_login(self, user_id: str, public_key: str) -> None:
        user = self._users.get(user_id)
        if user is None:
            return

        now = now_ms()
        user.last_login = now
        if user.public_key.public_key == public_key:
            user.public_key.last_used = now

    async def public_key_exists(self, public_key: str) -> bool:
        return public_key in self._public_key_index

    async def replace_public_key(
        self,
        user_id: str,
        new_public_key: str,
        metadata: Optional[KeyMetadata] = None,
    ) -> Optional[PublicKeyInfo]:
        user = self._users.get(user_id)
        if user is None:
            return None
        if self._public_key_index.get(new_public_key, user_id) != user_id:
            raise PublicKeyConflictError(new_public_key)

        self._public_key_index.pop(user.public_key.public_key, None)

        now = now_ms()
        key_info = PublicKeyInfo(
            id=generate_id("key"),
            public_key=new_public_key,
            device_name=metadata.device_name if metadata else None,
            added_at=now,
            last_used=now,
        )
        user.public_key = key_info
        self._public_key_index[new_public_key] = user_id

        logger.info("Public key replaced", user_id=user_id, key_id=key_info.id)
        return key_info


class MemoryChallengeStore(ChallengeStore):
    """
    In-memory challenges with a denormalized used-nonce set.

    The nonce set answers `is_nonce_used` without scanning challenges and
    also covers nonces recorded under a different challenge ID.
    """

    def __init__(self):
        self._challenges: Dict[str, StoredChallenge] = {}
        self._used_nonces: Set[str] = set()
        self._lock = asyncio.Lock()

    async def save(self, challenge: StoredChallenge) -> None:
        self._challenges[challenge.id] = challenge
        if challenge.used:
            self._used_nonces.add(challenge.nonce)

    async def find_by_id(self, id: str) -> Optional[StoredChallenge]:
        return self._challenges.get(id)

    async def mark_as_used(self, id: str) -> bool:
        async with self._lock:
            challenge = self._challenges.get(id)
            if challenge is None or challenge.used:
                return False

            challenge.used = True
            self._used_nonces.add(challenge.nonce)
            return True

    async def is_nonce_used(self, nonce: str) -> bool:
        return nonce in self._used_nonces

    async def delete(self, id: str) -> None:
        self._challenges.pop(id, None)


class MemorySessionStore(SessionStore):
    """In-memory sessions."""

    def __init__(self, default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.default_ttl_seconds = default_ttl_seconds
        self._sessions: Dict[str, Session] = {}

    async def create(
        self,
        user_id: str,
        public_key_id: str,
        expires_in_seconds: Optional[int] = None,
    ) -> Session:
        now = now_ms()
        ttl = self.default_ttl_seconds if expires_in_seconds is None else expires_in_seconds

        session = Session(
            id=generate_id("ses"),
            user_id=user_id,
            public_key_id=public_key_id,
            created_at=now,
            expires_at=now + ttl * 1000,
        )
        self._sessions[session.id] = session
        return session

    async def find_by_id(self, id: str) -> Optional[Session]:
        return self._sessions.get(id)

    async def invalidate(self, id: str) -> bool:
        session = self._sessions.get(id)
        if session is None:
            return False

        session.invalidated = True
        return True

    async def invalidate_all_for_user(self, user_id: str) -> None:
        for session in self._sessions.values():
            if session.user_id == user_id:
                session.invalidated = True

    async def is_valid(self, id: str) -> bool:
        session = self._sessions.get(id)
        if session is None or session.invalidated:
            return False
        return now_ms() <= session.expires_at


def create_memory_stores() -> SeedKeyStores:
    """Build a fresh set of in-memory stores."""
    return SeedKeyStores(
        users=MemoryUserStore(),
        challenges=MemoryChallengeStore(),
        sessions=MemorySessionStore(),
    )
