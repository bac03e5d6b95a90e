"""
Redis Stores
============
Redis-backed challenge and session stores.

Challenge consumption runs as a Lua script so the used check and the used
mark happen atomically on the server.
"""

from typing import Any, Dict, Optional

import structlog

from ..crypto.nonce import generate_id
from ..models import Session, StoredChallenge
from ..utils import now_ms
from .interfaces import ChallengeStore, SessionStore
from .memory import DEFAULT_SESSION_TTL_SECONDS

logger = structlog.get_logger(__name__)

# Lua script for atomic check-and-mark of a stored challenge
MARK_USED_SCRIPT = """
local key = KEYS[1]
local nonce_prefix = ARGV[1]
local nonce_ttl = tonumber(ARGV[2])

if redis.call('EXISTS', key) == 0 then
    return 0
end

if redis.call('HGET', key, 'used') == '1' then
    return 0
end

redis.call('HSET', key, 'used', '1')
local nonce = redis.call('HGET', key, 'nonce')
redis.call('SET', nonce_prefix .. nonce, '1', 'EX', nonce_ttl)

return 1
"""

# Keep records well past the 5 minute challenge lifetime
DEFAULT_RETENTION_SECONDS = 24 * 60 * 60


def _decode_hash(raw: Dict[Any, Any]) -> Dict[str, str]:
    """Normalize HGETALL output whether or not decode_responses is set."""
    return {
        (k.decode() if isinstance(k, bytes) else k): (v.decode() if isinstance(v, bytes) else v)
        for k, v in raw.items()
    }


class RedisChallengeStore(ChallengeStore):
    """
    Redis-backed challenge store.

    Layout:
        {prefix}:challenge:{id}  hash of the stored challenge
        {prefix}:nonce:{nonce}   "1" once the nonce is consumed
    """

    def __init__(
        self,
        redis_client,
        prefix: str = "seedkey",
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
    ):
        """
        Args:
            redis_client: Async Redis client
            prefix: Key namespace
            retention_seconds: TTL for challenge records and used nonces
        """
        self.redis = redis_client
        self.prefix = prefix
        self.retention_seconds = retention_seconds
        self._script_sha: Optional[str] = None

    def _challenge_key(self, id: str) -> str:
        return f"{self.prefix}:challenge:{id}"

    def _nonce_key(self, nonce: str) -> str:
        return f"{self.prefix}:nonce:{nonce}"

    async def _ensure_script(self) -> str:
        """Load the Lua script into Redis if needed."""
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(MARK_USED_SCRIPT)
        return self._script_sha

    async def save(self, challenge: StoredChallenge) -> None:
        key = self._challenge_key(challenge.id)
        await self.redis.hset(key, mapping={
            "nonce": challenge.nonce,
            "timestamp": str(challenge.timestamp),
            "domain": challenge.domain,
            "action": getattr(challenge.action, "value", challenge.action),
            "expiresAt": str(challenge.expires_at),
            "createdAt": str(challenge.created_at),
            "publicKey": challenge.public_key or "",
            "used": "1" if challenge.used else "0",
        })
        await self.redis.expire(key, self.retention_seconds)

        if challenge.used:
            await self.redis.set(
                self._nonce_key(challenge.nonce), "1", ex=self.retention_seconds
            )

    async def find_by_id(self, id: str) -> Optional[StoredChallenge]:
        raw = await self.redis.hgetall(self._challenge_key(id))
        if not raw:
            return None

        data = _decode_hash(raw)
        return StoredChallenge(
            id=id,
            nonce=data["nonce"],
            timestamp=int(data["timestamp"]),
            domain=data["domain"],
            action=data["action"],
            expires_at=int(data["expiresAt"]),
            created_at=int(data["createdAt"]),
            public_key=data.get("publicKey") or None,
            used=data.get("used") == "1",
        )

    async def mark_as_used(self, id: str) -> bool:
        script_sha = await self._ensure_script()
        result = await self.redis.evalsha(
            script_sha,
            1,
            self._challenge_key(id),
            f"{self.prefix}:nonce:",
            self.retention_seconds,
        )
        consumed = bool(int(result))
        if not consumed:
            logger.warning("Challenge already consumed or missing", challenge_id=id)
        return consumed

    async def is_nonce_used(self, nonce: str) -> bool:
        return bool(await self.redis.exists(self._nonce_key(nonce)))

    async def delete(self, id: str) -> None:
        await self.redis.delete(self._challenge_key(id))


class RedisSessionStore(SessionStore):
    """
    Redis-backed session store.

    Layout:
        {prefix}:session:{id}         hash of the session
        {prefix}:user_sessions:{uid}  set of the user's session IDs
    """

    def __init__(
        self,
        redis_client,
        prefix: str = "seedkey",
        default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
    ):
        self.redis = redis_client
        self.prefix = prefix
        self.default_ttl_seconds = default_ttl_seconds

    def _session_key(self, id: str) -> str:
        return f"{self.prefix}:session:{id}"

    def _user_key(self, user_id: str) -> str:
        return f"{self.prefix}:user_sessions:{user_id}"

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

        key = self._session_key(session.id)
        await self.redis.hset(key, mapping={
            "userId": user_id,
            "publicKeyId": public_key_id,
            "createdAt": str(session.created_at),
            "expiresAt": str(session.expires_at),
            "invalidated": "0",
        })
        await self.redis.expire(key, ttl)
        await self.redis.sadd(self._user_key(user_id), session.id)

        logger.debug("Session created", session_id=session.id, user_id=user_id)
        return session

    async def find_by_id(self, id: str) -> Optional[Session]:
        raw = await self.redis.hgetall(self._session_key(id))
        if not raw:
            return None

        data = _decode_hash(raw)
        return Session(
            id=id,
            user_id=data["userId"],
            public_key_id=data["publicKeyId"],
            created_at=int(data["createdAt"]),
            expires_at=int(data["expiresAt"]),
            invalidated=data.get("invalidated") == "1",
        )

    async def invalidate(self, id: str) -> bool:
        key = self._session_key(id)
        if not await self.redis.exists(key):
            return False

        await self.redis.hset(key, "invalidated", "1")
        return True

    async def invalidate_all_for_user(self, user_id: str) -> None:
        session_ids = await self.redis.smembers(self._user_key(user_id))
        for session_id in session_ids:
            if isinstance(session_id, bytes):
                session_id = session_id.decode()
            await self.invalidate(session_id)

        logger.info("All sessions invalidated", user_id=user_id, count=len(session_ids))

    async def is_valid(self, id: str) -> bool:
        session = await self.find_by_id(id)
        if session is None or session.invalidated:
            return False
        return now_ms() <= session.expires_at
