"""
SeedKey Storage Module
======================
Store interfaces plus in-memory, Redis and SQL implementations.
"""

from .interfaces import UserStore, ChallengeStore, SessionStore, SeedKeyStores
from .memory import (
    MemoryUserStore,
    MemoryChallengeStore,
    MemorySessionStore,
    create_memory_stores,
    DEFAULT_SESSION_TTL_SECONDS,
)
from .redis_store import RedisChallengeStore, RedisSessionStore, MARK_USED_SCRIPT
from .sql_store import Database, SqlUserStore, UserRecord

__all__ = [
    # Interfaces
    "UserStore",
    "ChallengeStore",
    "SessionStore",
    "SeedKeyStores",
    # Memory
    "MemoryUserStore",
    "MemoryChallengeStore",
    "MemorySessionStore",
    "create_memory_stores",
    "DEFAULT_SESSION_TTL_SECONDS",
    # Redis
    "RedisChallengeStore",
    "RedisSessionStore",
    "MARK_USED_SCRIPT",
    # SQL
    "Database",
    "SqlUserStore",
    "UserRecord",
]
