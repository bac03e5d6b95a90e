"""
SQL User Store
==============
SQLAlchemy async user store. Public key uniqueness is enforced by a unique
index, so concurrent registrations of one key cannot both succeed.
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import BigInteger, String, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    create_async_engine as sa_create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import structlog

from ..crypto.nonce import generate_id
from ..errors import PublicKeyConflictError
from ..models import KeyMetadata, PublicKeyInfo, User, UserMetadata
from ..utils import now_ms
from .interfaces import UserStore

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


class UserRecord(Base):
    """A user row. Single-key model: the key lives on the user row."""
    __tablename__ = "seedkey_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    public_key: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    key_id: Mapped[str] = mapped_column(String(64))
    device_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    extension_version: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    key_added_at: Mapped[int] = mapped_column(BigInteger)
    key_last_used: Mapped[int] = mapped_column(BigInteger)
    created_at: Mapped[int] = mapped_column(BigInteger)
    last_login: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def to_user(self) -> User:
        return User(
            id=self.id,
            public_key=PublicKeyInfo(
                id=self.key_id,
                public_key=self.public_key,
                device_name=self.device_name,
                added_at=self.key_added_at,
                last_used=self.key_last_used,
            ),
            created_at=self.created_at,
            last_login=self.last_login,
        )


class Database:
    """
    Owns the async engine and session factory.

    Create once at startup, pass to SqlUserStore, close on shutdown.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_url(
        cls,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ) -> "Database":
        """
        Create the engine for a pooled database.

        Args:
            database_url: Async connection string (postgresql+asyncpg://...)
            pool_size: Connection pool size
            max_overflow: Max overflow connections
            pool_pre_ping: Enable connection health checks
            echo: Log SQL statements
        """
        engine = sa_create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            echo=echo,
        )
        logger.info("Database engine initialized", pool_size=pool_size)
        return cls(engine)

    async def create_all(self) -> None:
        """Create the SeedKey tables if missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session that commits on success and rolls back on exception.

        Usage:
            async with db.session() as session:
                ...
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Dispose the engine. Call during application shutdown."""
        await self.engine.dispose()
        logger.info("Database engine closed")


class SqlUserStore(UserStore):
    """User store on top of a Database."""

    def __init__(self, database: Database):
        self.db = database

    async def _get(self, session: AsyncSession, **filters) -> Optional[UserRecord]:
        result = await session.execute(select(UserRecord).filter_by(**filters))
        return result.scalar_one_or_none()

    async def find_by_id(self, id: str) -> Optional[User]:
        async with self.db.session() as session:
            record = await self._get(session, id=id)
            return record.to_user() if record else None

    async def find_by_public_key(self, public_key: str) -> Optional[User]:
        async with self.db.session() as session:
            record = await self._get(session, public_key=public_key)
            return record.to_user() if record else None

    async def create(self, public_key: str, metadata: Optional[UserMetadata] = None) -> User:
        now = now_ms()
        record = UserRecord(
            id=generate_id("user"),
            public_key=public_key,
            key_id=generate_id("key"),
            device_name=metadata.device_name if metadata else None,
            extension_version=metadata.extension_version if metadata else None,
            key_added_at=now,
            key_last_used=now,
            created_at=now,
            last_login=now,
        )

        try:
            async with self.db.session() as session:
                session.add(record)
        except IntegrityError as e:
            logger.warning("Duplicate public key rejected by database", error=str(e.orig))
            raise PublicKeyConflictError(public_key) from e

        return record.to_user()

    async def update_last_login(self, user_id: str, public_key: str) -> None:
        now = now_ms()
        async with self.db.session() as session:
            await session.execute(
                update(UserRecord)
                .where(UserRecord.id == user_id)
                .values(last_login=now)
            )
            await session.execute(
                update(UserRecord)
                .where(UserRecord.id == user_id, UserRecord.public_key == public_key)
                .values(key_last_used=now)
            )

    async def public_key_exists(self, public_key: str) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                select(UserRecord.id).where(UserRecord.public_key == public_key)
            )
            return result.first() is not None

    async def replace_public_key(
        self,
        user_id: str,
        new_public_key: str,
        metadata: Optional[KeyMetadata] = None,
    ) -> Optional[PublicKeyInfo]:
        now = now_ms()
        try:
            async with self.db.session() as session:
                record = await self._get(session, id=user_id)
                if record is None:
                    return None

                record.public_key = new_public_key
                record.key_id = generate_id("key")
                record.device_name = metadata.device_name if metadata else None
                record.key_added_at = now
                record.key_last_used = now
        except IntegrityError as e:
            raise PublicKeyConflictError(new_public_key) from e

        return record.to_user().public_key
