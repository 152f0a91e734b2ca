from contextlib import asynccontextmanager
import logging
import os

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, url: Optional[str] = None) -> None:
        self._url = url or os.getenv("DATABASE_URL")
        self._engine: Optional[AsyncEngine] = None
        self._SessionFactory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    @property
    def engine(self) -> AsyncEngine:
        self._initialize()
        if self._engine is None:
            raise RuntimeError("Database not properly initialized")
        return self._engine

    def _initialize(self) -> None:
        """Lazy initialization of database connection."""
        if self._initialized:
            return

        if not self._url:
            raise RuntimeError("DATABASE_URL must be set")

        logger.info("Initializing database connection")

        engine_options: dict = {"echo": False, "future": True}
        if self._url.startswith("sqlite") and ":memory:" in self._url:
            # in-memory sqlite only lives as long as its single connection
            engine_options["poolclass"] = StaticPool
            engine_options["connect_args"] = {"check_same_thread": False}
        else:
            engine_options["pool_pre_ping"] = True

        self._engine = create_async_engine(self._url, **engine_options)

        self._SessionFactory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self._initialized = True
        logger.info("Database connection initialized successfully")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Async context manager that yields a Session and rolls back on error.
        Services commit their own units of work.
        Usage:
            async with db.get_session() as session:
                ...
        """
        self._initialize()
        if self._SessionFactory is None:
            raise RuntimeError("Database not properly initialized")
        async with self._SessionFactory() as session:
            try:
                logger.debug("Database session started")
                yield session
                logger.debug("Database session completed successfully")
            except Exception as e:
                logger.error(f"Database session error: {e}", exc_info=True)
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_all(self) -> None:
        """Create every mapped table. Used for local development and tests;
        deployed databases are managed through alembic."""
        import prizedraw.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """
        Cleanly close all connections in the pool.
        Call at application shutdown.
        """
        if self._engine is not None:
            logger.info("Disposing database connections")
            await self._engine.dispose()
            logger.info("Database connections disposed")


db = Database()
