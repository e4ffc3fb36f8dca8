"""
Database Service

The Ledger Store connection for Gildhall Economy: one async engine per
process, a session factory, and the two context managers every service goes
through.

- ``get_transaction()``: the atomic unit of work. Buy, trade acceptance, bid
  placement and auction settlement each run inside exactly one. It commits
  when the block exits normally, rolls back and re-raises otherwise.
- ``get_session()``: reads. Nothing is committed.

Services never call ``commit()`` themselves. Row locking is the repositories'
job (``for_update``); retries are the caller's.

On PostgreSQL each session runs with ``SET LOCAL statement_timeout`` taken
from ``DATABASE_STATEMENT_TIMEOUT_MS``, the hard wall-clock ceiling on a unit
of work. SQLite (local runs, tests) gets a ``NullPool`` engine and no timeout.
SQLite has no row locks, so every SQLite transaction opens with
``BEGIN IMMEDIATE`` and takes the database write lock up front; concurrent
units of work queue on it (up to ``DATABASE_POOL_TIMEOUT`` seconds) instead
of validating against the same snapshot.

    async with DatabaseService.get_transaction() as session:
        auction = await auctions.get_for_update(session, auction_id)
        auction.status = AuctionStatus.SOLD
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.core.config.config import Config
from src.core.database.base import Base
from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import EconomyDomainException

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """No usable database URL, or the engine could not be created."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before ``DatabaseService.initialize()``."""


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 2)


@dataclass(frozen=True)
class EngineSettings:
    url: str
    echo: bool
    pool_size: int
    max_overflow: int
    pool_recycle: int
    pool_timeout: int
    statement_timeout_ms: int

    @property
    def backend(self) -> str:
        return make_url(self.url).get_backend_name()

    @property
    def pooled(self) -> bool:
        return self.backend != "sqlite" and not Config.is_testing()

    @classmethod
    def from_config(cls, url: Optional[str] = None) -> EngineSettings:
        url = url or Config.DATABASE_URL
        if not isinstance(url, str) or not url:
            raise DatabaseInitializationError(
                "DATABASE_URL is not set and no url was passed to initialize()"
            )
        return cls(
            url=url,
            echo=bool(Config.DATABASE_ECHO),
            pool_size=int(Config.DATABASE_POOL_SIZE),
            max_overflow=int(Config.DATABASE_MAX_OVERFLOW),
            pool_recycle=int(Config.DATABASE_POOL_RECYCLE),
            pool_timeout=int(Config.DATABASE_POOL_TIMEOUT),
            statement_timeout_ms=int(Config.DATABASE_STATEMENT_TIMEOUT_MS),
        )

    def engine_kwargs(self) -> Dict[str, Any]:
        if self.backend == "sqlite":
            return {
                "echo": self.echo,
                "poolclass": NullPool,
                "connect_args": {"timeout": self.pool_timeout},
            }
        if not self.pooled:
            return {"echo": self.echo, "poolclass": NullPool}
        return {
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_recycle": self.pool_recycle,
            "pool_timeout": self.pool_timeout,
            "pool_pre_ping": True,
        }


def _begin_immediate(engine: AsyncEngine) -> None:
    """Hand transaction control to SQLAlchemy and open each one as IMMEDIATE."""

    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class DatabaseService:
    """
    Process-wide engine and session management (class-level singleton).

    Lifecycle: ``initialize()``, ``shutdown()``, ``create_all()``,
    ``drop_all()``. Access: ``get_session()``, ``get_transaction()``.
    Status: ``health_check()``, ``is_initialized()``.
    """

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _settings: Optional[EngineSettings] = None
    _init_lock: Optional[asyncio.Lock] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        # bound to the running loop, so created on first use
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the engine and session factory. A no-op when already running.

        Raises:
            DatabaseInitializationError: If no URL is configured or the engine
                cannot be built
        """
        async with cls._lock():
            if cls._engine is not None:
                return

            try:
                settings = EngineSettings.from_config(url)
                engine = create_async_engine(settings.url, **settings.engine_kwargs())
                if settings.backend == "sqlite":
                    _begin_immediate(engine)
            except DatabaseInitializationError:
                logger.error("Database URL missing; cannot initialize")
                raise
            except Exception as exc:
                logger.error(
                    "Could not create database engine",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(f"Could not create engine: {exc}") from exc

            cls._engine = engine
            cls._settings = settings
            cls._sessions = async_sessionmaker(
                bind=engine, class_=AsyncSession, expire_on_commit=False
            )
            logger.info(
                "Database ready",
                extra={"backend": settings.backend, "pooled": settings.pooled},
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. Safe to call when not initialized."""
        async with cls._lock():
            engine, cls._engine = cls._engine, None
            cls._sessions = None
            cls._settings = None
            if engine is not None:
                await engine.dispose()
                logger.info("Database engine disposed")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if cls._engine is None or cls._sessions is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must run before the database is used"
            )
        return cls._engine

    @classmethod
    async def create_all(cls) -> None:
        """Create every model's table (first runs and tests)."""
        engine = cls._require_engine()
        import src.database.models  # noqa: F401  (registers the mappers)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Schema created", extra={"tables": sorted(Base.metadata.tables)})

    @classmethod
    async def drop_all(cls) -> None:
        engine = cls._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Schema dropped")

    @classmethod
    async def health_check(cls) -> bool:
        """``SELECT 1``; False rather than an exception when unreachable."""
        if cls._engine is None:
            return False
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning(
                "Database health check failed", extra={"error_type": type(exc).__name__}
            )
            return False
        return True

    # ========================================================================
    # Sessions
    # ========================================================================

    @classmethod
    async def _open(cls) -> AsyncSession:
        sessions, settings = cls._sessions, cls._settings
        if sessions is None or settings is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must run before the database is used"
            )

        session = sessions()
        if settings.backend == "postgresql":
            try:
                await session.execute(
                    text(f"SET LOCAL statement_timeout = {settings.statement_timeout_ms}")
                )
            except Exception:
                await session.close()
                raise
        return session

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Read-only session; closed (never committed) on exit."""
        session = await cls._open()
        try:
            yield session
        finally:
            await session.close()

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        One atomic unit of work.

        Commits when the block completes. Any exception rolls everything back
        and propagates unchanged: domain rule violations are logged at INFO,
        anything else at ERROR with the traceback.
        """
        started = time.perf_counter()
        session = await cls._open()
        try:
            yield session
            await session.commit()
        except EconomyDomainException as exc:
            await session.rollback()
            logger.info(
                "Unit of work rejected",
                extra={"error_code": exc.error_code, "duration_ms": _elapsed_ms(started)},
            )
            raise
        except Exception as exc:
            await session.rollback()
            logger.error(
                "Unit of work failed; rolled back",
                extra={"error_type": type(exc).__name__, "duration_ms": _elapsed_ms(started)},
                exc_info=True,
            )
            raise
        else:
            logger.debug("Unit of work committed", extra={"duration_ms": _elapsed_ms(started)})
        finally:
            await session.close()
