"""
IoT Tech Backend — Database Connection Management
===================================================

What:  Async SQLAlchemy engine, session factory, declarative Base, and the
       connection probe that reports whether the database can be used.
How:   `DatabaseConnection` owns the engine. It connects in a background task,
       creates the tables, then pings the database on a fixed interval and
       records the outcome in `state`.
Who:   The persistence adapter reads `is_connected()` on every repository call;
       the lifespan handler starts and closes the connection.

Connection States:
    disconnected ──start()──▶ connecting ──ok──▶ connected ⇄ error
         ▲                                          (watchdog pings)
         └───────────────────close()────────────────────┘

    `is_connected()` inspects the current state only. It never waits for a
    connection attempt, so a slow or absent database never stalls a request;
    the request is served by the file store instead.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


class ConnectionState(str, Enum):
    """Lifecycle of the database connection as seen by the probe."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class DatabaseConnection:
    """
    Owns the async engine and tracks whether the database is usable.

    Attributes:
        url:    Async SQLAlchemy URL; empty disables the database backend.
        state:  Current ConnectionState, written only by this class.
    """

    def __init__(
        self,
        url: str,
        connect_timeout: float = 5.0,
        probe_interval: float = 15.0,
    ):
        self.url = url.strip()
        self.connect_timeout = connect_timeout
        self.probe_interval = probe_interval
        self.state = ConnectionState.DISCONNECTED
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def is_connected(self) -> bool:
        """True only when the connection is fully established."""
        return self.state is ConnectionState.CONNECTED

    def session(self) -> AsyncSession:
        """
        Create a new session bound to the engine.

        Raises:
            RuntimeError: the engine has not been created yet (callers check
            `is_connected()` first).
        """
        if self._session_factory is None:
            raise RuntimeError("Database engine is not initialized")
        return self._session_factory()

    def _create_engine(self) -> AsyncEngine:
        kwargs = {
            "pool_pre_ping": settings.db_pool_pre_ping,
            "echo": settings.log_level == "DEBUG",
        }
        # SQLite (tests, local runs) rejects QueuePool sizing arguments
        if not self.url.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=3600,
            )
        return create_async_engine(self.url, **kwargs)

    async def connect(self) -> ConnectionState:
        """
        Create the engine, create missing tables, and record the outcome.

        Failures are logged and leave the state at ERROR; the application
        keeps serving from the file store.
        """
        if not self.configured:
            logger.info("DATABASE_URL not set; case studies use the JSON file store")
            return self.state

        self.state = ConnectionState.CONNECTING
        if self.engine is None:
            self.engine = self._create_engine()
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

        # Model modules register their tables on Base.metadata at import
        import app.models.case_study  # noqa: F401

        try:
            async with asyncio.timeout(self.connect_timeout):
                async with self.engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            self.state = ConnectionState.ERROR
            logger.warning("Database connection failed, using file store: %s", str(e))
        else:
            self.state = ConnectionState.CONNECTED
            logger.info("Database connected")
        return self.state

    async def ping(self) -> ConnectionState:
        """Run `SELECT 1` and move between CONNECTED and ERROR accordingly."""
        if self.engine is None:
            return await self.connect()

        previous = self.state
        try:
            async with asyncio.timeout(self.connect_timeout):
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        except Exception as e:
            self.state = ConnectionState.ERROR
            if previous is not ConnectionState.ERROR:
                logger.warning("Database unreachable, falling back to file store: %s", str(e))
        else:
            if previous is not ConnectionState.CONNECTED:
                # Tables may be missing if the first connect never succeeded
                return await self.connect()
            self.state = ConnectionState.CONNECTED
        return self.state

    async def _watch(self) -> None:
        await self.connect()
        while True:
            await asyncio.sleep(self.probe_interval)
            await self.ping()

    def start(self) -> None:
        """Connect and watch in the background; returns immediately."""
        if not self.configured:
            logger.info("DATABASE_URL not set; case studies use the JSON file store")
            return
        if self._task is None or self._task.done():
            self.state = ConnectionState.CONNECTING
            self._task = asyncio.create_task(self._watch(), name="database-probe")

    async def close(self) -> None:
        """Stop the watchdog and dispose the engine (closes pooled connections)."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
        self.state = ConnectionState.DISCONNECTED


# Singleton instance, started and closed by the application lifespan
db_connection = DatabaseConnection(
    settings.database_url,
    connect_timeout=settings.db_connect_timeout,
    probe_interval=settings.db_probe_interval,
)
