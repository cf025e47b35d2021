"""
IoT Tech Backend — Persistence Adapter
========================================

What:  Chooses the case study backend for each repository call.
How:   `is_backend_available()` reads the injected status source (normally
       DatabaseConnection.is_connected). `open_store()` evaluates it once and
       yields either a DatabaseCaseStudyStore on a fresh session or the shared
       FileCaseStudyStore.
Who:   Used by CaseStudyRepository; the health route reads `backend_name()`.

Selection Rules:
    - Evaluated at the start of every repository call, never cached.
    - A call that started on the database stays there: a failure mid-call is
      raised as DatabaseError, not retried against the file store.
    - Records are not migrated between backends. A record written to one
      backend is invisible while the other one is active.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError
from app.services.stores import CaseStudyStore, DatabaseCaseStudyStore, FileCaseStudyStore

logger = logging.getLogger(__name__)


class PersistenceAdapter:
    """
    Routes repository calls to the database or the JSON file store.

    Args:
        status: Zero-argument callable, True when the database is connected.
                Must not block or perform I/O.
        session_factory: Zero-argument callable returning a new AsyncSession.
                Only called when `status()` is True.
        file_store: Fallback store shared by all calls.
    """

    def __init__(
        self,
        status: Callable[[], bool],
        session_factory: Callable[[], AsyncSession],
        file_store: FileCaseStudyStore,
    ):
        self._status = status
        self._session_factory = session_factory
        self.file_store = file_store

    def is_backend_available(self) -> bool:
        """True only when the durable backend is connected right now."""
        return bool(self._status())

    def backend_name(self) -> str:
        return DatabaseCaseStudyStore.name if self.is_backend_available() else self.file_store.name

    @asynccontextmanager
    async def open_store(self) -> AsyncIterator[CaseStudyStore]:
        """
        Yield the store for one repository call.

        Database path: the session commits when the block exits cleanly and
        rolls back on any exception; commit failures raise DatabaseError.
        File path: the file store writes through on every mutation.
        """
        if not self.is_backend_available():
            yield self.file_store
            return

        async with self._session_factory() as session:
            try:
                yield DatabaseCaseStudyStore(session)
            except Exception:
                await session.rollback()
                raise
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Database commit failed: %s", str(e))
                raise DatabaseError(
                    context={"operation": "commit", "error_type": type(e).__name__},
                ) from e
