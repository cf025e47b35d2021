"""
IoT Tech Backend — Case Study Storage Backends
================================================

What:  The storage capability behind CaseStudyRepository, with one
       implementation per backend.
How:   CaseStudyStore declares list/get/create/update/delete over
       CaseStudyResponse records. Both implementations assign ids and
       timestamps the same way and return records in the same shape and order,
       so callers cannot tell which backend served them.

    ┌──────────────────────┐        ┌────────────────────────┐
    │ DatabaseCaseStudy-   │        │ FileCaseStudyStore     │
    │ Store(session)       │        │ (DATA_FILE)            │
    │  SELECT/INSERT/...   │        │  read snapshot → mutate│
    │  ORDER BY created_at │        │  → atomic rewrite      │
    └──────────────────────┘        └────────────────────────┘

File Store Concurrency:
    Every write reads the whole JSON array, changes it in memory, and replaces
    the file. Two concurrent writers can both read the same snapshot; the last
    replace wins and the other write is lost. No lock is taken.
"""

import json
import logging
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, List, Optional

import aiofiles
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, FileStorageError
from app.models.case_study import CaseStudy
from app.schemas.case_study import CaseStudyFields, CaseStudyResponse

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _next_timestamp(previous: datetime) -> datetime:
    """Current UTC time, nudged past `previous` so updatedAt always moves forward."""
    now = datetime.now(timezone.utc)
    previous = _as_utc(previous)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _new_id() -> str:
    return uuid.uuid4().hex


class CaseStudyStore(ABC):
    """
    Storage capability for case study records.

    Implementations:
        - DatabaseCaseStudyStore: async SQLAlchemy session
        - FileCaseStudyStore: JSON array in a single file

    Contract:
        - list() is ordered by created_at descending
        - create() sets created_at == updated_at
        - update() replaces title/description/industry and image_url, and
          moves updated_at strictly forward; returns None for unknown ids
        - delete() returns the removed record, or None for unknown ids
        - backend failures raise DatabaseError / FileStorageError
    """

    name: str = "abstract"

    @abstractmethod
    async def list(self) -> List[CaseStudyResponse]:
        ...

    @abstractmethod
    async def get(self, case_study_id: str) -> Optional[CaseStudyResponse]:
        ...

    @abstractmethod
    async def create(
        self, fields: CaseStudyFields, image_url: Optional[str]
    ) -> CaseStudyResponse:
        ...

    @abstractmethod
    async def update(
        self, case_study_id: str, fields: CaseStudyFields, image_url: Optional[str]
    ) -> Optional[CaseStudyResponse]:
        ...

    @abstractmethod
    async def delete(self, case_study_id: str) -> Optional[CaseStudyResponse]:
        ...


# ══════════════════════════════════════════════════════════════════════════
# Database Backend
# ══════════════════════════════════════════════════════════════════════════


@contextmanager
def _database_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e))
        raise DatabaseError(
            context={"operation": operation, "error_type": type(e).__name__, "error": str(e)},
        ) from e


class DatabaseCaseStudyStore(CaseStudyStore):
    """
    Case studies in the `case_studies` table.

    The session is owned by the caller (PersistenceAdapter.open_store), which
    commits after the repository call returns. Writes are flushed here so
    constraint errors surface inside the repository call.
    """

    name = "database"

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_response(row: CaseStudy) -> CaseStudyResponse:
        record = CaseStudyResponse.model_validate(row)
        record.created_at = _as_utc(record.created_at)
        record.updated_at = _as_utc(record.updated_at)
        return record

    async def list(self) -> List[CaseStudyResponse]:
        with _database_errors("list"):
            result = await self.session.execute(
                select(CaseStudy).order_by(desc(CaseStudy.created_at))
            )
            return [self._to_response(row) for row in result.scalars().all()]

    async def get(self, case_study_id: str) -> Optional[CaseStudyResponse]:
        with _database_errors("get"):
            row = await self.session.get(CaseStudy, case_study_id)
            return self._to_response(row) if row is not None else None

    async def create(
        self, fields: CaseStudyFields, image_url: Optional[str]
    ) -> CaseStudyResponse:
        now = datetime.now(timezone.utc)
        row = CaseStudy(
            id=_new_id(),
            title=fields.title,
            description=fields.description,
            industry=fields.industry,
            image_url=image_url,
            created_at=now,
            updated_at=now,
        )
        with _database_errors("create"):
            self.session.add(row)
            await self.session.flush()
        return self._to_response(row)

    async def update(
        self, case_study_id: str, fields: CaseStudyFields, image_url: Optional[str]
    ) -> Optional[CaseStudyResponse]:
        with _database_errors("update"):
            row = await self.session.get(CaseStudy, case_study_id)
            if row is None:
                return None
            row.title = fields.title
            row.description = fields.description
            row.industry = fields.industry
            row.image_url = image_url
            row.updated_at = _next_timestamp(row.updated_at)
            await self.session.flush()
        return self._to_response(row)

    async def delete(self, case_study_id: str) -> Optional[CaseStudyResponse]:
        with _database_errors("delete"):
            row = await self.session.get(CaseStudy, case_study_id)
            if row is None:
                return None
            removed = self._to_response(row)
            await self.session.delete(row)
            await self.session.flush()
        return removed


# ══════════════════════════════════════════════════════════════════════════
# JSON File Backend
# ══════════════════════════════════════════════════════════════════════════


class FileCaseStudyStore(CaseStudyStore):
    """
    Case studies as one JSON array in `path`.

    Records are stored with the same camelCase keys the API returns. A missing
    file is an empty collection; the file and its directory are created on the
    first write.
    """

    name = "file"

    def __init__(self, path: str):
        self.path = Path(path)

    async def _load(self) -> List[CaseStudyResponse]:
        if not self.path.exists():
            return []
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            items = json.loads(raw) if raw.strip() else []
            if not isinstance(items, list):
                raise ValueError("expected a JSON array of case studies")
            return [CaseStudyResponse.model_validate(item) for item in items]
        except (OSError, ValueError) as e:
            # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
            logger.error("Failed to read case study file %s: %s", self.path, str(e))
            raise FileStorageError(
                message="Could not read stored case studies.",
                context={"path": str(self.path), "error": str(e)},
            ) from e

    async def _save(self, records: List[CaseStudyResponse]) -> None:
        payload = json.dumps(
            [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records],
            indent=2,
            ensure_ascii=False,
        )
        tmp_path: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Same directory as the target so os.replace stays a single rename
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            os.close(fd)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            logger.error("Failed to write case study file %s: %s", self.path, str(e))
            raise FileStorageError(
                message="Could not save case studies.",
                context={"path": str(self.path), "error": str(e)},
            ) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    async def list(self) -> List[CaseStudyResponse]:
        records = await self._load()
        # Stored in insertion order; reversing first keeps the newest first on equal timestamps
        records.reverse()
        return sorted(records, key=lambda r: _as_utc(r.created_at), reverse=True)

    async def get(self, case_study_id: str) -> Optional[CaseStudyResponse]:
        for record in await self._load():
            if record.id == case_study_id:
                return record
        return None

    async def create(
        self, fields: CaseStudyFields, image_url: Optional[str]
    ) -> CaseStudyResponse:
        records = await self._load()
        now = datetime.now(timezone.utc)
        record = CaseStudyResponse(
            id=_new_id(),
            title=fields.title,
            description=fields.description,
            industry=fields.industry,
            image_url=image_url,
            created_at=now,
            updated_at=now,
        )
        records.append(record)
        await self._save(records)
        return record

    async def update(
        self, case_study_id: str, fields: CaseStudyFields, image_url: Optional[str]
    ) -> Optional[CaseStudyResponse]:
        records = await self._load()
        for index, current in enumerate(records):
            if current.id == case_study_id:
                break
        else:
            return None

        updated = current.model_copy(update={
            "title": fields.title,
            "description": fields.description,
            "industry": fields.industry,
            "image_url": image_url,
            "updated_at": _next_timestamp(current.updated_at),
        })
        records[index] = updated
        await self._save(records)
        return updated

    async def delete(self, case_study_id: str) -> Optional[CaseStudyResponse]:
        records = await self._load()
        remaining = [r for r in records if r.id != case_study_id]
        if len(remaining) == len(records):
            return None
        removed = next(r for r in records if r.id == case_study_id)
        await self._save(remaining)
        return removed
