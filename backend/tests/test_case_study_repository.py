"""
IoT Tech Backend — Case Study Repository Tests
================================================

What:  Behaviour of CaseStudyRepository on both storage backends.
How:   The `repository` fixture runs each test twice: once on the JSON file
       store, once on SQLite through async SQLAlchemy.

Test Strategy:
    ✅ create/list/get/update/delete round the same record
    ✅ Listing is newest first
    ✅ Unknown ids raise NotFoundError
    ✅ Validation runs before anything is stored
    ✅ Images are kept on plain updates, replaced and cleaned up otherwise
"""

import asyncio
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from app.exceptions import (
    DatabaseError,
    FileStorageError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from app.services.file_service import Attachment
from app.services.stores import DatabaseCaseStudyStore, FileCaseStudyStore

ACME = {
    "title": "Acme Rollout",
    "description": "Deployed 400 sensors across two plants.",
    "industry": "Manufacturing",
}


def _upload_path(upload_dir, reference):
    return Path(upload_dir) / reference.rsplit("/", 1)[1]


@contextmanager
def _failing_writes(method):
    """Make `method` fail on both stores the way each backend reports I/O errors."""
    with patch.object(
        FileCaseStudyStore, method, AsyncMock(side_effect=FileStorageError())
    ), patch.object(
        DatabaseCaseStudyStore, method, AsyncMock(side_effect=DatabaseError())
    ):
        yield


class TestCreateAndRead:

    @pytest.mark.asyncio
    async def test_create_returns_full_record(self, repository):
        record = await repository.create(ACME)

        assert record.id
        assert record.title == "Acme Rollout"
        assert record.image_url is None
        assert record.created_at == record.updated_at
        assert record.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_get_returns_created_record(self, repository):
        created = await repository.create(ACME)

        fetched = await repository.get(created.id)
        assert fetched.id == created.id
        assert fetched.description == ACME["description"]
        assert fetched.created_at == created.created_at

    @pytest.mark.asyncio
    async def test_list_empty(self, repository):
        assert await repository.list() == []

    @pytest.mark.asyncio
    async def test_list_newest_first(self, repository):
        ids = []
        for n in range(3):
            record = await repository.create({**ACME, "title": f"Rollout {n}"})
            ids.append(record.id)
            await asyncio.sleep(0.002)

        listed = await repository.list()
        assert [r.id for r in listed] == list(reversed(ids))

    @pytest.mark.asyncio
    async def test_get_unknown_id(self, repository):
        with pytest.raises(NotFoundError):
            await repository.get("does-not-exist")

    @pytest.mark.asyncio
    async def test_create_invalid_stores_nothing(self, repository, upload_dir, sample_image_bytes):
        before = set(Path(upload_dir).iterdir())

        with pytest.raises(ValidationError):
            await repository.create(
                {**ACME, "title": "x"}, Attachment("photo.jpg", sample_image_bytes)
            )

        assert await repository.list() == []
        assert set(Path(upload_dir).iterdir()) == before

    @pytest.mark.asyncio
    async def test_create_rejects_unsupported_image(self, repository):
        with pytest.raises(ValidationError, match="not supported"):
            await repository.create(ACME, Attachment("report.pdf", b"%PDF-1.4"))
        assert await repository.list() == []


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_replaces_fields_and_bumps_updated_at(self, repository):
        created = await repository.create(ACME)

        updated = await repository.update(
            created.id, {**ACME, "title": "Acme Rollout Phase 2"}
        )

        assert updated.id == created.id
        assert updated.title == "Acme Rollout Phase 2"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at
        assert (await repository.get(created.id)).title == "Acme Rollout Phase 2"

    @pytest.mark.asyncio
    async def test_update_without_image_keeps_image(self, repository, sample_image_bytes):
        created = await repository.create(ACME, Attachment("plant.jpg", sample_image_bytes))

        updated = await repository.update(created.id, {**ACME, "industry": "Energy"})

        assert updated.image_url == created.image_url

    @pytest.mark.asyncio
    async def test_update_with_image_replaces_and_deletes_old(
        self, repository, upload_dir, sample_image_bytes
    ):
        created = await repository.create(ACME, Attachment("old.jpg", sample_image_bytes))
        old_path = _upload_path(upload_dir, created.image_url)
        assert old_path.exists()

        updated = await repository.update(
            created.id, ACME, Attachment("new.png", sample_image_bytes)
        )

        assert updated.image_url != created.image_url
        assert updated.image_url.endswith(".png")
        assert _upload_path(upload_dir, updated.image_url).exists()
        assert not old_path.exists()

    @pytest.mark.asyncio
    async def test_update_unknown_id_changes_nothing(
        self, repository, upload_dir, sample_image_bytes
    ):
        await repository.create(ACME)
        records_before = await repository.list()
        files_before = set(Path(upload_dir).iterdir())

        with pytest.raises(NotFoundError):
            await repository.update("missing", ACME, Attachment("a.jpg", sample_image_bytes))

        assert await repository.list() == records_before
        assert set(Path(upload_dir).iterdir()) == files_before

    @pytest.mark.asyncio
    async def test_update_invalid_leaves_record_unchanged(self, repository):
        created = await repository.create(ACME)

        with pytest.raises(ValidationError):
            await repository.update(created.id, {**ACME, "description": "short"})

        assert (await repository.get(created.id)).description == ACME["description"]


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_image(
        self, repository, upload_dir, sample_image_bytes
    ):
        created = await repository.create(ACME, Attachment("gone.webp", sample_image_bytes))
        image_path = _upload_path(upload_dir, created.image_url)

        assert await repository.delete(created.id) is True

        assert await repository.list() == []
        assert not image_path.exists()
        with pytest.raises(NotFoundError):
            await repository.get(created.id)

    @pytest.mark.asyncio
    async def test_delete_twice_raises_not_found(self, repository):
        created = await repository.create(ACME)
        await repository.delete(created.id)

        with pytest.raises(NotFoundError):
            await repository.delete(created.id)

    @pytest.mark.asyncio
    async def test_delete_leaves_other_records(self, repository):
        keep = await repository.create(ACME)
        drop = await repository.create({**ACME, "title": "Other"})

        await repository.delete(drop.id)

        assert [r.id for r in await repository.list()] == [keep.id]


class TestWriteFailures:
    """A record write that fails must not leave the new image behind."""

    @pytest.mark.asyncio
    async def test_create_failure_discards_new_image(
        self, repository, upload_dir, sample_image_bytes
    ):
        files_before = set(Path(upload_dir).iterdir())

        with _failing_writes("create"):
            with pytest.raises(ServerError):
                await repository.create(ACME, Attachment("plant.jpg", sample_image_bytes))

        assert set(Path(upload_dir).iterdir()) == files_before
        assert await repository.list() == []

    @pytest.mark.asyncio
    async def test_update_failure_discards_new_image_and_keeps_old(
        self, repository, upload_dir, sample_image_bytes
    ):
        created = await repository.create(ACME, Attachment("old.jpg", sample_image_bytes))
        files_before = set(Path(upload_dir).iterdir())

        with _failing_writes("update"):
            with pytest.raises(ServerError):
                await repository.update(
                    created.id,
                    {**ACME, "title": "Never Saved"},
                    Attachment("new.jpg", sample_image_bytes),
                )

        assert set(Path(upload_dir).iterdir()) == files_before
        assert _upload_path(upload_dir, created.image_url).exists()
        current = await repository.get(created.id)
        assert current.title == ACME["title"]
        assert current.image_url == created.image_url
