"""
IoT Tech Backend — Case Study Repository
==========================================

What:  Create/list/get/update/delete for case studies, plus the lifecycle of
       their attached images.
How:   Validates first, asks the PersistenceAdapter for the active store, runs
       the operation against it, then cleans up replaced or orphaned images.
Who:   Called by the /api/casestudies route handlers.

Write Flow (update with a new image):
    ┌──────────┐   ┌─────────────┐   ┌──────────┐   ┌──────────┐   ┌───────────┐
    │ validate │──▶│ open store  │──▶│ exists?  │──▶│ store    │──▶│ write     │
    │ fields   │   │ (db | file) │   │ else 404 │   │ new image│   │ record    │
    └──────────┘   └─────────────┘   └──────────┘   └──────────┘   └─────┬─────┘
                                                                         ▼
                                                          delete previous image
                                                          (best-effort, logged)

    Images are written before the record, so a record never points at an
    image that failed to store. If the record write fails, the new image is
    removed again before the error propagates.

Error Handling:
    ValidationError / NotFoundError propagate unchanged (400 / 404).
    DatabaseError / FileStorageError from the stores propagate unchanged (500).
    Anything else is logged with its traceback and wrapped in ServerError.
"""

import logging
from typing import List, Mapping, Optional

from app.config import settings
from app.database import db_connection
from app.exceptions import IoTTechError, NotFoundError, ServerError
from app.schemas.case_study import CaseStudyResponse
from app.services.file_service import Attachment, FileService, file_service
from app.services.persistence import PersistenceAdapter
from app.services.stores import FileCaseStudyStore
from app.services.validation import validate_case_study_fields

logger = logging.getLogger(__name__)


class CaseStudyRepository:
    """
    Case study operations over whichever backend is currently available.

    Args:
        adapter: Picks the database or file store for each call.
        files: Attachment store for uploaded images.
    """

    def __init__(self, adapter: PersistenceAdapter, files: FileService):
        self.adapter = adapter
        self.files = files

    async def _discard_image(self, image_url: Optional[str]) -> None:
        # delete_file never raises; failures are logged there
        if image_url:
            await self.files.delete_file(image_url)

    @staticmethod
    def _unexpected(operation: str, error: Exception) -> ServerError:
        logger.error("Unexpected error in case study %s: %s", operation, str(error), exc_info=True)
        return ServerError(
            message=f"Could not {operation} the case study. Please try again.",
            context={"operation": operation, "error_type": type(error).__name__},
        )

    async def list(self) -> List[CaseStudyResponse]:
        """All case studies, newest first (createdAt descending)."""
        try:
            async with self.adapter.open_store() as store:
                return await store.list()
        except IoTTechError:
            raise
        except Exception as e:
            raise self._unexpected("list", e) from e

    async def get(self, case_study_id: str) -> CaseStudyResponse:
        """
        Raises:
            NotFoundError: no record with this id in the active backend.
        """
        try:
            async with self.adapter.open_store() as store:
                record = await store.get(case_study_id)
        except IoTTechError:
            raise
        except Exception as e:
            raise self._unexpected("load", e) from e
        if record is None:
            raise NotFoundError(resource="case study", resource_id=case_study_id)
        return record

    async def create(
        self,
        fields: Mapping[str, Optional[str]],
        attachment: Optional[Attachment] = None,
    ) -> CaseStudyResponse:
        """
        Validate, store the optional image, and persist a new case study.

        Args:
            fields: title, description, industry as received from the client.
            attachment: Optional uploaded image.

        Returns:
            The stored record (createdAt == updatedAt, imageUrl set only when
            an image was attached).

        Raises:
            ValidationError: invalid fields or image; nothing is written.
        """
        valid = validate_case_study_fields(
            fields.get("title"), fields.get("description"), fields.get("industry")
        )

        image_url: Optional[str] = None
        try:
            if attachment is not None:
                image_url = await self.files.validate_and_store(
                    attachment.filename, attachment.content
                )
            async with self.adapter.open_store() as store:
                record = await store.create(valid, image_url)
        except Exception as e:
            await self._discard_image(image_url)
            if isinstance(e, IoTTechError):
                raise
            raise self._unexpected("create", e) from e

        logger.info("Case study %s created (%s backend)", record.id, store.name)
        return record

    async def update(
        self,
        case_study_id: str,
        fields: Mapping[str, Optional[str]],
        attachment: Optional[Attachment] = None,
    ) -> CaseStudyResponse:
        """
        Replace title/description/industry, and the image when one is attached.

        Without an attachment the existing imageUrl is kept as-is. With one,
        the previous image file is deleted after the record is written.

        Raises:
            ValidationError: invalid fields or image; nothing is written.
            NotFoundError: no record with this id in the active backend; the
                attachment is not stored.
        """
        valid = validate_case_study_fields(
            fields.get("title"), fields.get("description"), fields.get("industry")
        )

        new_image_url: Optional[str] = None
        try:
            async with self.adapter.open_store() as store:
                existing = await store.get(case_study_id)
                if existing is None:
                    raise NotFoundError(resource="case study", resource_id=case_study_id)

                if attachment is not None:
                    new_image_url = await self.files.validate_and_store(
                        attachment.filename, attachment.content
                    )
                image_url = new_image_url or existing.image_url

                record = await store.update(case_study_id, valid, image_url)
                if record is None:
                    # Removed by a concurrent request between get and update
                    raise NotFoundError(resource="case study", resource_id=case_study_id)
        except Exception as e:
            await self._discard_image(new_image_url)
            if isinstance(e, IoTTechError):
                raise
            raise self._unexpected("update", e) from e

        if new_image_url and existing.image_url and existing.image_url != new_image_url:
            await self._discard_image(existing.image_url)

        logger.info("Case study %s updated (%s backend)", record.id, store.name)
        return record

    async def delete(self, case_study_id: str) -> bool:
        """
        Remove a case study, then its image file (best-effort).

        Raises:
            NotFoundError: no record with this id in the active backend.
        """
        try:
            async with self.adapter.open_store() as store:
                removed = await store.delete(case_study_id)
                if removed is None:
                    raise NotFoundError(resource="case study", resource_id=case_study_id)
        except IoTTechError:
            raise
        except Exception as e:
            raise self._unexpected("delete", e) from e

        await self._discard_image(removed.image_url)
        logger.info("Case study %s deleted (%s backend)", case_study_id, store.name)
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
case_study_repository = CaseStudyRepository(
    adapter=PersistenceAdapter(
        status=db_connection.is_connected,
        session_factory=db_connection.session,
        file_store=FileCaseStudyStore(settings.data_file),
    ),
    files=file_service,
)


def get_case_study_repository() -> CaseStudyRepository:
    """FastAPI dependency; tests replace it through app.dependency_overrides."""
    return case_study_repository
