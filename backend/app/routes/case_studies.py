"""
IoT Tech Backend — Case Study Route Handlers
==============================================

What:  CRUD endpoints for case studies under /api/casestudies.
How:   Reads multipart form fields and the optional `image` part, delegates to
       CaseStudyRepository, and returns the record as camelCase JSON.
       Validation, not-found, and backend errors are raised as application
       exceptions and formatted by the global handlers in main.py.

Form Fields:
    title, description, industry  text, validated by the repository
    image                         optional file (jpg, jpeg, png, gif, webp)

    All text fields are optional at the FastAPI layer so a missing field is
    reported as a 400 validation_error with our message instead of a 422.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.schemas.case_study import CaseStudyResponse, DeleteResponse, ErrorResponse
from app.services.case_study_repository import (
    CaseStudyRepository,
    get_case_study_repository,
)
from app.services.file_service import Attachment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/casestudies", tags=["Case Studies"])


async def _read_attachment(image: Optional[UploadFile]) -> Optional[Attachment]:
    """Browsers send an empty, unnamed part when no file was chosen."""
    if image is None or not image.filename:
        return None
    try:
        content = await image.read()
    finally:
        await image.close()
    logger.info("Received image upload: filename=%s, size=%d bytes", image.filename, len(content))
    return Attachment(filename=image.filename, content=content)


@router.get(
    "",
    response_model=List[CaseStudyResponse],
    response_model_exclude_none=True,
    responses={500: {"description": "Backend error", "model": ErrorResponse}},
    summary="List case studies, newest first",
)
async def list_case_studies(
    repo: CaseStudyRepository = Depends(get_case_study_repository),
) -> List[CaseStudyResponse]:
    return await repo.list()


@router.get(
    "/{case_study_id}",
    response_model=CaseStudyResponse,
    response_model_exclude_none=True,
    responses={
        404: {"description": "Case study not found", "model": ErrorResponse},
        500: {"description": "Backend error", "model": ErrorResponse},
    },
    summary="Get a single case study",
)
async def get_case_study(
    case_study_id: str,
    repo: CaseStudyRepository = Depends(get_case_study_repository),
) -> CaseStudyResponse:
    return await repo.get(case_study_id)


@router.post(
    "",
    status_code=201,
    response_model=CaseStudyResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid fields or image", "model": ErrorResponse},
        500: {"description": "Backend error", "model": ErrorResponse},
    },
    summary="Create a case study",
    description=(
        "Multipart form with title (2-120 chars), description (10-5000 chars), "
        "industry (2-120 chars) and an optional image file."
    ),
)
async def create_case_study(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    industry: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    repo: CaseStudyRepository = Depends(get_case_study_repository),
) -> CaseStudyResponse:
    attachment = await _read_attachment(image)
    return await repo.create(
        {"title": title, "description": description, "industry": industry},
        attachment,
    )


@router.put(
    "/{case_study_id}",
    response_model=CaseStudyResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid fields or image", "model": ErrorResponse},
        404: {"description": "Case study not found", "model": ErrorResponse},
        500: {"description": "Backend error", "model": ErrorResponse},
    },
    summary="Replace a case study",
    description=(
        "Replaces title, description and industry. The image is replaced only "
        "when a new file is sent; otherwise the current imageUrl is kept."
    ),
)
async def update_case_study(
    case_study_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    industry: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    repo: CaseStudyRepository = Depends(get_case_study_repository),
) -> CaseStudyResponse:
    attachment = await _read_attachment(image)
    return await repo.update(
        case_study_id,
        {"title": title, "description": description, "industry": industry},
        attachment,
    )


@router.delete(
    "/{case_study_id}",
    response_model=DeleteResponse,
    responses={
        404: {"description": "Case study not found", "model": ErrorResponse},
        500: {"description": "Backend error", "model": ErrorResponse},
    },
    summary="Delete a case study and its image",
)
async def delete_case_study(
    case_study_id: str,
    repo: CaseStudyRepository = Depends(get_case_study_repository),
) -> DeleteResponse:
    return DeleteResponse(success=await repo.delete(case_study_id))
