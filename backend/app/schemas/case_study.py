"""
IoT Tech Backend — Case Study Request/Response Schemas
========================================================

What:  Pydantic models for the case study API contract and the fallback store.
How:   Attributes are snake_case in Python and camelCase on the wire
       (`imageUrl`, `createdAt`, `updatedAt`). The same `CaseStudyResponse`
       shape is written to the JSON fallback file, so a record looks identical
       whichever backend produced it.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Inclusive (min, max) character bounds, after surrounding whitespace is stripped
FIELD_LIMITS = {
    "title": (2, 120),
    "description": (10, 5000),
    "industry": (2, 120),
}


class CaseStudyFields(BaseModel):
    """
    What:  The client-editable fields of a case study.
    Who:   Built by validate_case_study_fields(); consumed by the stores.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=FIELD_LIMITS["title"][0], max_length=FIELD_LIMITS["title"][1])
    description: str = Field(
        min_length=FIELD_LIMITS["description"][0],
        max_length=FIELD_LIMITS["description"][1],
    )
    industry: str = Field(
        min_length=FIELD_LIMITS["industry"][0],
        max_length=FIELD_LIMITS["industry"][1],
    )


class CaseStudyResponse(BaseModel):
    """
    What:  Full representation of a stored case study.
    Who:   Returned by every /api/casestudies endpoint; one element of the
           JSON array in the fallback file.

    `image_url` is omitted from responses when there is no image.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str = Field(description="Opaque identifier assigned by the backend")
    title: str
    description: str
    industry: str
    image_url: Optional[str] = Field(
        default=None,
        description="Public path of the attached image (/uploads/<filename>)",
    )
    created_at: datetime = Field(description="Creation time (UTC ISO 8601)")
    updated_at: datetime = Field(description="Last modification time (UTC ISO 8601)")


class DeleteResponse(BaseModel):
    """Returned by DELETE /api/casestudies/{id}."""

    success: bool = True


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Fields:
        error: Machine-readable kind: validation_error, not_found, server_error
        message: Human-readable description
        details: Optional context (field errors for validation failures)
        request_id: Correlation ID for tracing this error in server logs
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health report: process status plus which backend serves case studies."""

    status: str = Field(description="healthy (database) or degraded (file fallback)")
    version: str = Field(description="Application version")
    database: str = Field(description="Connection state: disconnected, connecting, connected, error")
    storage: str = Field(description="Active case study backend: database or file")
    uptime_seconds: float = Field(description="Seconds since service started")
