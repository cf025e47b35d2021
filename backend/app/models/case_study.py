"""
IoT Tech Backend — CaseStudy SQLAlchemy Model
===============================================

What:  ORM model for the `case_studies` table.
Who:   Used by DatabaseCaseStudyStore; the table is created by
       DatabaseConnection.connect() through Base.metadata.create_all.

Table Design:
    - id: UUID hex string generated on insert, opaque to clients
    - image_url: public reference (/uploads/<filename>), NULL when no image
    - created_at / updated_at: UTC, set by the store so both backends share
      the same timestamp rules
    - Index on created_at DESC for the newest-first listing
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CaseStudy(Base):
    """
    A written account of a project or engagement.

    Lifecycle:
        1. Inserted on a validated POST
        2. title/description/industry replaced wholesale on PUT;
           image_url replaced only when a new image is uploaded
        3. Deleted on DELETE (the repository removes the image file)
    """

    __tablename__ = "case_studies"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=lambda: uuid.uuid4().hex,
    )

    title: Mapped[str] = mapped_column(String(120), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    industry: Mapped[str] = mapped_column(String(120), nullable=False)

    image_url: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_case_studies_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<CaseStudy(id={self.id}, title='{self.title}', created_at='{self.created_at}')>"
