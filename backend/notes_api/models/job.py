from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, Index

from .enums import JobStatus
from ..core.timeutils import utcnow


class Job(SQLModel, table=True):
    """
    One processed lecture file.

    - Append-only after reaching a terminal status; the only corrective write is
      backdating ``created_at`` so a job stops counting towards this month.
    - ``output_pdf_path`` is set iff ``status == completed``.
    """

    job_id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="profile.id", index=True)
    status: JobStatus = Field(default=JobStatus.pending)
    lecture_title: Optional[str] = Field(default=None, max_length=300)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    duration_minutes: float = Field(default=0.0, ge=0, description="Audio length in minutes (billed dimension, advisory)")
    file_size_mb: float = Field(default=0.0, ge=0, description="Upload size in MB (gating dimension)")
    output_pdf_path: Optional[str] = Field(default=None)
    error_message: Optional[str] = Field(default=None)

    # Usage aggregation filters on exactly these three columns
    __table_args__ = (
        Index("ix_job_user_status_created", "user_id", "status", "created_at"),
    )


__all__ = ["Job"]
