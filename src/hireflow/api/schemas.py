from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hireflow.types import ReviewHints


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    storage_bucket: str
    storage_path: str
    document_type: str | None = None
    status: str
    extracted_metadata: dict[str, Any] = Field(default_factory=dict)
    extracted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DocumentRegisterRequest(BaseModel):
    application_id: int
    resume_url: str | None = None
    document_type: str | None = None


class DocumentRegisterResponse(BaseModel):
    registered: bool
    document: DocumentResponse | None = None


class ProcessingResetRequest(BaseModel):
    document_id: int | None = None


class AISelectRequest(BaseModel):
    count: Any = None
    hints: ReviewHints | None = None


class ManualReviewRequest(BaseModel):
    rating: Any = None
    note: str | None = None
    advance: bool = True


class ApplicationSubmitRequest(BaseModel):
    cover_letter: str = ""
    resume_url: str | None = None
