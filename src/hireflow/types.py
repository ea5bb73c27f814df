from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

DocumentStatus = Literal["pending", "processing", "completed", "failed"]
ExtractionMethod = Literal["plain_text", "pdf_stub", "binary_stub"]
UserType = Literal["business", "jobseeker", "admin"]

DOCUMENT_STATUSES: tuple[str, ...] = ("pending", "processing", "completed", "failed")


class StorageLocation(BaseModel):
    bucket: str
    path: str


class ReviewHints(BaseModel):
    age: str | None = None
    ethnicity: str | None = None
    gender: str | None = None

    @field_validator("age", "ethnicity", "gender", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        if isinstance(value, (bool, int, float)):
            return str(value)
        return value

    def is_empty(self) -> bool:
        return not (self.age or self.ethnicity or self.gender)


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)


class ApplicationMaterials(BaseModel):
    application_id: int
    job_id: int
    business_id: int
    job_title: str = "Job"
    job_description: str = ""
    job_requirements: str | None = None
    cover_letter: str | None = None
    document_text: str | None = None

    def has_text(self) -> bool:
        return bool(self.cover_letter or self.document_text)


class AISuggestion(BaseModel):
    rating: float | None = None
    summary: str | None = None
    version: str = ""


class ScoringSuccess(BaseModel):
    success: Literal[True] = True
    suggestion: AISuggestion


class ScoringFailure(BaseModel):
    success: Literal[False] = False
    reason: str


ScoringResult = Annotated[Union[ScoringSuccess, ScoringFailure], Field(discriminator="success")]


class ExtractedContent(BaseModel):
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ExtractionOutcome(BaseModel):
    status: Literal["idle", "completed", "failed"]
    document_id: int | None = None
    application_id: int | None = None
    extraction_method: str | None = None
    reason: str | None = None
    scoring: ScoringSuccess | ScoringFailure | None = None


class JobSeekerSummary(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None


class QueueItem(BaseModel):
    id: int
    position: int
    status: str
    created_at: datetime | None = None
    reviewed_at: datetime | None = None
    job_seeker: JobSeekerSummary | None = None
    manual_rating: float | None = None
    ai_rating: float | None = None
    ai_summary: str | None = None
    review_updated_at: datetime | None = None


class ReviewSummary(BaseModel):
    total_applications: int
    reviewed_count: int
    last_reviewed_application_id: int | None = None
    last_reviewed_at: datetime | None = None
    next_application_id: int | None = None


class JobRef(BaseModel):
    id: int
    title: str


class ReviewQueue(BaseModel):
    job: JobRef
    queue: list[QueueItem] = Field(default_factory=list)
    summary: ReviewSummary


class ReviewRecordResult(BaseModel):
    application_id: int
    next_application_id: int | None = None
    position: int
    total: int


class Recommendation(BaseModel):
    application_id: int
    name: str | None = None
    email: str | None = None
    rating: float
    summary: str | None = None


class RankingResult(BaseModel):
    recommendations: list[Recommendation] = Field(default_factory=list)
    hints: ReviewHints | None = None
