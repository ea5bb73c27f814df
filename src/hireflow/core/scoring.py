"""Scoring boundary between the review pipeline and the language-model collaborator.

Every public entry point returns a :class:`ScoringSuccess` or
:class:`ScoringFailure`; nothing raised inside the boundary escapes it.
The three stages are also exposed on their own so the candidate ranker can
run the model call off the database session's thread.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from hireflow.config import Settings, get_settings
from hireflow.db.repositories import Repository
from hireflow.llm.router import LLMRouter, ProviderError
from hireflow.types import (
    AISuggestion,
    ApplicationMaterials,
    ReviewHints,
    ScoringFailure,
    ScoringSuccess,
)

logger = logging.getLogger(__name__)

NO_PREFERENCE = "any"


def normalize_hints(hints: ReviewHints | dict[str, Any] | None) -> ReviewHints | None:
    if hints is None:
        return None
    if isinstance(hints, dict):
        hints = ReviewHints.model_validate(
            {key: hints.get(key) for key in ("age", "ethnicity", "gender")}
        )

    values: dict[str, str | None] = {}
    for key in ("age", "ethnicity", "gender"):
        value = getattr(hints, key)
        if value is None:
            values[key] = None
            continue
        value = str(value).strip()
        values[key] = None if not value or value.lower() == NO_PREFERENCE else value
    return ReviewHints(**values)


class ScoringEngine:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        router: LLMRouter | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.router = router or LLMRouter(self.settings)

    def generate_suggestion(
        self,
        application_id: int,
        hints: ReviewHints | dict[str, Any] | None = None,
    ) -> ScoringSuccess | ScoringFailure:
        try:
            prepared = self.prepare(application_id)
            if isinstance(prepared, ScoringFailure):
                return prepared
            outcome = self.request_suggestion(prepared, normalize_hints(hints))
            if isinstance(outcome, ScoringFailure):
                return outcome
            return self.persist_suggestion(prepared, outcome.suggestion)
        except Exception as exc:
            logger.exception("AI suggestion generation failed application_id=%s", application_id)
            return ScoringFailure(reason=f"unexpected_error: {exc}")

    def prepare(self, application_id: int) -> ApplicationMaterials | ScoringFailure:
        if not self.router.is_available():
            return ScoringFailure(reason="missing_api_key")

        materials = self.gather_materials(application_id)
        if materials is None:
            return ScoringFailure(reason="missing_materials")
        if not materials.has_text():
            return ScoringFailure(reason="no_text_available")
        return materials

    def gather_materials(self, application_id: int) -> ApplicationMaterials | None:
        application = self.repo.get_application(application_id)
        if application is None:
            logger.warning("Failed to load application %s for AI review", application_id)
            return None

        job = self.repo.get_job(application.job_id)
        if job is None:
            logger.warning("Application %s references missing job %s", application_id, application.job_id)
            return None

        documents = [
            doc
            for doc in self.repo.list_documents(application_id=application_id, status="completed")
            if doc.extracted_text
        ]
        document_text = None
        if documents:
            document_text = "\n\n".join(
                f"Document {index}:\n{doc.extracted_text}" for index, doc in enumerate(documents, start=1)
            )

        return ApplicationMaterials(
            application_id=application.id,
            job_id=job.id,
            business_id=job.business_id,
            job_title=job.title or "Job",
            job_description=job.description or "",
            job_requirements=job.requirements,
            cover_letter=application.cover_letter or None,
            document_text=document_text,
        )

    def request_suggestion(
        self,
        materials: ApplicationMaterials,
        hints: ReviewHints | None = None,
    ) -> ScoringSuccess | ScoringFailure:
        """Model call only; safe to run from a worker thread."""
        try:
            suggestion = self.router.review_application(materials=materials, hints=hints)
        except ProviderError as exc:
            return ScoringFailure(reason=f"provider_error: {exc}")
        except ValueError as exc:
            logger.warning("Unusable model output for application %s: %s", materials.application_id, exc)
            return ScoringFailure(reason="invalid_model_output")
        return ScoringSuccess(suggestion=suggestion)

    def persist_suggestion(
        self,
        materials: ApplicationMaterials,
        suggestion: AISuggestion,
    ) -> ScoringSuccess | ScoringFailure:
        try:
            self.repo.upsert_ai_review(
                application_id=materials.application_id,
                ai_rating=suggestion.rating,
                ai_summary=suggestion.summary,
                ai_version=suggestion.version or self.router.model,
            )
        except Exception as exc:
            self.session.rollback()
            logger.error("Failed to store AI suggestion for application %s: %s", materials.application_id, exc)
            return ScoringFailure(reason=f"persist_failed: {exc}")
        return ScoringSuccess(suggestion=suggestion)
