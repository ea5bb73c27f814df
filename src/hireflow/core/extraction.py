from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from hireflow.config import Settings, get_settings
from hireflow.core.documents import DocumentRegistry
from hireflow.core.scoring import ScoringEngine
from hireflow.core.storage import ObjectStorage, build_storage
from hireflow.db.base import utcnow
from hireflow.errors import ExtractionError
from hireflow.types import ExtractedContent, ExtractionOutcome, ScoringFailure

logger = logging.getLogger(__name__)

TEXT_FILE_PATTERN = re.compile(r"\.(txt|md|csv|json|log)$", re.IGNORECASE)
PDF_FILE_PATTERN = re.compile(r"\.pdf$", re.IGNORECASE)

PDF_PLACEHOLDER = "[PDF document detected. OCR extraction required.]"
BINARY_PLACEHOLDER = "[Binary document format. Extraction pending external processor.]"


def extract_content(path: str, data: bytes) -> ExtractedContent:
    if TEXT_FILE_PATTERN.search(path):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Unable to decode {path} as UTF-8: {exc}") from exc
        return ExtractedContent(text=text, metadata={"extraction_method": "plain_text"})

    if PDF_FILE_PATTERN.search(path):
        return ExtractedContent(text=PDF_PLACEHOLDER, metadata={"extraction_method": "pdf_stub"})

    return ExtractedContent(text=BINARY_PLACEHOLDER, metadata={"extraction_method": "binary_stub"})


class ExtractionWorker:
    """Processes at most one pending document per call; cadence is up to the caller."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        storage: ObjectStorage | None = None,
        scoring: ScoringEngine | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.registry = DocumentRegistry(session, settings=self.settings)
        self.storage = storage or build_storage(self.settings)
        self.scoring = scoring or ScoringEngine(session, settings=self.settings)

    def process_next(self) -> ExtractionOutcome:
        document = self.registry.claim_next()
        if document is None:
            return ExtractionOutcome(status="idle")

        document_id = document.id
        application_id = document.application_id
        logger.info(
            "Processing document id=%s application_id=%s path=%s/%s",
            document_id,
            application_id,
            document.storage_bucket,
            document.storage_path,
        )

        try:
            data = self.storage.download(document.storage_bucket, document.storage_path)
            content = extract_content(document.storage_path, data)
        except ExtractionError as exc:
            return self._fail(document_id, application_id, str(exc))
        except Exception as exc:
            logger.exception("Unexpected extraction error for document id=%s", document_id)
            return self._fail(document_id, application_id, f"{type(exc).__name__}: {exc}")

        completed_at = utcnow()
        self.registry.mark_status(
            document_id,
            "completed",
            {**content.metadata, "processing_completed_at": completed_at.isoformat()},
            extracted_text=content.text,
            extracted_at=completed_at,
        )

        try:
            scoring = self.scoring.generate_suggestion(application_id)
        except Exception as exc:
            logger.exception("AI suggestion generation error for application %s", application_id)
            scoring = ScoringFailure(reason=str(exc))
        if isinstance(scoring, ScoringFailure):
            logger.warning(
                "AI suggestion skipped for application %s after document %s: %s",
                application_id,
                document_id,
                scoring.reason,
            )

        return ExtractionOutcome(
            status="completed",
            document_id=document_id,
            application_id=application_id,
            extraction_method=content.metadata.get("extraction_method"),
            scoring=scoring,
        )

    def _fail(self, document_id: int, application_id: int, reason: str) -> ExtractionOutcome:
        logger.error("Document processing failed id=%s: %s", document_id, reason)
        self.registry.mark_status(
            document_id,
            "failed",
            {"failure_reason": reason or "Unknown error", "failed_at": utcnow().isoformat()},
        )
        return ExtractionOutcome(
            status="failed",
            document_id=document_id,
            application_id=application_id,
            reason=reason or "Unknown error",
        )
