from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hireflow.config import Settings, get_settings
from hireflow.core.storage import parse_storage_location
from hireflow.db.base import utcnow
from hireflow.db.models import ApplicationDocument
from hireflow.db.repositories import Repository
from hireflow.errors import RegistryError, RetryPolicyError

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """Persists one row per uploaded application document and hands out work."""

    def __init__(self, session: Session, *, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)

    def register_document(
        self,
        application_id: int | None,
        public_url: str | None,
        document_type: str | None = None,
    ) -> ApplicationDocument | None:
        if not public_url or not application_id:
            return None

        location = parse_storage_location(public_url)
        if location is None:
            logger.warning("Unable to derive storage location from document URL %s", public_url)
            return None

        document = self.repo.upsert_document(
            application_id=application_id,
            storage_bucket=location.bucket,
            storage_path=location.path,
            document_type=document_type or None,
        )
        logger.info(
            "Registered document id=%s application_id=%s location=%s/%s",
            document.id,
            application_id,
            location.bucket,
            location.path,
        )
        return document

    def fetch_next_pending(self) -> ApplicationDocument | None:
        try:
            return self.repo.next_pending_document()
        except SQLAlchemyError as exc:
            raise RegistryError(f"failed to read pending documents: {exc}") from exc

    def claim(self, document_id: int, *, started_at: datetime | None = None) -> bool:
        try:
            won = self.repo.claim_document(document_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise RegistryError(f"failed to claim document {document_id}: {exc}") from exc

        if not won:
            logger.info("Document id=%s already claimed by another worker", document_id)
            return False

        started = started_at or utcnow()
        self.repo.update_document(document_id, metadata={"processing_started_at": started.isoformat()})
        return True

    def claim_next(self) -> ApplicationDocument | None:
        skipped: set[int] = set()
        while True:
            try:
                candidate = self.repo.next_pending_document(exclude_ids=skipped)
            except SQLAlchemyError as exc:
                raise RegistryError(f"failed to read pending documents: {exc}") from exc
            if candidate is None:
                return None
            if self.claim(candidate.id):
                return self.repo.get_document(candidate.id)
            skipped.add(candidate.id)

    def mark_status(
        self,
        document_id: int,
        status: str,
        metadata: dict[str, Any] | None = None,
        *,
        extracted_text: str | None = None,
        extracted_at: datetime | None = None,
    ) -> ApplicationDocument:
        return self.repo.update_document(
            document_id,
            status=status,
            metadata=metadata,
            extracted_text=extracted_text,
            extracted_at=extracted_at,
        )

    def list_for_application(self, application_id: int) -> list[ApplicationDocument]:
        return self.repo.list_documents(application_id=application_id)

    def reset_failed(self, document_id: int | None = None) -> list[ApplicationDocument]:
        """Return failed documents to the pending queue, subject to the retry policy."""
        if self.settings.failed_document_policy == "terminal":
            raise RetryPolicyError("failed documents are terminal under the current policy")

        if document_id is not None:
            document = self.repo.get_document(document_id)
            if document is None:
                raise RegistryError(f"document {document_id} not found")
            if document.status != "failed":
                raise RetryPolicyError(f"document {document_id} is {document.status}, not failed")
            candidates = [document]
        else:
            candidates = self.repo.list_documents(status="failed", limit=1000)

        reset: list[ApplicationDocument] = []
        now = utcnow().isoformat()
        for document in candidates:
            count = int((document.extracted_metadata or {}).get("reset_count", 0))
            if count >= self.settings.document_max_resets:
                logger.warning(
                    "Document id=%s reached max resets (%s); leaving it failed",
                    document.id,
                    self.settings.document_max_resets,
                )
                if document_id is not None:
                    raise RetryPolicyError(f"document {document.id} reached the reset limit")
                continue
            reset.append(
                self.repo.update_document(
                    document.id,
                    status="pending",
                    metadata={"reset_at": now, "reset_count": count + 1},
                )
            )
        logger.info("Reset %s failed document(s) to pending", len(reset))
        return reset
