from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import case, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hireflow.db.base import utcnow
from hireflow.db.models import (
    Application,
    ApplicationDocument,
    ApplicationReview,
    BusinessReviewProgress,
    Job,
    User,
)
from hireflow.errors import RegistryError

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def merge_metadata(existing: dict[str, Any] | None, extra: dict[str, Any] | None) -> dict[str, Any]:
    merged = dict(existing or {})
    merged.update(extra or {})
    return merged


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def _insert(self, model: type):
        dialect = self.session.get_bind().dialect.name
        factory = _UPSERT_DIALECTS.get(dialect)
        if factory is None:
            raise RegistryError(f"upsert is not supported for dialect {dialect!r}")
        return factory(model)

    # Users, jobs and applications belong to collaborator subsystems; the
    # pipeline only needs enough of them to resolve ownership.

    def create_user(self, *, name: str, email: str, user_type: str = "jobseeker") -> User:
        user = User(name=name, email=email, user_type=user_type)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_user(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def create_job(
        self,
        *,
        business_id: int,
        title: str,
        description: str = "",
        requirements: str | None = None,
    ) -> Job:
        job = Job(business_id=business_id, title=title, description=description, requirements=requirements)
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def get_job(self, job_id: int) -> Job | None:
        return self.session.get(Job, job_id)

    def create_application(
        self,
        *,
        job_id: int,
        job_seeker_id: int,
        cover_letter: str = "",
        resume_url: str | None = None,
    ) -> Application:
        application = Application(
            job_id=job_id,
            job_seeker_id=job_seeker_id,
            cover_letter=cover_letter,
            resume_url=resume_url,
            status="pending",
        )
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get_application(self, application_id: int) -> Application | None:
        return self.session.get(Application, application_id)

    def find_application(self, job_id: int, job_seeker_id: int) -> Application | None:
        return self.session.scalar(
            select(Application).where(
                Application.job_id == job_id,
                Application.job_seeker_id == job_seeker_id,
            )
        )

    def list_job_applications(self, job_id: int) -> list[tuple[Application, User | None]]:
        statement = (
            select(Application, User)
            .outerjoin(User, User.id == Application.job_seeker_id)
            .where(Application.job_id == job_id)
            .order_by(Application.created_at.asc(), Application.id.asc())
        )
        return [(row[0], row[1]) for row in self.session.execute(statement).all()]

    def list_review_queue_rows(
        self, job_id: int
    ) -> list[tuple[Application, User | None, ApplicationReview | None]]:
        statement = (
            select(Application, User, ApplicationReview)
            .outerjoin(User, User.id == Application.job_seeker_id)
            .outerjoin(ApplicationReview, ApplicationReview.application_id == Application.id)
            .where(Application.job_id == job_id)
            .order_by(Application.created_at.asc(), Application.id.asc())
        )
        return [(row[0], row[1], row[2]) for row in self.session.execute(statement).all()]

    def mark_application_reviewed(self, application_id: int, *, reviewer_id: int, note: str | None) -> Application:
        application = self.session.get(Application, application_id)
        if application is None:
            raise ValueError(f"application {application_id} not found")
        application.status = "reviewed"
        application.reviewed_at = utcnow()
        application.reviewed_by = reviewer_id
        application.notes = note
        self.session.commit()
        self.session.refresh(application)
        return application

    # Document registry

    def upsert_document(
        self,
        *,
        application_id: int,
        storage_bucket: str,
        storage_path: str,
        document_type: str | None,
    ) -> ApplicationDocument:
        now = utcnow()
        base_insert = self._insert(ApplicationDocument).values(
            application_id=application_id,
            storage_bucket=storage_bucket,
            storage_path=storage_path,
            document_type=document_type,
            status="pending",
            extracted_metadata={},
            created_at=now,
            updated_at=now,
        )
        statement = base_insert.on_conflict_do_update(
            index_elements=["application_id", "storage_bucket", "storage_path"],
            set_={
                "document_type": base_insert.excluded.document_type,
                "status": "pending",
                "updated_at": now,
            },
        )
        try:
            self.session.execute(statement)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise RegistryError(f"failed to register document: {exc}") from exc

        document = self.session.scalar(
            select(ApplicationDocument).where(
                ApplicationDocument.application_id == application_id,
                ApplicationDocument.storage_bucket == storage_bucket,
                ApplicationDocument.storage_path == storage_path,
            )
        )
        if document is None:
            raise RegistryError("registered document could not be read back")
        self.session.refresh(document)
        return document

    def get_document(self, document_id: int) -> ApplicationDocument | None:
        return self.session.get(ApplicationDocument, document_id)

    def next_pending_document(self, *, exclude_ids: set[int] | None = None) -> ApplicationDocument | None:
        statement = select(ApplicationDocument).where(ApplicationDocument.status == "pending")
        if exclude_ids:
            statement = statement.where(ApplicationDocument.id.not_in(exclude_ids))
        statement = statement.order_by(ApplicationDocument.created_at.asc(), ApplicationDocument.id.asc()).limit(1)
        return self.session.scalar(statement)

    def claim_document(self, document_id: int) -> bool:
        statement = (
            update(ApplicationDocument)
            .where(ApplicationDocument.id == document_id, ApplicationDocument.status == "pending")
            .values(status="processing", updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return int(result.rowcount or 0) == 1

    def update_document(
        self,
        document_id: int,
        *,
        status: str | None = None,
        metadata: dict[str, Any] | None = None,
        extracted_text: str | None = None,
        extracted_at: datetime | None = None,
    ) -> ApplicationDocument:
        document = self.session.get(ApplicationDocument, document_id)
        if document is None:
            raise RegistryError(f"document {document_id} not found")

        if status is not None:
            document.status = status
        if metadata:
            document.extracted_metadata = merge_metadata(document.extracted_metadata, metadata)
        if extracted_text is not None:
            document.extracted_text = extracted_text
        if extracted_at is not None:
            document.extracted_at = extracted_at
        document.updated_at = utcnow()

        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise RegistryError(f"failed to update document {document_id}: {exc}") from exc
        self.session.refresh(document)
        return document

    def list_documents(
        self,
        *,
        application_id: int | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[ApplicationDocument]:
        statement = select(ApplicationDocument)
        if application_id is not None:
            statement = statement.where(ApplicationDocument.application_id == application_id)
        if status is not None:
            statement = statement.where(ApplicationDocument.status == status)
        statement = statement.order_by(ApplicationDocument.created_at.asc(), ApplicationDocument.id.asc()).limit(limit)
        return list(self.session.scalars(statement).all())

    # Application reviews: each writer upserts only the columns it owns.

    def get_review(self, application_id: int) -> ApplicationReview | None:
        return self.session.scalar(
            select(ApplicationReview).where(ApplicationReview.application_id == application_id)
        )

    def upsert_ai_review(
        self,
        *,
        application_id: int,
        ai_rating: float | None,
        ai_summary: str | None,
        ai_version: str,
    ) -> ApplicationReview:
        values = {"ai_rating": ai_rating, "ai_summary": ai_summary, "ai_version": ai_version}
        return self._upsert_review(application_id, values)

    def upsert_manual_review(
        self,
        *,
        application_id: int,
        reviewer_id: int,
        rating: float,
        note: str | None,
    ) -> ApplicationReview:
        values = {"reviewer_id": reviewer_id, "rating": rating, "note": note}
        return self._upsert_review(application_id, values)

    def _upsert_review(self, application_id: int, values: dict[str, Any]) -> ApplicationReview:
        now = utcnow()
        base_insert = self._insert(ApplicationReview).values(
            application_id=application_id,
            created_at=now,
            updated_at=now,
            **values,
        )
        set_ = {key: getattr(base_insert.excluded, key) for key in values}
        set_["updated_at"] = now
        statement = base_insert.on_conflict_do_update(index_elements=["application_id"], set_=set_)
        self.session.execute(statement)
        self.session.commit()

        review = self.get_review(application_id)
        if review is None:
            raise RegistryError(f"review for application {application_id} could not be read back")
        self.session.refresh(review)
        return review

    # Review progress

    def get_progress(self, job_id: int, business_id: int) -> BusinessReviewProgress | None:
        return self.session.scalar(
            select(BusinessReviewProgress).where(
                BusinessReviewProgress.job_id == job_id,
                BusinessReviewProgress.business_id == business_id,
            )
        )

    def advance_progress(
        self,
        *,
        job_id: int,
        business_id: int,
        last_reviewed_application_id: int,
        reviewed_count: int,
        total_applications: int,
    ) -> BusinessReviewProgress:
        now = utcnow()
        table = BusinessReviewProgress.__table__
        base_insert = self._insert(BusinessReviewProgress).values(
            job_id=job_id,
            business_id=business_id,
            last_reviewed_application_id=last_reviewed_application_id,
            reviewed_count=reviewed_count,
            total_applications=max(total_applications, reviewed_count),
            resumed_at=now,
            created_at=now,
            updated_at=now,
        )
        excluded = base_insert.excluded
        moves_forward = excluded.reviewed_count >= table.c.reviewed_count
        statement = base_insert.on_conflict_do_update(
            index_elements=["job_id", "business_id"],
            set_={
                "last_reviewed_application_id": case(
                    (moves_forward, excluded.last_reviewed_application_id),
                    else_=table.c.last_reviewed_application_id,
                ),
                "reviewed_count": case(
                    (moves_forward, excluded.reviewed_count),
                    else_=table.c.reviewed_count,
                ),
                "total_applications": case(
                    (excluded.total_applications >= table.c.reviewed_count, excluded.total_applications),
                    else_=table.c.reviewed_count,
                ),
                "resumed_at": now,
                "updated_at": now,
            },
        )
        self.session.execute(statement)
        self.session.commit()

        progress = self.get_progress(job_id, business_id)
        if progress is None:
            raise RegistryError(f"progress for job {job_id} could not be read back")
        self.session.refresh(progress)
        return progress
