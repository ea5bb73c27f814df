from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy.orm import Session

from hireflow.core.access import require_application_owner, require_job_owner
from hireflow.db.repositories import Repository
from hireflow.errors import ApplicationNotFoundError, JobAccessError, ValidationError
from hireflow.types import (
    JobRef,
    JobSeekerSummary,
    QueueItem,
    ReviewQueue,
    ReviewRecordResult,
    ReviewSummary,
)

logger = logging.getLogger(__name__)

MIN_MANUAL_RATING = 1
MAX_MANUAL_RATING = 5


def locate(queue_ids: Sequence[int], application_id: int | None) -> int:
    if application_id is None:
        return -1
    try:
        return list(queue_ids).index(application_id)
    except ValueError:
        return -1


def compute_next(queue_ids: Sequence[int], last_reviewed_id: int | None) -> int | None:
    """Resume pointer: the application after the last reviewed one.

    Wraps to the first application when nothing has been reviewed, when the
    last reviewed one left the queue, or when it was the final one.
    """
    if not queue_ids:
        return None
    index = locate(queue_ids, last_reviewed_id)
    if 0 <= index and index + 1 < len(queue_ids):
        return queue_ids[index + 1]
    return queue_ids[0]


class ReviewProgressTracker:
    def __init__(self, session: Session):
        self.session = session
        self.repo = Repository(session)

    def get_queue(self, job_id: int, business_id: int) -> ReviewQueue:
        job = require_job_owner(self.repo, job_id, business_id)
        rows = self.repo.list_review_queue_rows(job_id)
        progress = self.repo.get_progress(job_id, business_id)

        queue = [
            QueueItem(
                id=application.id,
                position=index,
                status=application.status,
                created_at=application.created_at,
                reviewed_at=application.reviewed_at,
                job_seeker=(
                    JobSeekerSummary(id=seeker.id, name=seeker.name, email=seeker.email) if seeker else None
                ),
                manual_rating=review.rating if review else None,
                ai_rating=review.ai_rating if review else None,
                ai_summary=review.ai_summary if review else None,
                review_updated_at=review.updated_at if review else None,
            )
            for index, (application, seeker, review) in enumerate(rows, start=1)
        ]

        queue_ids = [item.id for item in queue]
        last_reviewed_id = progress.last_reviewed_application_id if progress else None
        last_index = locate(queue_ids, last_reviewed_id)

        summary = ReviewSummary(
            total_applications=len(queue),
            reviewed_count=progress.reviewed_count if progress else max(last_index + 1, 0),
            last_reviewed_application_id=last_reviewed_id,
            last_reviewed_at=progress.updated_at if progress else None,
            next_application_id=compute_next(queue_ids, last_reviewed_id),
        )
        return ReviewQueue(job=JobRef(id=job.id, title=job.title), queue=queue, summary=summary)

    def record_review(
        self,
        application_id: int,
        business_id: int,
        *,
        rating: Any,
        note: str | None = None,
        advance: bool = True,
    ) -> ReviewRecordResult:
        application, job = require_application_owner(self.repo, application_id, business_id)

        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            raise ValidationError("Rating must be a number between 1 and 5.")
        if rating < MIN_MANUAL_RATING or rating > MAX_MANUAL_RATING:
            raise ValidationError("Rating must be a number between 1 and 5.")

        note = note.strip() if isinstance(note, str) else None

        self.repo.upsert_manual_review(
            application_id=application_id,
            reviewer_id=business_id,
            rating=float(rating),
            note=note,
        )
        self.repo.mark_application_reviewed(application_id, reviewer_id=business_id, note=note)

        queue_ids = [row.id for row, _ in self.repo.list_job_applications(job.id)]
        total = len(queue_ids)
        index = locate(queue_ids, application_id)
        reviewed_count = index + 1 if index >= 0 else total

        next_application_id = None
        if advance and 0 <= index and index + 1 < total:
            next_application_id = queue_ids[index + 1]

        self.repo.advance_progress(
            job_id=job.id,
            business_id=business_id,
            last_reviewed_application_id=application_id,
            reviewed_count=reviewed_count,
            total_applications=total,
        )
        logger.info(
            "Recorded review application_id=%s business_id=%s position=%s/%s",
            application_id,
            business_id,
            reviewed_count,
            total,
        )
        return ReviewRecordResult(
            application_id=application_id,
            next_application_id=next_application_id,
            position=reviewed_count,
            total=total,
        )

    def get_application_review(self, application_id: int, *, user_id: int, user_type: str) -> dict[str, Any]:
        application = self.repo.get_application(application_id)
        if application is None:
            raise ApplicationNotFoundError(f"application {application_id} not found")
        job = self.repo.get_job(application.job_id)
        if job is None:
            raise ApplicationNotFoundError(f"application {application_id} has no job")

        if user_type == "business":
            if job.business_id != user_id:
                raise JobAccessError("Forbidden")
        elif user_type == "jobseeker":
            if application.job_seeker_id != user_id:
                raise JobAccessError("Forbidden")
        else:
            raise JobAccessError("Forbidden")

        seeker = self.repo.get_user(application.job_seeker_id)
        review = self.repo.get_review(application_id)
        queue_ids = [row.id for row, _ in self.repo.list_job_applications(job.id)]
        index = locate(queue_ids, application_id)

        return {
            "application": {
                "id": application.id,
                "job_id": job.id,
                "job_title": job.title,
                "status": application.status,
                "created_at": application.created_at,
                "cover_letter": application.cover_letter,
                "resume_url": application.resume_url,
                "job_seeker": (
                    {"id": seeker.id, "name": seeker.name, "email": seeker.email} if seeker else None
                ),
            },
            "review": (
                {
                    "id": review.id,
                    "rating": review.rating,
                    "note": review.note,
                    "updated_at": review.updated_at,
                }
                if review
                else None
            ),
            "ai_suggestion": (
                {"rating": review.ai_rating, "summary": review.ai_summary, "version": review.ai_version}
                if review
                else None
            ),
            "progress": {
                "position": index + 1 if index >= 0 else None,
                "total": len(queue_ids),
                "previous_application_id": queue_ids[index - 1] if index > 0 else None,
                "next_application_id": (
                    queue_ids[index + 1] if 0 <= index and index + 1 < len(queue_ids) else None
                ),
            },
        }
