from __future__ import annotations

import pytest

from hireflow.core.progress import ReviewProgressTracker
from hireflow.db.repositories import Repository
from hireflow.errors import ApplicationNotFoundError, JobAccessError, JobNotFoundError, ValidationError


@pytest.fixture
def queue(db, job_setup, add_applicant):
    business, job = job_setup
    applications = [add_applicant(job.id, index) for index in range(3)]
    return business, job, [application.id for application in applications]


def test_fresh_queue_starts_at_first_application(db, queue) -> None:
    business, job, ids = queue

    result = ReviewProgressTracker(db).get_queue(job.id, business.id)

    assert [item.id for item in result.queue] == ids
    assert [item.position for item in result.queue] == [1, 2, 3]
    assert result.queue[0].job_seeker.name == "Seeker 0"
    assert result.summary.total_applications == 3
    assert result.summary.reviewed_count == 0
    assert result.summary.last_reviewed_application_id is None
    assert result.summary.next_application_id == ids[0]


def test_queue_resumes_after_last_reviewed(db, queue) -> None:
    business, job, (a, b, c) = queue
    tracker = ReviewProgressTracker(db)

    tracker.record_review(a, business.id, rating=3)
    recorded = tracker.record_review(b, business.id, rating=5, note="great")

    assert recorded.next_application_id == c
    assert (recorded.position, recorded.total) == (2, 3)

    summary = tracker.get_queue(job.id, business.id).summary
    assert summary.last_reviewed_application_id == b
    assert summary.reviewed_count == 2
    assert summary.next_application_id == c


def test_queue_items_carry_review_columns(db, queue) -> None:
    business, job, (a, _, _) = queue
    tracker = ReviewProgressTracker(db)
    tracker.record_review(a, business.id, rating=4)
    Repository(db).upsert_ai_review(application_id=a, ai_rating=2.0, ai_summary="weak", ai_version="m")

    item = tracker.get_queue(job.id, business.id).queue[0]

    assert item.status == "reviewed"
    assert item.reviewed_at is not None
    assert item.manual_rating == 4.0
    assert item.ai_rating == 2.0
    assert item.ai_summary == "weak"


def test_reviewing_backwards_does_not_move_the_pointer_back(db, queue) -> None:
    business, job, (a, b, c) = queue
    tracker = ReviewProgressTracker(db)

    tracker.record_review(c, business.id, rating=4)
    tracker.record_review(a, business.id, rating=2)

    progress = Repository(db).get_progress(job.id, business.id)
    db.refresh(progress)
    assert progress.last_reviewed_application_id == c
    assert progress.reviewed_count == 3
    assert progress.reviewed_count <= progress.total_applications


def test_advance_false_returns_no_next(db, queue) -> None:
    business, _, (a, _, _) = queue

    recorded = ReviewProgressTracker(db).record_review(a, business.id, rating=4, advance=False)

    assert recorded.next_application_id is None
    assert recorded.position == 1


def test_reviewing_the_last_application_wraps_the_queue_pointer(db, queue) -> None:
    business, job, (a, _, c) = queue
    tracker = ReviewProgressTracker(db)

    assert tracker.record_review(c, business.id, rating=1).next_application_id is None
    assert tracker.get_queue(job.id, business.id).summary.next_application_id == a


@pytest.mark.parametrize("rating", [0, 6, 5.5, "4", None, True])
def test_invalid_ratings_are_rejected(db, queue, rating) -> None:
    business, _, (a, _, _) = queue

    with pytest.raises(ValidationError):
        ReviewProgressTracker(db).record_review(a, business.id, rating=rating)
    assert Repository(db).get_review(a) is None


def test_ownership_is_enforced(db, queue) -> None:
    business, job, (a, _, _) = queue
    repo = Repository(db)
    rival = repo.create_user(name="Rival", email="rival@corp.test", user_type="business")
    tracker = ReviewProgressTracker(db)

    with pytest.raises(JobNotFoundError):
        tracker.get_queue(9999, business.id)
    with pytest.raises(JobAccessError):
        tracker.get_queue(job.id, rival.id)
    with pytest.raises(JobAccessError):
        tracker.record_review(a, rival.id, rating=3)
    with pytest.raises(ApplicationNotFoundError):
        tracker.record_review(9999, business.id, rating=3)


def test_application_review_detail_for_owner_and_applicant(db, queue) -> None:
    business, _, (a, b, c) = queue
    tracker = ReviewProgressTracker(db)
    tracker.record_review(b, business.id, rating=5, note="hire")
    seeker_id = Repository(db).get_application(b).job_seeker_id

    detail = tracker.get_application_review(b, user_id=business.id, user_type="business")

    assert detail["review"]["rating"] == 5.0
    assert detail["review"]["note"] == "hire"
    assert detail["progress"] == {
        "position": 2,
        "total": 3,
        "previous_application_id": a,
        "next_application_id": c,
    }
    assert tracker.get_application_review(b, user_id=seeker_id, user_type="jobseeker")["application"]["id"] == b
    with pytest.raises(JobAccessError):
        tracker.get_application_review(b, user_id=seeker_id + 100, user_type="jobseeker")
