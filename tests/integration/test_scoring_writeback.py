from __future__ import annotations

from hireflow.config import Settings
from hireflow.core.documents import DocumentRegistry
from hireflow.core.progress import ReviewProgressTracker
from hireflow.core.scoring import ScoringEngine
from hireflow.db.repositories import Repository
from hireflow.llm.router import ProviderError
from hireflow.types import AISuggestion


class RecordingRouter:
    model = "test-reviewer"

    def __init__(self, payload: AISuggestion | Exception):
        self.payload = payload
        self.hints = []

    def is_available(self) -> bool:
        return True

    def review_application(self, *, materials, hints=None) -> AISuggestion:
        self.hints.append(hints)
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def _engine(db, router) -> ScoringEngine:
    return ScoringEngine(db, settings=Settings(openai_api_key="key"), router=router)


def test_missing_credentials_fail_without_calling_the_model(db, job_setup, add_applicant) -> None:
    _, job = job_setup
    application = add_applicant(job.id, 1, cover_letter="Hello")

    result = ScoringEngine(db, settings=Settings(openai_api_key="", local_llm_enabled=False)).generate_suggestion(
        application.id
    )

    assert result.success is False
    assert result.reason == "missing_api_key"


def test_unknown_application_is_missing_materials(db) -> None:
    result = _engine(db, RecordingRouter(AISuggestion(rating=3))).generate_suggestion(404)

    assert result.success is False
    assert result.reason == "missing_materials"


def test_application_without_text_is_not_scored(db, job_setup, add_applicant) -> None:
    _, job = job_setup
    application = add_applicant(job.id, 1)
    router = RecordingRouter(AISuggestion(rating=3))

    result = _engine(db, router).generate_suggestion(application.id)

    assert result.success is False
    assert result.reason == "no_text_available"
    assert router.hints == []


def test_provider_and_output_failures_are_reported(db, job_setup, add_applicant) -> None:
    _, job = job_setup
    application = add_applicant(job.id, 1, cover_letter="Hello")

    provider_failed = _engine(db, RecordingRouter(ProviderError("timeout"))).generate_suggestion(application.id)
    bad_output = _engine(db, RecordingRouter(ValueError("empty"))).generate_suggestion(application.id)

    assert provider_failed.reason == "provider_error: timeout"
    assert bad_output.reason == "invalid_model_output"
    assert Repository(db).get_review(application.id) is None


def test_hints_are_normalized_before_the_model_call(db, job_setup, add_applicant) -> None:
    _, job = job_setup
    application = add_applicant(job.id, 1, cover_letter="Hello")
    router = RecordingRouter(AISuggestion(rating=4, summary="ok", version="test-reviewer"))

    _engine(db, router).generate_suggestion(application.id, {"age": "any", "gender": "balanced"})

    assert router.hints[0].age is None
    assert router.hints[0].gender == "balanced"


def test_only_completed_documents_feed_the_prompt(db, job_setup, add_applicant) -> None:
    _, job = job_setup
    application = add_applicant(job.id, 1)
    registry = DocumentRegistry(db)
    url = "https://proj.storage.test/storage/v1/object/public/resumes/{}"
    done = registry.register_document(application.id, url.format("a.txt"))
    registry.register_document(application.id, url.format("b.txt"))
    registry.claim(done.id)
    registry.mark_status(done.id, "completed", extracted_text="Resume A")

    materials = _engine(db, RecordingRouter(AISuggestion())).gather_materials(application.id)

    assert materials.document_text == "Document 1:\nResume A"
    assert materials.job_requirements == "Python, SQL"


def test_ai_and_manual_writes_do_not_clobber_each_other(db, job_setup, add_applicant) -> None:
    business, job = job_setup
    application = add_applicant(job.id, 1, cover_letter="Hello")

    ReviewProgressTracker(db).record_review(application.id, business.id, rating=2, note="  meh  ")
    engine = _engine(db, RecordingRouter(AISuggestion(rating=5, summary="Strong", version="test-reviewer")))
    assert engine.generate_suggestion(application.id).success is True

    review = Repository(db).get_review(application.id)
    assert (review.rating, review.note, review.reviewer_id) == (2.0, "meh", business.id)
    assert (review.ai_rating, review.ai_summary, review.ai_version) == (5.0, "Strong", "test-reviewer")

    ReviewProgressTracker(db).record_review(application.id, business.id, rating=4)
    review = Repository(db).get_review(application.id)
    db.refresh(review)
    assert review.rating == 4.0
    assert review.note is None
    assert review.ai_rating == 5.0
    assert review.ai_summary == "Strong"


def test_repeat_suggestions_overwrite_ai_columns(db, job_setup, add_applicant) -> None:
    _, job = job_setup
    application = add_applicant(job.id, 1, cover_letter="Hello")

    _engine(db, RecordingRouter(AISuggestion(rating=2, summary="first"))).generate_suggestion(application.id)
    _engine(db, RecordingRouter(AISuggestion(rating=3, summary="second"))).generate_suggestion(application.id)

    review = Repository(db).get_review(application.id)
    db.refresh(review)
    assert review.ai_rating == 3.0
    assert review.ai_summary == "second"
    assert review.ai_version == "test-reviewer"
