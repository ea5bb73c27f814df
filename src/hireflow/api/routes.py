from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hireflow.api.deps import (
    get_current_user,
    get_db,
    require_business,
    require_jobseeker,
    require_processing_secret,
)
from hireflow.api.schemas import (
    AISelectRequest,
    ApplicationSubmitRequest,
    DocumentRegisterRequest,
    DocumentRegisterResponse,
    DocumentResponse,
    ManualReviewRequest,
    ProcessingResetRequest,
)
from hireflow.api.security import AuthUser
from hireflow.core.access import require_application_owner
from hireflow.core.documents import DocumentRegistry
from hireflow.core.extraction import ExtractionWorker
from hireflow.core.progress import ReviewProgressTracker
from hireflow.core.ranker import CandidateRanker
from hireflow.core.scoring import ScoringEngine
from hireflow.db.repositories import Repository
from hireflow.errors import (
    ApplicationNotFoundError,
    HireflowError,
    JobAccessError,
    JobNotFoundError,
    RegistryError,
    RetryPolicyError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_STATUS_BY_ERROR: list[tuple[type[HireflowError], int]] = [
    (JobNotFoundError, 404),
    (ApplicationNotFoundError, 404),
    (JobAccessError, 403),
    (ValidationError, 400),
    (RetryPolicyError, 409),
]


def as_http_error(exc: HireflowError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.post(
    "/documents/register",
    response_model=DocumentRegisterResponse,
    dependencies=[Depends(require_processing_secret)],
)
def register_document(payload: DocumentRegisterRequest, db: Session = Depends(get_db)) -> DocumentRegisterResponse:
    registry = DocumentRegistry(db)
    try:
        document = registry.register_document(payload.application_id, payload.resume_url, payload.document_type)
    except RegistryError as exc:
        raise as_http_error(exc) from exc

    if document is None:
        return DocumentRegisterResponse(registered=False)
    return DocumentRegisterResponse(registered=True, document=DocumentResponse.model_validate(document))


@router.post("/internal/document-processing", dependencies=[Depends(require_processing_secret)])
def process_next_document(db: Session = Depends(get_db)) -> JSONResponse:
    worker = ExtractionWorker(db)
    try:
        outcome = worker.process_next()
    except RegistryError as exc:
        logger.error("Document processing failed: %s", exc)
        return JSONResponse({"message": "Processing error", "error": str(exc)}, status_code=500)

    if outcome.status == "idle":
        return JSONResponse({"message": "No pending documents"})
    if outcome.status == "failed":
        return JSONResponse(
            {"message": "Processing error", "error": outcome.reason or "Unknown error"},
            status_code=500,
        )
    return JSONResponse({"message": "Document processed", "document_id": outcome.document_id})


@router.post("/internal/document-processing/reset", dependencies=[Depends(require_processing_secret)])
def reset_failed_documents(payload: ProcessingResetRequest, db: Session = Depends(get_db)) -> dict:
    registry = DocumentRegistry(db)
    try:
        reset = registry.reset_failed(payload.document_id)
    except RegistryError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except HireflowError as exc:
        raise as_http_error(exc) from exc
    return {"reset": len(reset), "document_ids": [row.id for row in reset]}


@router.get("/jobs/{job_id}/review-progress")
def get_review_progress(
    job_id: int,
    user: AuthUser = Depends(require_business),
    db: Session = Depends(get_db),
) -> dict:
    tracker = ReviewProgressTracker(db)
    try:
        queue = tracker.get_queue(job_id, user.user_id)
    except HireflowError as exc:
        raise as_http_error(exc) from exc
    return queue.model_dump(mode="json")


@router.post("/jobs/{job_id}/ai-select")
def ai_select(
    job_id: int,
    payload: AISelectRequest | None = None,
    user: AuthUser = Depends(require_business),
    db: Session = Depends(get_db),
) -> dict:
    payload = payload or AISelectRequest()
    ranker = CandidateRanker(db)
    try:
        # Sync route: runs in the threadpool, so the session stays on one thread off the server loop.
        result = asyncio.run(ranker.rank(job_id, user.user_id, count=payload.count, hints=payload.hints))
    except HireflowError as exc:
        raise as_http_error(exc) from exc

    body = result.model_dump(mode="json")
    if not result.recommendations and not Repository(db).list_job_applications(job_id):
        body["message"] = "No applications found for this job"
    return body


@router.post("/jobs/{job_id}/applications", status_code=201)
def submit_application(
    job_id: int,
    payload: ApplicationSubmitRequest,
    user: AuthUser = Depends(require_jobseeker),
    db: Session = Depends(get_db),
) -> dict:
    repo = Repository(db)
    job = repo.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if not job.is_active:
        raise HTTPException(status_code=400, detail="This job is no longer accepting applications.")
    if repo.find_application(job_id, user.user_id):
        raise HTTPException(status_code=400, detail="You have already applied for this job.")

    try:
        application = repo.create_application(
            job_id=job_id,
            job_seeker_id=user.user_id,
            cover_letter=payload.cover_letter,
            resume_url=payload.resume_url,
        )
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail="You have already applied for this job.") from exc

    if application.resume_url:
        try:
            DocumentRegistry(db).register_document(application.id, application.resume_url, "resume")
        except RegistryError as exc:
            logger.error("Failed to register resume for document processing: %s", exc)

    return {"message": "Application submitted", "application_id": application.id}


@router.post("/applications/{application_id}/ai")
def trigger_ai_suggestion(
    application_id: int,
    user: AuthUser = Depends(require_business),
    db: Session = Depends(get_db),
) -> dict:
    try:
        require_application_owner(Repository(db), application_id, user.user_id)
    except HireflowError as exc:
        raise as_http_error(exc) from exc

    result = ScoringEngine(db).generate_suggestion(application_id)
    return {"message": "AI suggestion triggered", "result": result.model_dump(mode="json")}


@router.get("/applications/{application_id}/review")
def get_application_review(
    application_id: int,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    tracker = ReviewProgressTracker(db)
    try:
        detail = tracker.get_application_review(application_id, user_id=user.user_id, user_type=user.user_type)
    except HireflowError as exc:
        raise as_http_error(exc) from exc
    return detail


@router.post("/applications/{application_id}/review")
def save_application_review(
    application_id: int,
    payload: ManualReviewRequest,
    user: AuthUser = Depends(require_business),
    db: Session = Depends(get_db),
) -> dict:
    tracker = ReviewProgressTracker(db)
    try:
        result = tracker.record_review(
            application_id,
            user.user_id,
            rating=payload.rating,
            note=payload.note,
            advance=payload.advance,
        )
    except HireflowError as exc:
        raise as_http_error(exc) from exc

    return {
        "message": "Review saved",
        "next_application_id": result.next_application_id,
        "progress": {"position": result.position, "total": result.total},
    }
