from __future__ import annotations

import asyncio
import json

import typer
import uvicorn

from hireflow.api.app import create_app
from hireflow.config import get_settings
from hireflow.core.documents import DocumentRegistry
from hireflow.core.extraction import ExtractionWorker
from hireflow.core.progress import ReviewProgressTracker
from hireflow.core.ranker import CandidateRanker
from hireflow.db.init import init_database
from hireflow.db.session import SessionLocal
from hireflow.errors import HireflowError
from hireflow.logging_config import configure_logging

app = typer.Typer(help="Hireflow CLI")
documents_app = typer.Typer(help="Document intake queue")
review_app = typer.Typer(help="Business review queues")

app.add_typer(documents_app, name="documents")
app.add_typer(review_app, name="review")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _document_json(document) -> dict:
    return {
        "id": document.id,
        "application_id": document.application_id,
        "bucket": document.storage_bucket,
        "path": document.storage_path,
        "document_type": document.document_type,
        "status": document.status,
        "metadata": document.extracted_metadata,
        "extracted_at": document.extracted_at.isoformat() if document.extracted_at else None,
    }


@app.command("init")
def init_cmd() -> None:
    """Initialize database and storage directories."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@documents_app.command("register")
def documents_register(
    application_id: int = typer.Option(..., "--application-id"),
    url: str = typer.Option(..., "--url"),
    document_type: str = typer.Option("", "--document-type"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        document = DocumentRegistry(db).register_document(application_id, url, document_type or None)
        if document is None:
            typer.echo(json.dumps({"registered": False}, indent=2))
            return
        typer.echo(json.dumps({"registered": True, "document": _document_json(document)}, indent=2))


@documents_app.command("process-next")
def documents_process_next() -> None:
    """Claim and extract one pending document."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        outcome = ExtractionWorker(db).process_next()
    typer.echo(json.dumps(outcome.model_dump(mode="json", exclude={"scoring"}), indent=2))
    if outcome.status == "failed":
        raise typer.Exit(code=1)


@documents_app.command("reset-failed")
def documents_reset_failed(document_id: int | None = typer.Option(None, "--document-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            reset = DocumentRegistry(db).reset_failed(document_id)
        except HireflowError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(json.dumps({"reset": [row.id for row in reset]}, indent=2))


@documents_app.command("list")
def documents_list(
    application_id: int | None = typer.Option(None, "--application-id"),
    status: str | None = typer.Option(None, "--status"),
    limit: int = typer.Option(50, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        registry = DocumentRegistry(db)
        rows = registry.repo.list_documents(application_id=application_id, status=status, limit=limit)
        typer.echo(json.dumps([_document_json(row) for row in rows], indent=2))


@review_app.command("queue")
def review_queue(
    job_id: int = typer.Option(..., "--job-id"),
    business_id: int = typer.Option(..., "--business-id"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            queue = ReviewProgressTracker(db).get_queue(job_id, business_id)
        except HireflowError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(json.dumps(queue.model_dump(mode="json"), indent=2))


@app.command("rank")
def rank_cmd(
    job_id: int = typer.Option(..., "--job-id"),
    business_id: int = typer.Option(..., "--business-id"),
    count: int = typer.Option(3, "--count"),
    age: str | None = typer.Option(None, "--age"),
    ethnicity: str | None = typer.Option(None, "--ethnicity"),
    gender: str | None = typer.Option(None, "--gender"),
) -> None:
    configure_logging()
    ensure_initialized()
    hints = {"age": age, "ethnicity": ethnicity, "gender": gender}
    with SessionLocal() as db:
        ranker = CandidateRanker(db)
        try:
            result = asyncio.run(ranker.rank(job_id, business_id, count=count, hints=hints))
        except HireflowError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    configure_logging(log_level)
    ensure_initialized()
    settings = get_settings()
    uvicorn.run(create_app(), host=host or settings.app_host, port=port or settings.app_port)
