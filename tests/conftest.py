from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="hireflow-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_ROOT / 'hireflow.db'}")
os.environ.setdefault("DATA_DIR", str(_TEST_ROOT))
os.environ.setdefault("STORAGE_DIR", str(_TEST_ROOT / "storage"))
os.environ["APP_ENV"] = "test"
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOCAL_LLM_ENABLED"] = "false"
os.environ["DOCUMENT_PROCESSING_SECRET"] = "test-secret"

import pytest  # noqa: E402

from hireflow.core.storage import LocalObjectStorage  # noqa: E402
from hireflow.db.base import Base  # noqa: E402
from hireflow.db.repositories import Repository  # noqa: E402
from hireflow.db.session import SessionLocal, engine  # noqa: E402

STORAGE_BASE_URL = "http://storage.test"


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def storage(tmp_path: Path) -> LocalObjectStorage:
    return LocalObjectStorage(tmp_path / "buckets", STORAGE_BASE_URL)


@pytest.fixture
def job_setup(db):
    """A business owning one job with no applications yet."""
    repo = Repository(db)
    business = repo.create_user(name="Acme Hiring", email="hiring@acme.test", user_type="business")
    job = repo.create_job(
        business_id=business.id,
        title="Backend Engineer",
        description="Build and run Python services.",
        requirements="Python, SQL",
    )
    return business, job


@pytest.fixture
def add_applicant(db):
    repo = Repository(db)

    def _add(job_id: int, index: int, *, cover_letter: str = "", resume_url: str | None = None):
        seeker = repo.create_user(name=f"Seeker {index}", email=f"seeker{index}@mail.test", user_type="jobseeker")
        return repo.create_application(
            job_id=job_id,
            job_seeker_id=seeker.id,
            cover_letter=cover_letter,
            resume_url=resume_url,
        )

    return _add
