from __future__ import annotations

from fastapi.testclient import TestClient

from hireflow.api.app import create_app
from hireflow.api.security import create_access_token
from hireflow.config import get_settings
from hireflow.core.storage import LocalObjectStorage
from hireflow.db.repositories import Repository
from hireflow.db.session import SessionLocal
from hireflow.types import AISuggestion

SECRET_HEADERS = {"X-Processing-Secret": "test-secret"}


class KeywordRouter:
    """Scores resumes by how many of the job's keywords they mention."""

    model = "keyword-reviewer"

    def __init__(self, settings=None, pool=None):
        pass

    def is_available(self) -> bool:
        return True

    def review_application(self, *, materials, hints=None) -> AISuggestion:
        text = (materials.document_text or "").lower()
        hits = sum(word in text for word in ("python", "sql", "kubernetes", "fastapi"))
        return AISuggestion(rating=float(max(1, hits + 1)), summary=f"{hits} keyword(s)", version=self.model)


def _bearer(user_id: int, user_type: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, user_type)}"}


def test_submit_process_review_and_rank(monkeypatch) -> None:
    monkeypatch.setattr("hireflow.core.scoring.LLMRouter", KeywordRouter)
    settings = get_settings()
    storage = LocalObjectStorage(settings.storage_dir, settings.storage_public_base_url)
    client = TestClient(create_app())

    with SessionLocal() as db:
        repo = Repository(db)
        business = repo.create_user(name="Acme", email="acme@corp.test", user_type="business")
        job = repo.create_job(business_id=business.id, title="Platform Engineer", description="Run the platform.")
        seekers = [
            repo.create_user(name=name, email=f"{name.lower()}@mail.test", user_type="jobseeker")
            for name in ("Ada", "Bo", "Cy")
        ]
        business_id, job_id = business.id, job.id
        seeker_ids = [seeker.id for seeker in seekers]

    resumes = {
        "Ada": "Python and SQL",
        "Bo": "Python, SQL, Kubernetes and FastAPI",
        "Cy": "Watercolour painting",
    }
    application_ids = []
    for seeker_id, (name, body) in zip(seeker_ids, resumes.items()):
        url = storage.upload("resumes", f"{seeker_id}/{name}.txt", body.encode("utf-8"))
        resp = client.post(
            f"/api/jobs/{job_id}/applications",
            json={"cover_letter": f"Hello from {name}", "resume_url": url},
            headers=_bearer(seeker_id, "jobseeker"),
        )
        assert resp.status_code == 201
        application_ids.append(resp.json()["application_id"])

    for _ in application_ids:
        resp = client.post("/api/internal/document-processing", headers=SECRET_HEADERS)
        assert resp.json()["message"] == "Document processed"
    assert client.post("/api/internal/document-processing", headers=SECRET_HEADERS).json() == {
        "message": "No pending documents"
    }

    owner = _bearer(business_id, "business")
    progress = client.get(f"/api/jobs/{job_id}/review-progress", headers=owner).json()
    assert [item["id"] for item in progress["queue"]] == application_ids
    assert [item["ai_rating"] for item in progress["queue"]] == [3.0, 5.0, 1.0]
    assert progress["summary"]["next_application_id"] == application_ids[0]

    saved = client.post(f"/api/applications/{application_ids[0]}/review", json={"rating": 3}, headers=owner)
    assert saved.json()["next_application_id"] == application_ids[1]
    progress = client.get(f"/api/jobs/{job_id}/review-progress", headers=owner).json()
    assert progress["summary"]["next_application_id"] == application_ids[1]
    assert progress["queue"][0]["manual_rating"] == 3.0
    assert progress["queue"][0]["ai_rating"] == 3.0

    ranked = client.post(f"/api/jobs/{job_id}/ai-select", json={"count": 2}, headers=owner).json()
    assert [item["application_id"] for item in ranked["recommendations"]] == [
        application_ids[1],
        application_ids[0],
    ]
    assert ranked["recommendations"][0]["name"] == "Bo"
