from __future__ import annotations

from hireflow.db.models import Application, Job
from hireflow.db.repositories import Repository
from hireflow.errors import ApplicationNotFoundError, JobAccessError, JobNotFoundError


def require_job_owner(repo: Repository, job_id: int, business_id: int) -> Job:
    job = repo.get_job(job_id)
    if job is None:
        raise JobNotFoundError(f"job {job_id} not found")
    if job.business_id != business_id:
        raise JobAccessError(f"job {job_id} is not owned by business {business_id}")
    return job


def require_application_owner(repo: Repository, application_id: int, business_id: int) -> tuple[Application, Job]:
    application = repo.get_application(application_id)
    if application is None:
        raise ApplicationNotFoundError(f"application {application_id} not found")
    job = repo.get_job(application.job_id)
    if job is None:
        raise ApplicationNotFoundError(f"application {application_id} has no job")
    if job.business_id != business_id:
        raise JobAccessError(f"application {application_id} is not owned by business {business_id}")
    return application, job
