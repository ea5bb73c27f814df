from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

from sqlalchemy.orm import Session

from hireflow.config import Settings, get_settings
from hireflow.core.scoring import ScoringEngine, normalize_hints
from hireflow.db.repositories import Repository
from hireflow.errors import JobNotFoundError
from hireflow.types import (
    ApplicationMaterials,
    RankingResult,
    Recommendation,
    ReviewHints,
    ScoringFailure,
    ScoringSuccess,
)

logger = logging.getLogger(__name__)


def clamp_count(count: Any, *, default: int = 3, maximum: int = 20) -> int:
    if isinstance(count, bool) or not isinstance(count, (int, float)):
        return default
    if not math.isfinite(count):
        return default
    return max(1, min(maximum, round(count)))


class CandidateRanker:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        scoring: ScoringEngine | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.scoring = scoring or ScoringEngine(session, settings=self.settings)

    async def rank(
        self,
        job_id: int,
        business_id: int,
        *,
        count: Any = None,
        hints: ReviewHints | dict[str, Any] | None = None,
    ) -> RankingResult:
        job = self.repo.get_job(job_id)
        if job is None or job.business_id != business_id:
            raise JobNotFoundError(f"job {job_id} not found")

        limit = clamp_count(
            count,
            default=self.settings.ranker_default_count,
            maximum=self.settings.ranker_max_count,
        )
        normalized = normalize_hints(hints)

        rows = self.repo.list_job_applications(job_id)
        if not rows:
            return RankingResult(recommendations=[], hints=normalized)

        # Database work stays on this thread; only the model call fans out.
        prepared: list[ApplicationMaterials | ScoringFailure] = []
        for application, _ in rows:
            try:
                prepared.append(self.scoring.prepare(application.id))
            except Exception as exc:
                logger.warning("AI suggestion preparation failed for application %s: %s", application.id, exc)
                prepared.append(ScoringFailure(reason=str(exc)))

        semaphore = asyncio.Semaphore(self.settings.ranker_max_concurrency)
        loop = asyncio.get_running_loop()

        async def score(item: ApplicationMaterials | ScoringFailure) -> ScoringSuccess | ScoringFailure:
            if isinstance(item, ScoringFailure):
                return item
            async with semaphore:
                try:
                    return await loop.run_in_executor(None, self.scoring.request_suggestion, item, normalized)
                except Exception as exc:
                    logger.warning("AI suggestion generation failed for application %s: %s", item.application_id, exc)
                    return ScoringFailure(reason=str(exc))

        outcomes = await asyncio.gather(*(score(item) for item in prepared))

        recommendations: list[Recommendation] = []
        for (application, seeker), item, outcome in zip(rows, prepared, outcomes):
            if isinstance(outcome, ScoringFailure) or not isinstance(item, ApplicationMaterials):
                continue
            stored = self.scoring.persist_suggestion(item, outcome.suggestion)
            if isinstance(stored, ScoringFailure):
                logger.warning(
                    "Keeping recommendation for application %s without a stored review: %s",
                    application.id,
                    stored.reason,
                )
            rating = outcome.suggestion.rating
            if rating is None:
                continue
            recommendations.append(
                Recommendation(
                    application_id=application.id,
                    name=seeker.name if seeker else None,
                    email=seeker.email if seeker else None,
                    rating=rating,
                    summary=outcome.suggestion.summary,
                )
            )

        recommendations.sort(key=lambda item: item.rating, reverse=True)
        logger.info(
            "Ranked job_id=%s scored=%s/%s returning=%s",
            job_id,
            len(recommendations),
            len(rows),
            min(limit, len(recommendations)),
        )
        return RankingResult(recommendations=recommendations[:limit], hints=normalized)
