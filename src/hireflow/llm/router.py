from __future__ import annotations

import logging
import math
from typing import Any

from hireflow.config import Settings, get_settings
from hireflow.llm.prompts import (
    HINT_LABELS,
    NO_DOCUMENT_TEXT,
    REVIEW_INSTRUCTIONS,
    REVIEW_INTRO,
    REVIEW_JOB_SECTION,
    REVIEW_SYSTEM_PROMPT,
)
from hireflow.llm.providers import LLMProvider, ProviderPool
from hireflow.types import AISuggestion, ApplicationMaterials, ReviewHints

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ProviderError(RuntimeError):
    """Every configured provider failed for a call."""


class LLMRouter:
    def __init__(self, settings: Settings | None = None, pool: ProviderPool | None = None):
        self.settings = settings or get_settings()
        self.pool = pool or ProviderPool(self.settings)

    @property
    def model(self) -> str:
        return self.settings.reviewer_model

    def is_available(self) -> bool:
        return any(provider.available for provider in self._providers_for("review"))

    def review_application(
        self,
        *,
        materials: ApplicationMaterials,
        hints: ReviewHints | None = None,
    ) -> AISuggestion:
        prompt = build_review_prompt(materials, hints)
        data = self._call_json(task="review", prompt=prompt, model=self.model)
        if not data:
            raise ValueError("model returned no structured review")
        return parse_review_payload(data, version=self.model)

    def _providers_for(self, task: str) -> list[LLMProvider]:
        provider_name = {
            "review": self.settings.llm_router_review_provider,
        }.get(task, self.settings.llm_router_default)

        if provider_name == "local":
            return [self.pool.local(), self.pool.openai()]
        return [self.pool.openai(), self.pool.local()]

    def _call_json(self, *, task: str, prompt: str, model: str) -> dict[str, Any]:
        last_error: Exception | None = None
        for provider in self._providers_for(task):
            if not provider.available:
                continue
            try:
                return provider.complete_json(model=model, prompt=prompt, system=REVIEW_SYSTEM_PROMPT)
            except Exception as exc:
                logger.warning("LLM JSON call failed provider=%s error=%s", provider.config.name, exc)
                last_error = exc

        if last_error is not None:
            raise ProviderError(str(last_error)) from last_error
        return {}


def build_review_prompt(materials: ApplicationMaterials, hints: ReviewHints | None = None) -> str:
    sections = [
        REVIEW_INTRO,
        REVIEW_JOB_SECTION.format(
            job_title=materials.job_title,
            job_description=materials.job_description,
        ),
    ]

    if materials.job_requirements:
        sections.append(f"Job Requirements:\n{materials.job_requirements}")
    if materials.cover_letter:
        sections.append(f"Cover Letter:\n{materials.cover_letter}")
    if materials.document_text:
        sections.append(f"Candidate Documents:\n{materials.document_text}")
    else:
        sections.append(NO_DOCUMENT_TEXT)

    sections.append(REVIEW_INSTRUCTIONS)

    if hints is not None:
        hint_lines = [
            f"{label}: {value}"
            for key, label in HINT_LABELS.items()
            if (value := getattr(hints, key))
        ]
        if hint_lines:
            sections.append("Additional recruiter guidance:\n" + "\n".join(hint_lines))

    return "\n\n".join(sections)


def coerce_rating(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rating):
        return None
    return float(max(MIN_RATING, min(MAX_RATING, round(rating))))


def parse_review_payload(data: dict[str, Any], *, version: str = "") -> AISuggestion:
    summary = data.get("summary")
    return AISuggestion(
        rating=coerce_rating(data.get("rating")),
        summary=summary.strip() if isinstance(summary, str) else None,
        version=version,
    )
