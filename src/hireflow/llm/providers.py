from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import openai
from openai import OpenAI

from hireflow.config import Settings
from hireflow.types import ModelResponse

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int
    enabled: bool = True


class LLMProvider:
    """One OpenAI-compatible endpoint.

    The Responses API is tried first. Endpoints that answer 404 for it (most
    local servers) are switched to chat completions for the rest of the
    provider's lifetime.
    """

    def __init__(self, config: ProviderConfig, client: Any | None = None):
        self.config = config
        self.client = client or OpenAI(
            base_url=config.base_url,
            api_key=config.api_key or "unset",
            timeout=float(config.timeout_sec),
        )
        self._chat_only = False

    @property
    def available(self) -> bool:
        return self.config.enabled and bool(self.config.api_key)

    def complete_text(self, *, model: str, prompt: str, system: str = "") -> ModelResponse:
        if not self._chat_only:
            try:
                return self._via_responses(model, prompt, system)
            except Exception as exc:
                if not _responses_unsupported(exc):
                    raise
                logger.warning(
                    "Responses API unavailable for provider=%s (%s); using chat.completions",
                    self.config.name,
                    exc,
                )
                self._chat_only = True
        return self._via_chat(model, prompt, system)

    def complete_json(self, *, model: str, prompt: str, system: str = "") -> dict[str, Any]:
        return parse_json(self.complete_text(model=model, prompt=prompt, system=system).content)

    def _via_responses(self, model: str, prompt: str, system: str) -> ModelResponse:
        request: dict[str, Any] = {
            "model": model,
            "input": [{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
        }
        if system:
            request["instructions"] = system
        response = self.client.responses.create(**request)
        return ModelResponse(content=getattr(response, "output_text", "") or "", raw=_raw(response, "responses"))

    def _via_chat(self, model: str, prompt: str, system: str) -> ModelResponse:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        response = self.client.chat.completions.create(
            model=model,
            temperature=0.2,
            messages=messages,
            response_format={"type": "json_object"},
        )
        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None) if message is not None else None
        return ModelResponse(content=content if isinstance(content, str) else "", raw=_raw(response, "chat_completions"))


def _responses_unsupported(exc: Exception) -> bool:
    if isinstance(exc, openai.NotFoundError):
        return True
    return getattr(exc, "status_code", None) == 404


def _raw(response: Any, api_path: str) -> dict[str, Any]:
    raw = response.model_dump() if hasattr(response, "model_dump") else {}
    if not isinstance(raw, dict):
        raw = {"raw": raw}
    raw["api_path"] = api_path
    return raw


def parse_json(content: str) -> dict[str, Any]:
    """Decode a JSON object from model output, tolerating a fenced block. Anything else is ``{}``."""
    candidate = (content or "").strip()
    if not candidate:
        return {}

    fenced = _FENCED_BLOCK.search(candidate)
    if fenced:
        candidate = fenced.group(1)

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Model output is not valid JSON (%s chars)", len(candidate))
        return {}
    return value if isinstance(value, dict) else {}


class ProviderPool:
    """Lazily built providers, shared by every router call in the process."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._providers: dict[str, LLMProvider] = {}

    def openai(self) -> LLMProvider:
        return self._get(
            ProviderConfig(
                name="openai",
                base_url=self.settings.openai_base_url,
                api_key=self.settings.openai_api_key,
                timeout_sec=self.settings.openai_timeout_sec,
            )
        )

    def local(self) -> LLMProvider:
        return self._get(
            ProviderConfig(
                name="local",
                base_url=self.settings.local_llm_base_url,
                api_key=self.settings.local_llm_api_key,
                timeout_sec=self.settings.local_llm_timeout_sec,
                enabled=self.settings.local_llm_enabled,
            )
        )

    def _get(self, config: ProviderConfig) -> LLMProvider:
        provider = self._providers.get(config.name)
        if provider is None:
            provider = self._providers[config.name] = LLMProvider(config)
        return provider
