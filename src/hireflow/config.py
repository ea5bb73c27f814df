from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Hireflow"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8788
    log_level: str = "INFO"
    secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"

    database_url: str = "sqlite:///./data/hireflow.db"
    data_dir: Path = Path("./data")
    storage_dir: Path = Path("./data/storage")
    storage_public_base_url: str = "http://127.0.0.1:8788"
    storage_backend: str = "local"

    document_processing_secret: str = ""
    failed_document_policy: str = "manual_reset"
    document_max_resets: int = 3

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_reviewer: str = "gpt-4o-mini"
    openai_timeout_sec: int = 60

    local_llm_enabled: bool = False
    local_llm_base_url: str = "http://localhost:11434/v1"
    local_llm_api_key: str = "local"
    local_llm_model: str = "qwen2.5:14b-instruct"
    local_llm_timeout_sec: int = 90

    llm_router_default: str = "openai"
    llm_router_review_provider: str = "openai"

    ranker_default_count: int = 3
    ranker_max_count: int = 20
    ranker_max_concurrency: int = 4

    cors_origins: str = "http://127.0.0.1:8788"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("failed_document_policy")
    @classmethod
    def validate_failed_document_policy(cls, value: str) -> str:
        allowed = {"terminal", "manual_reset"}
        if value not in allowed:
            raise ValueError(f"failed_document_policy must be one of {sorted(allowed)}")
        return value

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, value: str) -> str:
        allowed = {"local", "http"}
        if value not in allowed:
            raise ValueError(f"storage_backend must be one of {sorted(allowed)}")
        return value

    @field_validator("ranker_max_concurrency")
    @classmethod
    def validate_ranker_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("ranker_max_concurrency must be at least 1")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def reviewer_model(self) -> str:
        if self.llm_router_review_provider == "local":
            return self.local_llm_model
        return self.openai_model_reviewer


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
