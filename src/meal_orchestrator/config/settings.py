"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "meal-orchestrator"
    app_env: str = "dev"
    app_debug: bool = False
    log_level: str = "INFO"

    gemini_api_key: str = ""
    llm_model: str = "gemini-3-flash-preview"
    llm_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_timeout_s: float = Field(default=120.0, ge=0.5)
    llm_retry_backoff_s: float = Field(default=1.0, ge=0.0)
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_output_tokens: int = Field(default=16000, ge=256)

    plan_max_iterations: int = Field(default=25, ge=1)
    build_batch_size: int = Field(default=2, ge=1)
    polish_batch_size: int = Field(default=8, ge=1)
    default_num_meals: int = Field(default=16, ge=1)

    job_expiry_s: float = Field(default=30 * 60, gt=0)
    job_workers: int = Field(default=4, ge=1)
    database_url: str = ""

    recipes_path: str = "data/recipes.json"

    model_config = SettingsConfigDict(
        env_prefix="MEAL_ORCHESTRATOR_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_gemini_api_key(self) -> str:
        return self.gemini_api_key or os.getenv("GEMINI_API_KEY", "")

    def resolved_recipes_path(self) -> Path:
        path = Path(self.recipes_path)
        if not path.is_absolute():
            return (PROJECT_ROOT / path).resolve()
        return path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
