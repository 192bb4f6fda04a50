from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        extra="ignore",
    )

    # Text generation (OpenAI-compatible endpoint, OpenRouter by default)
    openrouter_api_key: Optional[str] = None
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "google/gemini-flash-1.5"

    # Cognito Settings (Optional for local dev)
    auth_enabled: bool = False
    cognito_user_pool_id: Optional[str] = None
    cognito_app_client_id: Optional[str] = None
    aws_region: Optional[str] = None
    sign_in_url: str = "/sign-in"

    # Shared secret presented by the workflow orchestrator
    workflow_signing_key: Optional[str] = None

    profile_update_timeout_seconds: float = 10.0
    insight_refresh_interval_days: int = 7


@lru_cache()
def get_settings() -> Settings:
    return Settings()
