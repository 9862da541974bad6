from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./bendrija.db"

    init_admin_email: str | None = None
    init_admin_password: str | None = None

    access_token_exp_minutes: int = 60 * 24

    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_vision_model: str | None = None

    slip_ai_enabled: bool = True
    slip_ai_max_chars: int = 15000
    slip_ai_timeout_seconds: float = 60.0
    invoice_ai_timeout_seconds: float = 30.0

    # None keeps the resident matcher strictly exact.
    resident_fuzzy_name_threshold: float | None = None

    max_upload_bytes: int = 20 * 1024 * 1024


settings = Settings()
