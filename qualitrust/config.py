# qualitrust/config.py
import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === Algemeen ===
    app_env: str = "local"  # local | development | production

    # === Database ===
    database_url: str = "sqlite:///./qualitrust.db"

    # === Logging ===
    log_level: str = "INFO"
    log_json: bool = True

    # === Contract / evaluations ===
    settings_document_id: str = Field("general", description="Id of the single settings document")
    discount_policy_path: Optional[str] = Field(
        None, description="Override for the packaged discount policy YAML"
    )
    compliance_score_baseline: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance met simpele env-overrides."""
    s = Settings()

    env = os.getenv("ENVIRONMENT", s.app_env).lower()
    if env == "production":
        s.log_level = "WARNING"

    return s
