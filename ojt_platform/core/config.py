"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "ojt_platform"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Logging
    log_level: str = "INFO"

    # Assessments
    default_passing_score: int = 60
    attempt_questions_per_category: int = 10

    # Matching
    match_min_score: int = 20
    match_max_results: int = 20
    preference_bonus_weight: int = 20
    preference_bonus_factor: float = 0.2

    # App
    debug: bool = True

    @property
    def preference_bonus_points(self) -> float:
        """Points a single satisfied preference (location / job type) is worth."""
        return self.preference_bonus_weight * self.preference_bonus_factor

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
