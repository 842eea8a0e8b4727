from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EXPENSES_", env_file=".env", extra="ignore")

    # SQLite file next to the working directory; use sqlite:// for an in-memory store.
    database_url: str = "sqlite:///./expense_tracker.db"

    # Durable key-value file holding the signed-in user id between runs.
    session_file: str = "~/.expense_tracker/session.json"

    # Seeded once for a user that has no categories at all.
    default_categories: list[str] = Field(
        default_factory=lambda: ["Food", "Transport", "Shopping", "Bill", "Health", "Other"]
    )

    password_min_length: int = Field(default=4, ge=1)

    log_level: str = "INFO"
    log_json: bool = False

    cors_origins: str = "http://localhost:8081,http://127.0.0.1:8081,http://localhost:19006"


def get_settings(**overrides) -> Settings:
    return Settings(**overrides)


settings = Settings()
