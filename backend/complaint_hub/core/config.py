"""
Application configuration using Pydantic Settings.
"""

from typing import List, Literal
from pydantic import PostgresDsn, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="allow"
    )

    # Environment
    ENVIRONMENT: str = "development"
    SECRET_KEY: str
    API_V1_PREFIX: str = "/api/v1"

    # Database
    DATABASE_URL: PostgresDsn

    # Redis
    REDIS_URL: RedisDsn

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Complaint rules
    MAX_ACTIVE_COMPLAINTS: int = 2
    COMPLAINT_TITLE_MAX_LENGTH: int = 100
    COMPLAINT_DESCRIPTION_MAX_LENGTH: int = 1000
    COMPLAINT_CREATE_RATE_LIMIT: str = "10/minute"

    # Worker removal: "unassign" clears references, "block" refuses while active
    WORKER_DELETE_POLICY: Literal["unassign", "block"] = "unassign"

    # Change feed
    CHANGE_FEED_BACKEND: Literal["redis", "memory"] = "redis"
    CHANGE_FEED_CHANNEL_PREFIX: str = "complaint-hub:changes"
    # Pending events per in-process subscriber before the backlog collapses to a resync
    CHANGE_FEED_QUEUE_SIZE: int = 100

    # Observability
    LOG_LEVEL: str = "INFO"

    # Notifications
    SLACK_WEBHOOK_URL: str = ""

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    @field_validator("MAX_ACTIVE_COMPLAINTS")
    @classmethod
    def validate_quota(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_ACTIVE_COMPLAINTS must be at least 1")
        return v

    @field_validator("CHANGE_FEED_QUEUE_SIZE")
    @classmethod
    def validate_queue_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("CHANGE_FEED_QUEUE_SIZE must be at least 1")
        return v


settings = Settings()
