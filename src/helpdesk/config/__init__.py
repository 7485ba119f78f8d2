"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA policy YAML file"
    )
    sla_reconcile_interval_seconds: int = Field(
        default=300,
        description="Seconds between SLA status reconciliation runs (0 disables)",
        ge=0
    )

    # ========== Cache ==========
    ticket_cache_ttl_seconds: int = Field(
        default=1800,
        description="TTL for cached ticket detail and list reads",
        ge=0
    )

    # ========== Email Notifications ==========
    email_api_url: Optional[str] = Field(
        default=None,
        description="HTTP email provider endpoint (unset logs emails instead of sending)"
    )
    email_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token for the email provider"
    )
    email_from: str = Field(
        default="support@helpdesk.local",
        description="Sender address for ticket notifications"
    )
    email_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for email provider calls",
        ge=0.1,
        le=30
    )
    notification_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on time a request waits for a notification",
        ge=0.1,
        le=60
    )
    public_site_url: str = Field(
        default="https://yourdomain.com",
        description="Base URL used for links in notification emails"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str, Enum):
    """Ticket priority levels."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketCategory(str, Enum):
    """Ticket categories."""
    BILLING = "billing"
    TECHNICAL = "technical"
    ACCOUNT = "account"
    FEATURE_REQUEST = "feature_request"
    HOW_TO = "how_to"
    GENERAL = "general"


class SLAState(str, Enum):
    """SLA status states."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BREACHED = "breached"


# ========== Lists for validation ==========

VALID_PRIORITIES = [Priority.URGENT, Priority.HIGH, Priority.MEDIUM, Priority.LOW]
VALID_STATUSES = [
    TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.WAITING,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
VALID_SLA_STATES = [SLAState.ON_TRACK, SLAState.AT_RISK, SLAState.BREACHED]

# Field limits shared by entities and DTOs
SUBJECT_MAX_LENGTH = 500
DESCRIPTION_MAX_LENGTH = 10000
COMMENT_MAX_LENGTH = 10000
NAME_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 255
TAG_MAX_LENGTH = 50
MAX_TAGS = 10
