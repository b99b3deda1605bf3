"""
Health monitoring and critical-context configuration.
"""

from pydantic import BaseModel, Field


class HealthConfig(BaseModel):
    """Session-wide health settings."""

    token_limit: int = Field(
        default=100000,
        gt=0,
        description="Session-wide token ceiling (distinct from the per-query max_tokens)",
    )

    history_path: str | None = Field(
        default=None,
        description="SQLite file for health history; in-memory history when unset",
    )

    history_limit: int = Field(
        default=20,
        ge=1,
        description="Default number of snapshots returned by get_health_history",
    )

    history_capacity: int = Field(
        default=1000,
        ge=1,
        description="Snapshots retained by the in-memory history store",
    )


class CriticalConfig(BaseModel):
    """Critical-context detection settings."""

    auto_detect: bool = Field(
        default=True,
        description="Treat content matching instruction/decision/requirement phrases as critical",
    )
