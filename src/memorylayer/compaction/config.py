"""
Compaction configuration.
"""

from pydantic import BaseModel, Field


class CompactionConfig(BaseModel):
    """Defaults applied when compaction options leave a value unset."""

    preserve_recent: int = Field(
        default=10,
        ge=0,
        description="Most recent chunks kept verbatim",
    )

    selective_target: float = Field(
        default=50.0,
        gt=0,
        le=100,
        description="Default target utilization (%) for the selective strategy",
    )

    summarize_target: float | None = Field(
        default=None,
        gt=0,
        le=100,
        description="Default target utilization (%) for summarize; None condenses every eligible chunk",
    )

    low_value_threshold: float = Field(
        default=0.3,
        ge=0.1,
        le=1.0,
        description="Aggressive strategy removes eligible chunks scoring below this",
    )
