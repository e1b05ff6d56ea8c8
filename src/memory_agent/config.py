"""
Configuration for the memory agent.

All reference constants (buffer sizes, windows, ranking weights) live here
so they can be overridden from the environment with the ``MEMORY_AGENT_``
prefix, e.g. ``MEMORY_AGENT_SYNC_THRESHOLD=25``.
"""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MemoryAgentSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MEMORY_AGENT_", extra="ignore")

    # Capture
    max_content_length: int = Field(default=2000, gt=0)

    # Local buffer
    sync_threshold: int = Field(
        default=50, gt=0, description="Unsynced records that trigger a sync (M)"
    )
    retain_after_sync: int = Field(
        default=20, ge=0, description="Records kept locally after a sync (K)"
    )
    max_local_records: int = Field(default=500, gt=0)
    max_events: int = Field(default=1000, gt=0)

    # Sync
    sync_interval_seconds: float = Field(default=300.0, gt=0)
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    http_retries: int = Field(default=2, ge=0)
    http_backoff_base_seconds: float = Field(default=0.25, ge=0)
    http_backoff_max_seconds: float = Field(default=2.0, ge=0)
    mark_batch_on_success: bool = Field(
        default=False,
        description="Mark every submitted record synced on any successful response",
    )
    remote_base_url: Optional[str] = None

    # Retrieval
    dedup_lookback_minutes: float = Field(default=60.0, ge=0)
    max_semantic_distance: float = Field(default=0.7, ge=0.0, le=2.0)
    semantic_weight: float = Field(default=0.6, ge=0.0)
    keyword_weight: float = Field(default=0.3, ge=0.0)
    recency_weight: float = Field(default=0.1, ge=0.0)
    recency_decay_days: float = Field(default=30.0, gt=0)
    default_category: str = "browsing"
    default_source: str = "chrome_extension"

    # Session ledger
    session_category: str = "authentication"
    session_window_hours: float = Field(default=24.0, gt=0)
    session_retention_days: float = Field(default=7.0, gt=0)

    # Local storage keys
    records_key: str = "memory_agent_vectors"
    visited_key: str = "memory_agent_visited"
    events_key: str = "memory_agent_events"
    identity_key: str = "memory_agent_user"

    @model_validator(mode="after")
    def _check_buffer_bounds(self) -> "MemoryAgentSettings":
        if self.retain_after_sync > self.max_local_records:
            raise ValueError("retain_after_sync cannot exceed max_local_records")
        return self
