"""Run state owned by a sync orchestrator."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from contentsync.core.shared_models import ErrorCategory, SyncRunStatus


class LastError(BaseModel):
    """The most recent run failure."""

    message: str
    category: ErrorCategory
    timestamp: datetime
    type: str = Field(..., description="Exception class name.")


class SyncStats(BaseModel):
    """Counters accumulated across runs."""

    total_runs: int = 0
    successful_runs: int = 0
    fallback_runs: int = 0
    fallback_exhausted_runs: int = 0
    last_error: Optional[LastError] = None


class RunCounts(BaseModel):
    """Record counts of the most recent run, per phase."""

    fetched: int = 0
    embedded: int = 0
    written: int = 0
    skipped: int = 0
    inserted: int = 0
    updated: int = 0


class SyncRunState(BaseModel):
    """Current and last-run state of one orchestrator.

    Only the owning orchestrator mutates this object; callers receive deep
    copies through ``ContentSyncOrchestrator.get_status``.
    """

    is_running: bool = False
    last_run_status: SyncRunStatus = SyncRunStatus.NONE
    last_sync_time: Optional[datetime] = None
    stats: SyncStats = Field(default_factory=SyncStats)
    last_fallback_strategy: Optional[str] = None
    last_run_started_at: Optional[datetime] = None
    last_run_duration: Optional[float] = Field(None, description="Seconds.")
    last_run_counts: RunCounts = Field(default_factory=RunCounts)
    next_scheduled_run: Optional[datetime] = None

    def snapshot(self) -> "SyncRunState":
        """Deep copy that shares no mutable structure with this state."""
        return self.model_copy(deep=True)


class IntegrityReport(BaseModel):
    """Result of a store integrity check."""

    missing_embeddings: int
    checked_at: datetime

    @property
    def is_healthy(self) -> bool:
        """Whether every stored row has an embedding."""
        return self.missing_embeddings == 0
