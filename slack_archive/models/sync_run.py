"""Sync run ledger models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from slack_archive.utils.slack_time import parse_db_timestamp


class SyncRunStatus(str, Enum):
    """Run lifecycle states; completed and failed are terminal."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncMode(str, Enum):
    INITIAL = "initial"
    INCREMENTAL = "incremental"


class RunTotals(BaseModel):
    """Aggregate counts for a run."""
    messages: int = Field(default=0, ge=0)
    replies: int = Field(default=0, ge=0)
    channels_processed: int = Field(default=0, ge=0)
    channels_skipped: int = Field(default=0, ge=0)


class SyncRun(BaseModel):
    """A row of the `sync_runs` table."""
    id: str = Field(..., description="Run ID")
    started_at: datetime = Field(..., description="Anchor for the next run's windows")
    completed_at: Optional[datetime] = Field(None, description="Set when the run is finalized")
    status: SyncRunStatus = Field(default=SyncRunStatus.RUNNING)
    sync_mode: Optional[SyncMode] = None
    total_messages: int = 0
    total_replies: int = 0
    channels_processed: int = 0
    error_message: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "SyncRun":
        return cls(
            id=str(row["id"]),
            started_at=parse_db_timestamp(row["started_at"]),
            completed_at=parse_db_timestamp(row.get("completed_at")),
            status=row.get("status") or SyncRunStatus.RUNNING,
            sync_mode=row.get("sync_mode"),
            total_messages=row.get("total_messages") or 0,
            total_replies=row.get("total_replies") or 0,
            channels_processed=row.get("channels_processed") or 0,
            error_message=row.get("error_message"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (SyncRunStatus.COMPLETED, SyncRunStatus.FAILED)
