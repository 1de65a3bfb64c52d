"""Time windows planned for a sync run."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from slack_archive.models.sync_run import SyncMode


class WindowKind(str, Enum):
    INITIAL = "initial"
    RECHECK = "recheck"
    NEW = "new"


class SyncWindow(BaseModel):
    """Half-open range [start, end) of message timestamps."""
    kind: WindowKind
    start: datetime
    end: Optional[datetime] = None


class SyncPlan(BaseModel):
    """Run-wide plan; the per-channel new window also depends on stored data."""
    mode: SyncMode
    now: datetime = Field(..., description="Upper bound for this run's windows")
    initial: Optional[SyncWindow] = None
    recheck: Optional[SyncWindow] = None
    anchor: Optional[datetime] = Field(None, description="Last completed run's started_at")

    def windows_for_channel(self, latest_stored: Optional[datetime] = None) -> list[SyncWindow]:
        """Windows in execution order for one channel."""
        if self.mode == SyncMode.INITIAL:
            return [self.initial]
        
        windows = []
        if self.recheck is not None:
            windows.append(self.recheck)
        
        new_start = self.anchor
        if latest_stored is not None and latest_stored > new_start:
            new_start = latest_stored
        windows.append(SyncWindow(kind=WindowKind.NEW, start=new_start, end=self.now))
        return windows
