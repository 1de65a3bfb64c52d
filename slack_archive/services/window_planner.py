"""Plan the time windows a sync run scans."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from slack_archive.models.sync_plan import SyncPlan, SyncWindow, WindowKind
from slack_archive.models.sync_run import SyncMode, SyncRun
from slack_archive.services.message_store import MessageStore
from slack_archive.utils.errors import StoreError
from slack_archive.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class SyncWindowPlanner:
    """
    Choose between an initial and an incremental sync.
    
    Incremental windows are anchored on the last completed run's *start*:
    anything that happened while that run was executing falls inside this
    run's windows.
    """

    def __init__(self, store: MessageStore, recheck_buffer_hours: float = 24, full_sync_days: int = 90):
        self.store = store
        self.recheck_buffer = timedelta(hours=recheck_buffer_hours)
        self.full_sync_horizon = timedelta(days=full_sync_days)

    def plan(self, last_run: Optional[SyncRun], now: Optional[datetime] = None) -> SyncPlan:
        """Build the run-wide plan. `now` should be the current run's start."""
        if now is None:
            now = datetime.now(timezone.utc)

        if last_run is None:
            window = SyncWindow(kind=WindowKind.INITIAL, start=now - self.full_sync_horizon, end=now)
            logger.info(
                "Planned initial sync",
                window_start=window.start.isoformat(),
                window_end=now.isoformat(),
            )
            return SyncPlan(mode=SyncMode.INITIAL, now=now, initial=window)

        anchor = last_run.started_at
        recheck = None
        recheck_start = anchor - self.recheck_buffer
        # A zero buffer would give an empty window
        if recheck_start < anchor:
            recheck = SyncWindow(kind=WindowKind.RECHECK, start=recheck_start, end=anchor)

        logger.info(
            "Planned incremental sync",
            last_run_id=last_run.id,
            anchor=anchor.isoformat(),
            recheck_start=recheck.start.isoformat() if recheck else None,
            window_end=now.isoformat(),
        )
        return SyncPlan(mode=SyncMode.INCREMENTAL, now=now, recheck=recheck, anchor=anchor)

    async def channel_windows(self, plan: SyncPlan, channel_id: str) -> list[SyncWindow]:
        """Windows for one channel, in execution order."""
        if plan.mode == SyncMode.INITIAL:
            return plan.windows_for_channel()

        try:
            latest_stored = await self.store.latest_message_timestamp(channel_id)
        except StoreError as e:
            logger.warning(
                "Could not read latest stored message; new window starts at run anchor",
                channel_id=channel_id,
                error=str(e),
            )
            latest_stored = None
        return plan.windows_for_channel(latest_stored)
