"""Sync run ledger backed by the `sync_runs` table."""

from datetime import datetime, timezone
from typing import Optional

from slack_archive.models.sync_run import RunTotals, SyncMode, SyncRun, SyncRunStatus
from slack_archive.services.supabase_client import SupabaseClient
from slack_archive.utils.errors import StoreError, SyncAbortedError
from slack_archive.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

RUNS_TABLE = "sync_runs"


class RunLedger:
    """Records run lifecycle: running -> completed | failed, each row finalized once."""

    async def record_start(self, started_at: datetime) -> SyncRun:
        """
        Insert a `running` row.
        
        Raises SyncAbortedError when the row cannot be written, since an
        untracked run could never anchor the next one.
        """
        row = {
            "started_at": started_at.isoformat(),
            "status": SyncRunStatus.RUNNING.value,
        }
        try:
            async with SupabaseClient() as client:
                result = client.table(RUNS_TABLE).insert(row).execute()
        except Exception as e:
            logger.error("Failed to record sync run start", error=str(e))
            raise SyncAbortedError(f"Cannot record sync run start: {e}") from e
        
        if not result.data:
            raise SyncAbortedError("Cannot record sync run start: no row returned")
        
        run = SyncRun.from_row(result.data[0])
        logger.info("Sync run started", run_id=run.id, started_at=run.started_at.isoformat())
        return run

    async def record_mode(self, run_id: str, sync_mode: SyncMode) -> None:
        """Annotate a running row with the chosen mode (informational)."""
        try:
            async with SupabaseClient() as client:
                client.table(RUNS_TABLE).update({"sync_mode": sync_mode.value}).eq(
                    "id", run_id
                ).eq("status", SyncRunStatus.RUNNING.value).execute()
        except Exception as e:
            logger.warning("Failed to record sync mode (non-fatal)", run_id=run_id, error=str(e))

    async def record_completion(self, run_id: str, totals: RunTotals) -> SyncRun:
        """Finalize a running row as completed with totals."""
        updates = {
            "status": SyncRunStatus.COMPLETED.value,
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "total_messages": totals.messages,
            "total_replies": totals.replies,
            "channels_processed": totals.channels_processed,
        }
        try:
            async with SupabaseClient() as client:
                result = (
                    client.table(RUNS_TABLE)
                    .update(updates)
                    .eq("id", run_id)
                    .eq("status", SyncRunStatus.RUNNING.value)
                    .execute()
                )
        except Exception as e:
            raise StoreError(f"Failed to record completion of run {run_id}: {e}") from e
        
        if not result.data:
            raise StoreError(f"Run {run_id} is not running; refusing to finalize it again")
        
        run = SyncRun.from_row(result.data[0])
        logger.info(
            "Sync run completed",
            run_id=run_id,
            total_messages=totals.messages,
            total_replies=totals.replies,
            channels_processed=totals.channels_processed,
        )
        return run

    async def record_failure(self, run_id: str, error: str) -> None:
        """Best-effort running -> failed transition; never raises."""
        updates = {
            "status": SyncRunStatus.FAILED.value,
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "error_message": error[:1000],
        }
        try:
            async with SupabaseClient() as client:
                client.table(RUNS_TABLE).update(updates).eq("id", run_id).eq(
                    "status", SyncRunStatus.RUNNING.value
                ).execute()
            logger.warning("Sync run marked failed", run_id=run_id, error=error)
        except Exception as e:
            logger.error("Failed to mark run failed; row left running", run_id=run_id, error=str(e))

    async def last_successful_run(self) -> Optional[SyncRun]:
        """Most recently completed run, or None (also on read errors)."""
        try:
            async with SupabaseClient() as client:
                result = (
                    client.table(RUNS_TABLE)
                    .select("*")
                    .eq("status", SyncRunStatus.COMPLETED.value)
                    .order("completed_at", desc=True)
                    .limit(1)
                    .execute()
                )
        except Exception as e:
            logger.warning(
                "Could not read last successful run; falling back to initial sync",
                error=str(e),
            )
            return None
        
        if not result.data:
            return None
        return SyncRun.from_row(result.data[0])
