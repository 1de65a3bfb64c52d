"""Top-level driver for one archive run."""

from datetime import datetime, timezone
from typing import Callable, Optional

from slack_archive.models.channel import ChannelSyncResult, ChannelSyncStatus
from slack_archive.models.sync_run import RunTotals, SyncRun
from slack_archive.services.channel_syncer import ChannelSyncer
from slack_archive.services.message_fetcher import MessageFetcher
from slack_archive.services.message_store import MessageStore
from slack_archive.services.run_ledger import RunLedger
from slack_archive.services.slack_platform import SlackPlatform
from slack_archive.services.supabase_client import close_supabase_client, get_supabase_client
from slack_archive.services.user_resolver import UserResolver
from slack_archive.services.window_planner import SyncWindowPlanner
from slack_archive.utils.config import SyncConfig
from slack_archive.utils.errors import SyncAbortedError
from slack_archive.utils.logging import correlation_context, get_structured_logger

logger = get_structured_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """
    Run one sync: ledger start, plan once, sync channels one by one, finalize.

    Per-channel problems (access refused, a failed window, a failed upsert)
    are absorbed by the ChannelSyncer. Anything that escapes to this level
    aborts the run with SyncAbortedError and marks the ledger row failed.
    """

    def __init__(
        self,
        platform: SlackPlatform,
        store: MessageStore,
        ledger: RunLedger,
        planner: SyncWindowPlanner,
        fetcher: MessageFetcher,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.platform = platform
        self.store = store
        self.ledger = ledger
        self.planner = planner
        self.fetcher = fetcher
        self.clock = clock

    async def run(self) -> SyncRun:
        started_at = self.clock()
        try:
            run = await self.ledger.record_start(started_at)
        except SyncAbortedError:
            raise
        except Exception as e:
            raise SyncAbortedError(f"Cannot record sync run start: {e}") from e

        with correlation_context(run.id):
            try:
                return await self._execute(run)
            except Exception as e:
                logger.exception("Sync run aborted", run_id=run.id, error=str(e))
                await self.ledger.record_failure(run.id, str(e))
                if isinstance(e, SyncAbortedError):
                    raise
                raise SyncAbortedError(f"Sync run {run.id} aborted: {e}") from e

    async def _execute(self, run: SyncRun) -> SyncRun:
        last_run = await self.ledger.last_successful_run()
        plan = self.planner.plan(last_run, now=run.started_at)
        await self.ledger.record_mode(run.id, plan.mode)

        channels = await self.platform.list_channels()
        logger.info("Starting channel sync", sync_mode=plan.mode.value, channel_count=len(channels))

        # Fresh resolver per run: the user cache never outlives the run
        syncer = ChannelSyncer(
            platform=self.platform,
            fetcher=self.fetcher,
            store=self.store,
            users=UserResolver(self.platform, self.store),
            planner=self.planner,
        )

        totals = RunTotals()
        for channel in channels:
            result = await syncer.sync_channel(channel, plan)
            self._accumulate(totals, result)

        completed = await self.ledger.record_completion(run.id, totals)
        logger.info(
            "Sync complete",
            sync_mode=plan.mode.value,
            total_messages=totals.messages,
            total_replies=totals.replies,
            channels_processed=totals.channels_processed,
            channels_skipped=totals.channels_skipped,
        )
        return completed

    @staticmethod
    def _accumulate(totals: RunTotals, result: ChannelSyncResult) -> None:
        totals.messages += result.messages_processed
        totals.replies += result.replies_processed
        if result.status == ChannelSyncStatus.SKIPPED:
            totals.channels_skipped += 1
        else:
            totals.channels_processed += 1


def build_orchestrator(config: SyncConfig) -> SyncOrchestrator:
    """Wire the real Slack and Supabase clients from config."""
    get_supabase_client(config.supabase_url, config.supabase_key)

    platform = SlackPlatform.from_token(
        config.slack_bot_token,
        page_size=config.page_size,
        channel_types=config.channel_types,
    )
    store = MessageStore()
    return SyncOrchestrator(
        platform=platform,
        store=store,
        ledger=RunLedger(),
        planner=SyncWindowPlanner(
            store,
            recheck_buffer_hours=config.recheck_buffer_hours,
            full_sync_days=config.full_sync_days,
        ),
        fetcher=MessageFetcher(platform, page_delay_seconds=config.page_delay_seconds),
    )


async def run_sync(config: Optional[SyncConfig] = None) -> SyncRun:
    """Load config (from env when not given) and run one sync."""
    if config is None:
        config = SyncConfig.from_env()
    orchestrator = build_orchestrator(config)
    try:
        return await orchestrator.run()
    finally:
        await close_supabase_client()
