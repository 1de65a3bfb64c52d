"""Apply a sync plan to one channel."""

from slack_archive.models.channel import Channel, ChannelAccess, ChannelSyncResult, ChannelSyncStatus
from slack_archive.models.message import ArchivedMessage
from slack_archive.models.sync_plan import SyncPlan, SyncWindow
from slack_archive.services.message_fetcher import MessageFetcher
from slack_archive.services.message_store import MessageStore
from slack_archive.services.slack_platform import SlackPlatform
from slack_archive.services.user_resolver import UserResolver
from slack_archive.services.window_planner import SyncWindowPlanner
from slack_archive.utils.errors import FetchError, StoreError
from slack_archive.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)


class ChannelSyncer:
    """Join, fetch, expand threads and persist for a single channel."""

    def __init__(
        self,
        platform: SlackPlatform,
        fetcher: MessageFetcher,
        store: MessageStore,
        users: UserResolver,
        planner: SyncWindowPlanner,
    ):
        self.platform = platform
        self.fetcher = fetcher
        self.store = store
        self.users = users
        self.planner = planner

    async def sync_channel(self, channel: Channel, plan: SyncPlan) -> ChannelSyncResult:
        access = await self.platform.join_channel(channel.id)
        result = ChannelSyncResult(
            channel_id=channel.id,
            channel_name=channel.name,
            access=access,
            status=ChannelSyncStatus.COMPLETED,
        )

        if not access.can_fetch:
            logger.warning(
                "Skipping channel",
                channel_id=channel.id,
                channel_name=channel.name,
                access=access.value,
            )
            result.status = ChannelSyncStatus.SKIPPED
            return result

        if access == ChannelAccess.PRIVATE_MANUAL:
            logger.info("Private channel; relying on manual invite", channel_name=channel.name)

        with log_timing("channel_sync", logger=logger, channel_id=channel.id, channel_name=channel.name):
            windows = await self.planner.channel_windows(plan, channel.id)
            for window in windows:
                await self._sync_window(channel, window, result)

        await self._log_archive_span(channel)
        logger.info(
            "Channel synced",
            channel_id=channel.id,
            channel_name=channel.name,
            access=access.value,
            messages_processed=result.messages_processed,
            replies_processed=result.replies_processed,
            windows_failed=result.windows_failed,
        )
        return result

    async def _sync_window(self, channel: Channel, window: SyncWindow, result: ChannelSyncResult) -> None:
        messages = 0
        replies = 0
        try:
            async for payload in self.fetcher.fetch_range(channel.id, window.start, window.end):
                if not payload.get("ts"):
                    continue
                if await self._persist(channel, payload) is not None:
                    messages += 1
                # Replies are archived even when the parent write failed
                if int(payload.get("reply_count") or 0) > 0:
                    replies += await self._expand_thread(channel, payload["ts"])
        except FetchError as e:
            # Whatever was stored before the failure stays stored
            result.windows_failed += 1
            result.error = str(e)
            logger.warning(
                "Window aborted",
                channel_id=channel.id,
                window=window.kind.value,
                error=str(e),
                error_code=e.error_code,
                messages_before_failure=messages,
            )
        finally:
            result.messages_processed += messages
            result.replies_processed += replies

        logger.debug(
            "Window done",
            channel_id=channel.id,
            window=window.kind.value,
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat() if window.end else None,
            messages=messages,
            replies=replies,
        )

    async def _expand_thread(self, channel: Channel, parent_ts: str) -> int:
        replies = 0
        try:
            async for payload in self.fetcher.fetch_thread_replies(channel.id, parent_ts):
                if await self._persist(channel, payload) is not None:
                    replies += 1
        except FetchError as e:
            logger.warning(
                "Thread expansion aborted",
                channel_id=channel.id,
                thread_ts=parent_ts,
                error=str(e),
                error_code=e.error_code,
            )
        return replies

    async def _persist(self, channel: Channel, payload: dict):
        """Store one message; returns it, or None when it was not archived."""
        if not payload.get("ts"):
            return None

        username = await self.users.resolve_username(payload.get("user"))
        message = ArchivedMessage.from_slack(payload, channel.id, channel.name, username)
        try:
            await self.store.upsert_message(message)
        except StoreError as e:
            logger.error("Failed to store message", channel_id=channel.id, message_id=message.id, error=str(e))
            return None
        return message

    async def _log_archive_span(self, channel: Channel) -> None:
        try:
            oldest = await self.store.oldest_message_timestamp(channel.id)
            latest = await self.store.latest_message_timestamp(channel.id)
        except StoreError as e:
            logger.debug("Archive span unavailable", channel_id=channel.id, error=str(e))
            return
        logger.info(
            "Archive span",
            channel_id=channel.id,
            oldest_message=oldest.isoformat() if oldest else None,
            latest_message=latest.isoformat() if latest else None,
        )
