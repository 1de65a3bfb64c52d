"""In-memory stand-ins for Slack and Supabase used by service and pipeline tests."""

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from slack_archive.models.channel import Channel, ChannelAccess
from slack_archive.models.message import ArchivedMessage
from slack_archive.models.sync_run import RunTotals, SyncMode, SyncRun, SyncRunStatus
from slack_archive.models.user import SlackUser
from slack_archive.services.slack_platform import HistoryPage
from slack_archive.utils.errors import FetchError, StoreError, SyncAbortedError


class FakeSlackPlatform:
    """
    Serves history, replies and users from dicts.

    Pagination uses offset cursors ("2", "4", ...) and `page_size` items per
    page. History bounds are exclusive on both ends, like Slack's defaults.
    """

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.channels: list[Channel] = []
        self.history: dict[str, list[dict]] = defaultdict(list)
        self.replies: dict[tuple[str, str], list[dict]] = {}
        self.users: dict[str, dict] = {}
        self.join_results: dict[str, ChannelAccess] = {}
        self.fail_history_at: dict[str, str] = {}
        self.fail_replies_for: set[str] = set()
        self.list_error: Optional[Exception] = None
        self.calls: dict[str, list] = defaultdict(list)

    def add_channel(self, channel_id: str, name: str, messages: Optional[list[dict]] = None) -> Channel:
        channel = Channel(id=channel_id, name=name)
        self.channels.append(channel)
        self.history[channel_id].extend(messages or [])
        return channel

    def add_thread(self, channel_id: str, parent: dict, replies: list[dict]) -> None:
        for reply in replies:
            reply.setdefault("thread_ts", parent["ts"])
        self.replies[(channel_id, parent["ts"])] = [parent, *replies]

    def _page(self, items: list[dict], cursor: Optional[str]) -> HistoryPage:
        offset = int(cursor) if cursor else 0
        chunk = items[offset:offset + self.page_size]
        more = offset + self.page_size < len(items)
        return HistoryPage(
            messages=chunk,
            has_more=more,
            next_cursor=str(offset + self.page_size) if more else None,
        )

    async def list_channels(self) -> list[Channel]:
        self.calls["list_channels"].append(())
        if self.list_error is not None:
            raise self.list_error
        return list(self.channels)

    async def join_channel(self, channel_id: str) -> ChannelAccess:
        self.calls["join_channel"].append(channel_id)
        return self.join_results.get(channel_id, ChannelAccess.JOINED)

    async def fetch_history(self, channel_id, oldest, latest=None, cursor=None) -> HistoryPage:
        self.calls["fetch_history"].append((channel_id, oldest, latest, cursor))
        if cursor is not None and self.fail_history_at.get(channel_id) == cursor:
            raise FetchError("ratelimited", method="conversations.history", error_code="ratelimited")
        items = [
            m for m in self.history[channel_id]
            if float(m["ts"]) > float(oldest) and (latest is None or float(m["ts"]) < float(latest))
        ]
        items.sort(key=lambda m: float(m["ts"]), reverse=True)
        return self._page(items, cursor)

    async def fetch_thread_replies(self, channel_id, parent_ts, cursor=None) -> HistoryPage:
        self.calls["fetch_thread_replies"].append((channel_id, parent_ts, cursor))
        if parent_ts in self.fail_replies_for:
            raise FetchError("thread_not_found", method="conversations.replies", error_code="thread_not_found")
        return self._page(self.replies.get((channel_id, parent_ts), []), cursor)

    async def fetch_user_profile(self, user_id: str) -> SlackUser:
        self.calls["fetch_user_profile"].append(user_id)
        if user_id not in self.users:
            raise FetchError("user_not_found", method="users.info", error_code="user_not_found")
        return SlackUser.from_slack(self.users[user_id])


class InMemoryStore:
    """Message/user store keyed like the Supabase tables."""

    def __init__(self):
        self.messages: dict[str, ArchivedMessage] = {}
        self.users: dict[str, SlackUser] = {}
        self.fail_message_ids: set[str] = set()
        self.user_writes: list[str] = []

    async def upsert_message(self, message: ArchivedMessage) -> None:
        if message.id in self.fail_message_ids:
            raise StoreError(f"Failed to upsert message {message.id}")
        self.messages[message.id] = message.model_copy(deep=True)

    def channel_messages(self, channel_id: str) -> list[ArchivedMessage]:
        return [m for m in self.messages.values() if m.channel_id == channel_id]

    async def latest_message_timestamp(self, channel_id: str) -> Optional[datetime]:
        stamps = [m.timestamp for m in self.channel_messages(channel_id) if not m.is_thread_reply]
        return max(stamps) if stamps else None

    async def oldest_message_timestamp(self, channel_id: str) -> Optional[datetime]:
        stamps = [m.timestamp for m in self.channel_messages(channel_id)]
        return min(stamps) if stamps else None

    async def get_user(self, user_id: str) -> Optional[SlackUser]:
        return self.users.get(user_id)

    async def upsert_user(self, user: SlackUser) -> bool:
        existing = self.users.get(user.id)
        if existing is not None and existing.updated >= user.updated:
            return False
        self.users[user.id] = user
        self.user_writes.append(user.id)
        return True


class InMemoryRunLedger:
    """sync_runs table with the same transition rules as RunLedger."""

    def __init__(self):
        self.runs: dict[str, SyncRun] = {}
        self.fail_start = False
        self.fail_completion = False

    def seed_completed(self, started_at: datetime, completed_at: Optional[datetime] = None) -> SyncRun:
        run = SyncRun(
            id=str(uuid.uuid4()),
            started_at=started_at,
            completed_at=completed_at or started_at,
            status=SyncRunStatus.COMPLETED,
            sync_mode=SyncMode.INCREMENTAL,
        )
        self.runs[run.id] = run
        return run

    async def record_start(self, started_at: datetime) -> SyncRun:
        if self.fail_start:
            raise SyncAbortedError("Cannot record sync run start: connection refused")
        run = SyncRun(id=str(uuid.uuid4()), started_at=started_at)
        self.runs[run.id] = run
        return run

    async def record_mode(self, run_id: str, sync_mode: SyncMode) -> None:
        self.runs[run_id].sync_mode = sync_mode

    async def record_completion(self, run_id: str, totals: RunTotals) -> SyncRun:
        run = self.runs[run_id]
        if self.fail_completion or run.status != SyncRunStatus.RUNNING:
            raise StoreError(f"Failed to record completion of run {run_id}")
        run.status = SyncRunStatus.COMPLETED
        run.completed_at = datetime.now(timezone.utc)
        run.total_messages = totals.messages
        run.total_replies = totals.replies
        run.channels_processed = totals.channels_processed
        return run

    async def record_failure(self, run_id: str, error: str) -> None:
        run = self.runs[run_id]
        if run.status == SyncRunStatus.RUNNING:
            run.status = SyncRunStatus.FAILED
            run.completed_at = datetime.now(timezone.utc)
            run.error_message = error

    async def last_successful_run(self) -> Optional[SyncRun]:
        completed = [r for r in self.runs.values() if r.status == SyncRunStatus.COMPLETED]
        if not completed:
            return None
        return max(completed, key=lambda r: r.completed_at)
