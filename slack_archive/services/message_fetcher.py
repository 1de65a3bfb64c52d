"""Paginated retrieval of channel history and thread replies."""

import asyncio
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, Optional

from slack_archive.services.slack_platform import HistoryPage, SlackPlatform
from slack_archive.utils.logging import get_structured_logger
from slack_archive.utils.slack_time import datetime_to_ts

logger = get_structured_logger(__name__)

PageRequest = Callable[[Optional[str]], Awaitable[HistoryPage]]


class MessageFetcher:
    """
    Lazily walks Slack's cursor pagination, one page at a time.
    
    Each call returns a fresh single-pass async iterator. A FetchError from
    any page propagates to the consumer and ends the iteration; pages are
    never retried here. Consecutive requests made through one fetcher, across
    windows and threads, are spaced by `page_delay_seconds`.
    """

    def __init__(
        self,
        platform: SlackPlatform,
        page_delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.platform = platform
        self.page_delay_seconds = page_delay_seconds
        self._sleep = sleep
        self._requested = False

    async def fetch_range(
        self,
        channel_id: str,
        oldest: datetime,
        latest: Optional[datetime] = None,
    ) -> AsyncIterator[dict]:
        """Messages of `channel_id` posted between `oldest` and `latest`."""
        oldest_ts = datetime_to_ts(oldest)
        latest_ts = datetime_to_ts(latest) if latest else None

        async def request(cursor: Optional[str]) -> HistoryPage:
            return await self.platform.fetch_history(channel_id, oldest_ts, latest_ts, cursor)

        async for message in self._paginate(request, channel_id=channel_id, endpoint="history"):
            yield message

    async def fetch_thread_replies(self, channel_id: str, parent_ts: str) -> AsyncIterator[dict]:
        """Replies to `parent_ts`; the parent itself is never yielded."""

        async def request(cursor: Optional[str]) -> HistoryPage:
            return await self.platform.fetch_thread_replies(channel_id, parent_ts, cursor)

        async for message in self._paginate(request, channel_id=channel_id, endpoint="replies"):
            if message.get("ts") == parent_ts:
                continue
            yield message

    async def _pace(self) -> None:
        # Every request after the first waits, across paginations too
        if self._requested:
            await self._sleep(self.page_delay_seconds)
        self._requested = True

    async def _paginate(self, request: PageRequest, **context) -> AsyncIterator[dict]:
        cursor: Optional[str] = None
        pages = 0
        while True:
            await self._pace()
            page = await request(cursor)
            pages += 1
            logger.debug("Fetched page", page=pages, message_count=len(page.messages), **context)

            for message in page.messages:
                yield message

            if not page.has_more or not page.next_cursor:
                break
            cursor = page.next_cursor
