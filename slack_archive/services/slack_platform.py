"""Slack Web API adapter.

All Slack calls go through this module. Raw ``SlackApiError`` codes are
translated here, once, into ``ChannelAccess`` values or ``FetchError``; the
rest of the codebase never inspects Slack error strings.
"""

from typing import Optional

import aiohttp
from pydantic import BaseModel, Field
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.http_retry.builtin_async_handlers import AsyncRateLimitErrorRetryHandler
from slack_sdk.web.async_client import AsyncWebClient

from slack_archive.models.channel import Channel, ChannelAccess
from slack_archive.models.user import SlackUser
from slack_archive.utils.errors import FetchError
from slack_archive.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

ALREADY_MEMBER_ERRORS = {"already_in_channel"}
PRIVATE_CHANNEL_ERRORS = {"method_not_supported_for_channel_type", "is_private"}
INACCESSIBLE_ERRORS = {"channel_not_found", "is_archived", "restricted_action", "team_access_not_granted"}

# API errors plus transport failures; all surface as FetchError
_TRANSPORT_ERRORS = (SlackClientError, aiohttp.ClientError, TimeoutError)


class HistoryPage(BaseModel):
    """One page of conversations.history or conversations.replies."""
    messages: list[dict] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None

    @classmethod
    def from_response(cls, response) -> "HistoryPage":
        metadata = response.get("response_metadata") or {}
        return cls(
            messages=response.get("messages") or [],
            has_more=bool(response.get("has_more", False)),
            next_cursor=metadata.get("next_cursor") or None,
        )


def _error_code(exc: Exception) -> Optional[str]:
    if isinstance(exc, SlackApiError) and exc.response is not None:
        return exc.response.get("error")
    return None


def classify_join_error(error_code: Optional[str]) -> ChannelAccess:
    """Map a conversations.join error code to a ChannelAccess value."""
    if error_code in ALREADY_MEMBER_ERRORS:
        return ChannelAccess.ALREADY_MEMBER
    if error_code in PRIVATE_CHANNEL_ERRORS:
        return ChannelAccess.PRIVATE_MANUAL
    if error_code in INACCESSIBLE_ERRORS:
        return ChannelAccess.INACCESSIBLE
    return ChannelAccess.OTHER_FAILURE


class SlackPlatform:
    """Thin async wrapper over the Slack endpoints the archiver needs."""

    def __init__(
        self,
        client: AsyncWebClient,
        page_size: int = 200,
        channel_types: str = "public_channel",
    ):
        self.client = client
        self.page_size = page_size
        self.channel_types = channel_types

    @classmethod
    def from_token(cls, token: str, **kwargs) -> "SlackPlatform":
        """Build a platform whose client honours Retry-After on HTTP 429."""
        client = AsyncWebClient(
            token=token,
            retry_handlers=[AsyncRateLimitErrorRetryHandler(max_retry_count=3)],
        )
        return cls(client, **kwargs)

    async def list_channels(self) -> list[Channel]:
        """All non-archived channels of the configured types."""
        channels: list[Channel] = []
        cursor = None
        while True:
            try:
                response = await self.client.conversations_list(
                    types=self.channel_types,
                    exclude_archived=True,
                    limit=self.page_size,
                    cursor=cursor,
                )
            except _TRANSPORT_ERRORS as e:
                raise FetchError(
                    f"conversations.list failed: {e}",
                    method="conversations.list",
                    error_code=_error_code(e),
                ) from e

            channels.extend(Channel.from_slack(c) for c in response.get("channels") or [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break

        logger.info("Listed channels", channel_count=len(channels), channel_types=self.channel_types)
        return channels

    async def join_channel(self, channel_id: str) -> ChannelAccess:
        try:
            response = await self.client.conversations_join(channel=channel_id)
        except SlackApiError as e:
            access = classify_join_error(_error_code(e))
            logger.debug("conversations.join refused", channel_id=channel_id, error_code=_error_code(e))
            return access
        except _TRANSPORT_ERRORS as e:
            logger.warning("conversations.join failed", channel_id=channel_id, error=str(e))
            return ChannelAccess.OTHER_FAILURE

        if response.get("warning") == "already_in_channel":
            return ChannelAccess.ALREADY_MEMBER
        return ChannelAccess.JOINED

    async def fetch_history(
        self,
        channel_id: str,
        oldest: str,
        latest: Optional[str] = None,
        cursor: Optional[str] = None,
    ) -> HistoryPage:
        params = {"channel": channel_id, "oldest": oldest, "limit": self.page_size}
        if latest:
            params["latest"] = latest
        if cursor:
            params["cursor"] = cursor

        try:
            response = await self.client.conversations_history(**params)
        except _TRANSPORT_ERRORS as e:
            raise FetchError(
                f"conversations.history failed for {channel_id}: {e}",
                method="conversations.history",
                error_code=_error_code(e),
            ) from e
        return HistoryPage.from_response(response)

    async def fetch_thread_replies(
        self,
        channel_id: str,
        parent_ts: str,
        cursor: Optional[str] = None,
    ) -> HistoryPage:
        params = {"channel": channel_id, "ts": parent_ts, "limit": self.page_size}
        if cursor:
            params["cursor"] = cursor

        try:
            response = await self.client.conversations_replies(**params)
        except _TRANSPORT_ERRORS as e:
            raise FetchError(
                f"conversations.replies failed for {channel_id}/{parent_ts}: {e}",
                method="conversations.replies",
                error_code=_error_code(e),
            ) from e
        return HistoryPage.from_response(response)

    async def fetch_user_profile(self, user_id: str) -> SlackUser:
        try:
            response = await self.client.users_info(user=user_id)
        except _TRANSPORT_ERRORS as e:
            raise FetchError(
                f"users.info failed for {user_id}: {e}",
                method="users.info",
                error_code=_error_code(e),
            ) from e
        return SlackUser.from_slack(response["user"])
