"""Run-scoped Slack user resolution with conditional persistence."""

from typing import Optional
from pydantic import BaseModel

from slack_archive.models.user import SlackUser
from slack_archive.services.message_store import MessageStore
from slack_archive.services.slack_platform import SlackPlatform
from slack_archive.utils.errors import FetchError, StoreError
from slack_archive.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class CachedUser(BaseModel):
    """Cache entry: profile is None when the users.info lookup failed."""
    profile: Optional[SlackUser] = None
    db_synced: bool = False


class UserResolver:
    """
    Resolve Slack user IDs to profiles for one run.
    
    Create a new instance per run. The cache guarantees at most one users.info
    call and at most one store write attempt per user per run.
    """

    def __init__(self, platform: SlackPlatform, store: MessageStore):
        self.platform = platform
        self.store = store
        self.cache: dict[str, CachedUser] = {}

    async def get_user(self, user_id: str) -> Optional[SlackUser]:
        """Cached profile, fetching it from Slack on first use."""
        entry = self.cache.get(user_id)
        if entry is not None:
            return entry.profile

        try:
            profile = await self.platform.fetch_user_profile(user_id)
        except FetchError as e:
            logger.warning(
                "Failed to fetch Slack user; not retrying this run",
                slack_user_id=mask_user_id(user_id),
                error=str(e),
            )
            profile = None

        self.cache[user_id] = CachedUser(profile=profile)
        return profile

    async def sync_user(self, user: SlackUser) -> None:
        """Persist a profile unless the stored copy is as new or newer."""
        entry = self.cache.setdefault(user.id, CachedUser(profile=user))
        if entry.db_synced:
            return

        try:
            written = await self.store.upsert_user(user)
            logger.debug(
                "User sync checked",
                slack_user_id=mask_user_id(user.id),
                written=written,
                updated=user.updated,
            )
        except StoreError as e:
            logger.warning("Failed to sync user", slack_user_id=mask_user_id(user.id), error=str(e))

        # Marked even on failure or no-op so each user is checked once per run
        entry.db_synced = True

    async def resolve_username(self, user_id: Optional[str]) -> Optional[str]:
        """Handle for a message's username snapshot; also syncs the user row."""
        if not user_id:
            return None
        profile = await self.get_user(user_id)
        if profile is None:
            return None
        await self.sync_user(profile)
        return profile.name
