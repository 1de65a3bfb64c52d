"""Idempotent persistence of messages and users in Supabase."""

from datetime import datetime
from typing import Optional

from slack_archive.models.message import ArchivedMessage
from slack_archive.models.user import SlackUser
from slack_archive.services.supabase_client import SupabaseClient
from slack_archive.utils.errors import StoreError
from slack_archive.utils.slack_time import parse_db_timestamp

MESSAGES_TABLE = "messages"
USERS_TABLE = "users"


class MessageStore:
    """Upsert/query access to the `messages` and `users` tables."""

    async def upsert_message(self, message: ArchivedMessage) -> None:
        """Insert or replace a message by its composite id (captures edits)."""
        async with SupabaseClient() as client:
            try:
                client.table(MESSAGES_TABLE).upsert(
                    message.to_row(), on_conflict="id"
                ).execute()
            except Exception as e:
                raise StoreError(f"Failed to upsert message {message.id}: {e}") from e

    async def latest_message_timestamp(self, channel_id: str) -> Optional[datetime]:
        """
        Newest stored top-level message of the channel.
        
        Thread replies are fetched without an upper bound, so a stored reply can
        be newer than messages no window has scanned yet; they are excluded.
        """
        return await self._edge_timestamp(channel_id, newest=True, top_level_only=True)

    async def oldest_message_timestamp(self, channel_id: str) -> Optional[datetime]:
        return await self._edge_timestamp(channel_id, newest=False)

    async def _edge_timestamp(
        self,
        channel_id: str,
        newest: bool,
        top_level_only: bool = False,
    ) -> Optional[datetime]:
        async with SupabaseClient() as client:
            try:
                query = (
                    client.table(MESSAGES_TABLE)
                    .select("timestamp")
                    .eq("channel_id", channel_id)
                )
                if top_level_only:
                    query = query.eq("is_reply", False)
                result = query.order("timestamp", desc=newest).limit(1).execute()
            except Exception as e:
                raise StoreError(f"Failed to read message timestamps for {channel_id}: {e}") from e
        if not result.data:
            return None
        return parse_db_timestamp(result.data[0]["timestamp"])

    async def get_user(self, user_id: str) -> Optional[SlackUser]:
        async with SupabaseClient() as client:
            try:
                result = client.table(USERS_TABLE).select("*").eq("id", user_id).execute()
            except Exception as e:
                raise StoreError(f"Failed to get user {user_id}: {e}") from e
        if not result.data:
            return None
        # Nullable columns fall back to model defaults
        row = {k: v for k, v in result.data[0].items() if v is not None and k != "created_at"}
        return SlackUser(**row)

    async def upsert_user(self, user: SlackUser) -> bool:
        """
        Write a user only if the incoming `updated` counter is newer.
        
        The update carries its own `updated < incoming` filter, so the check and
        the write are a single statement. When no row matched, an insert that
        ignores conflicts creates the user if it does not exist yet.
        
        Returns True when a row was written.
        """
        row = user.to_row()
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(USERS_TABLE)
                    .update(row)
                    .eq("id", user.id)
                    .or_(f"updated.lt.{user.updated},updated.is.null")
                    .execute()
                )
                if result.data:
                    return True
                
                result = client.table(USERS_TABLE).upsert(
                    row, on_conflict="id", ignore_duplicates=True
                ).execute()
                return bool(result.data)
            except Exception as e:
                raise StoreError(f"Failed to upsert user {user.id}: {e}") from e
