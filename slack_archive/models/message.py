"""Archived Slack message model."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from slack_archive.utils.slack_time import ts_to_datetime


def message_id(channel_id: str, ts: str) -> str:
    """Composite key for a message: stable for the message's lifetime."""
    return f"{channel_id}-{ts}"


class ArchivedMessage(BaseModel):
    """A Slack message as stored in the `messages` table."""
    id: str = Field(..., description="Composite key: {channel_id}-{ts}")
    channel_id: str = Field(..., description="Slack channel ID")
    channel_name: Optional[str] = Field(None, description="Channel name at sync time")
    user_id: Optional[str] = Field(None, description="Author Slack user ID")
    username: Optional[str] = Field(None, description="Author handle snapshot")
    text: str = Field(default="", description="Message text")
    ts: str = Field(..., description="Slack message timestamp")
    timestamp: datetime = Field(..., description="Message time derived from ts (UTC)")
    thread_ts: Optional[str] = Field(None, description="Parent ts when part of a thread")
    edited_timestamp: Optional[datetime] = Field(None, description="Time of the last edit")
    raw_json: dict[str, Any] = Field(default_factory=dict, description="Slack payload as received")

    @classmethod
    def from_slack(
        cls,
        payload: dict,
        channel_id: str,
        channel_name: Optional[str] = None,
        username: Optional[str] = None,
    ) -> "ArchivedMessage":
        """Build from a conversations.history / conversations.replies item."""
        ts = payload["ts"]
        edited = payload.get("edited") or {}
        return cls(
            id=message_id(channel_id, ts),
            channel_id=channel_id,
            channel_name=channel_name,
            user_id=payload.get("user"),
            username=username,
            text=payload.get("text") or "",
            ts=ts,
            timestamp=ts_to_datetime(ts),
            thread_ts=payload.get("thread_ts"),
            edited_timestamp=ts_to_datetime(edited["ts"]) if edited.get("ts") else None,
            raw_json=payload,
        )

    @property
    def reply_count(self) -> int:
        return int(self.raw_json.get("reply_count") or 0)

    @property
    def is_thread_reply(self) -> bool:
        return self.thread_ts is not None and self.thread_ts != self.ts

    def to_row(self) -> dict:
        """Row for the Supabase upsert (every column is replaced on conflict)."""
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "channel_name": self.channel_name,
            "user_id": self.user_id,
            "username": self.username,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "thread_ts": self.thread_ts,
            "is_reply": self.is_thread_reply,
            "edited_timestamp": self.edited_timestamp.isoformat() if self.edited_timestamp else None,
            "raw_json": self.raw_json,
        }
