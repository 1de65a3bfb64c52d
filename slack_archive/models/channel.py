"""Channel models (not persisted)."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class ChannelAccess(str, Enum):
    """Outcome of trying to join a channel, decided once in the Slack adapter."""
    JOINED = "joined"
    ALREADY_MEMBER = "already_member"
    PRIVATE_MANUAL = "private_manual"
    INACCESSIBLE = "inaccessible"
    OTHER_FAILURE = "other_failure"

    @property
    def can_fetch(self) -> bool:
        return self not in (ChannelAccess.INACCESSIBLE, ChannelAccess.OTHER_FAILURE)


class ChannelSyncStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


class Channel(BaseModel):
    """A conversation returned by conversations.list."""
    id: str = Field(..., description="Slack channel ID")
    name: str = Field(..., description="Channel name")
    is_private: bool = False

    @classmethod
    def from_slack(cls, payload: dict) -> "Channel":
        return cls(
            id=payload["id"],
            name=payload.get("name") or payload["id"],
            is_private=bool(payload.get("is_private", False)),
        )


class ChannelSyncResult(BaseModel):
    """Per-channel outcome of one run."""
    channel_id: str
    channel_name: str
    access: ChannelAccess
    status: ChannelSyncStatus
    messages_processed: int = 0
    replies_processed: int = 0
    windows_failed: int = 0
    error: Optional[str] = None
