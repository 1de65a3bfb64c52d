"""Slack user profile model."""

from typing import Any, Optional
from pydantic import BaseModel, Field


class SlackUser(BaseModel):
    """A Slack user as stored in the `users` table."""
    id: str = Field(..., description="Slack user ID")
    team_id: Optional[str] = Field(None, description="Slack team ID")
    name: Optional[str] = Field(None, description="Handle")
    real_name: Optional[str] = Field(None, description="Real name")
    display_name: Optional[str] = Field(None, description="Profile display name")
    email: Optional[str] = Field(None, description="Profile email")
    deleted: bool = False
    is_bot: bool = False
    is_admin: bool = False
    is_owner: bool = False
    updated: int = Field(default=0, ge=0, description="Slack's monotonic profile update counter")
    raw_json: dict[str, Any] = Field(default_factory=dict, description="users.info payload")

    @classmethod
    def from_slack(cls, payload: dict) -> "SlackUser":
        """Build from the `user` object of a users.info response."""
        profile = payload.get("profile") or {}
        return cls(
            id=payload["id"],
            team_id=payload.get("team_id"),
            name=payload.get("name"),
            real_name=payload.get("real_name") or profile.get("real_name"),
            display_name=profile.get("display_name"),
            email=profile.get("email"),
            deleted=bool(payload.get("deleted", False)),
            is_bot=bool(payload.get("is_bot", False)),
            is_admin=bool(payload.get("is_admin", False)),
            is_owner=bool(payload.get("is_owner", False)),
            updated=int(payload.get("updated") or 0),
            raw_json=payload,
        )

    def to_row(self) -> dict:
        return self.model_dump()
