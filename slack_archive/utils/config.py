"""Sync configuration loaded from environment variables."""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field, ValidationError

from slack_archive.utils.errors import ConfigurationError


DEFAULT_RECHECK_BUFFER_HOURS = 24
# Slack free tier only exposes the last 90 days of history
DEFAULT_FULL_SYNC_DAYS = 90


class SyncConfig(BaseModel):
    """Settings for one archive run."""
    slack_bot_token: str = Field(..., min_length=1, description="Slack bot token (xoxb-...)")
    supabase_url: str = Field(..., min_length=1, description="Supabase project URL")
    supabase_key: str = Field(..., min_length=1, description="Supabase service role key")
    recheck_buffer_hours: float = Field(
        default=DEFAULT_RECHECK_BUFFER_HOURS,
        ge=0,
        description="How far before the last run's start to re-scan for edits and replies"
    )
    full_sync_days: int = Field(
        default=DEFAULT_FULL_SYNC_DAYS,
        gt=0,
        description="History horizon for the initial sync"
    )
    page_size: int = Field(default=200, gt=0, le=1000, description="Messages per history page")
    page_delay_seconds: float = Field(default=1.0, ge=0, description="Pause between pages")
    channel_types: str = Field(default="public_channel", description="conversations.list types")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SyncConfig":
        """
        Build config from environment variables.
        
        RECHECK_BUFFER_HOURS wins over RECHECK_DAYS; the latter is only a
        day-denominated way of setting the same buffer.
        """
        env = os.environ if environ is None else environ
        
        values: dict = {
            "slack_bot_token": env.get("SLACK_BOT_TOKEN", "").strip(),
            "supabase_url": env.get("SUPABASE_URL", "").strip(),
            "supabase_key": (
                env.get("SUPABASE_SERVICE_ROLE_KEY") or env.get("SUPABASE_KEY") or ""
            ).strip(),
        }
        
        try:
            if env.get("RECHECK_BUFFER_HOURS"):
                values["recheck_buffer_hours"] = float(env["RECHECK_BUFFER_HOURS"])
            elif env.get("RECHECK_DAYS"):
                values["recheck_buffer_hours"] = float(env["RECHECK_DAYS"]) * 24
            if env.get("FULL_SYNC_DAYS"):
                values["full_sync_days"] = int(env["FULL_SYNC_DAYS"])
            if env.get("SLACK_PAGE_SIZE"):
                values["page_size"] = int(env["SLACK_PAGE_SIZE"])
            if env.get("PAGE_DELAY_SECONDS"):
                values["page_delay_seconds"] = float(env["PAGE_DELAY_SECONDS"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e
        
        if env.get("SLACK_CHANNEL_TYPES"):
            values["channel_types"] = env["SLACK_CHANNEL_TYPES"]
        
        try:
            return cls(**values)
        except ValidationError as e:
            missing = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise ConfigurationError(f"Invalid sync configuration: {missing}") from e
