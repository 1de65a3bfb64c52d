"""Test data factories using Faker."""

from faker import Faker
from typing import Optional
from datetime import datetime

from slack_archive.utils.slack_time import datetime_to_ts

fake = Faker()


def slack_user_id() -> str:
    return f"U{fake.random_int(min=100000, max=999999)}"


def create_message_payload(
    posted_at: datetime,
    user: Optional[str] = None,
    text: Optional[str] = None,
    reply_count: int = 0,
    thread_ts: Optional[str] = None,
    edited_at: Optional[datetime] = None,
) -> dict:
    """A conversations.history message item."""
    ts = datetime_to_ts(posted_at)
    payload = {
        "type": "message",
        "ts": ts,
        "user": user or slack_user_id(),
        "text": text if text is not None else fake.sentence(),
    }
    if reply_count:
        payload["reply_count"] = reply_count
        payload["thread_ts"] = ts
    if thread_ts:
        payload["thread_ts"] = thread_ts
    if edited_at:
        payload["edited"] = {"user": payload["user"], "ts": datetime_to_ts(edited_at)}
    return payload


def create_user_payload(user_id: Optional[str] = None, updated: int = 1700000000) -> dict:
    """A users.info `user` object."""
    user_id = user_id or slack_user_id()
    name = fake.user_name()
    return {
        "id": user_id,
        "team_id": "T123456",
        "name": name,
        "real_name": fake.name(),
        "deleted": False,
        "is_bot": False,
        "is_admin": False,
        "is_owner": False,
        "updated": updated,
        "profile": {
            "display_name": name,
            "email": fake.email(),
        },
    }


def create_channel_payload(channel_id: Optional[str] = None, name: Optional[str] = None) -> dict:
    return {
        "id": channel_id or f"C{fake.random_int(min=100000, max=999999)}",
        "name": name or fake.word(),
        "is_private": False,
    }


def create_sync_run_row(
    started_at: datetime,
    status: str = "completed",
    completed_at: Optional[datetime] = None,
) -> dict:
    return {
        "id": fake.uuid4(),
        "started_at": started_at.isoformat(),
        "completed_at": completed_at.isoformat() if completed_at else None,
        "status": status,
        "sync_mode": "incremental",
        "total_messages": fake.random_int(min=0, max=500),
        "total_replies": fake.random_int(min=0, max=50),
        "channels_processed": fake.random_int(min=1, max=20),
        "error_message": None,
        "created_at": started_at.isoformat(),
    }
