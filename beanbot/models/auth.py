"""
Authorization Models

One record per authorized chat. The state is a plain mapping from chat id
to record, persisted as JSON so authorizations survive restarts.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AuthResult(str, Enum):
    """Outcome of an /auth attempt."""
    GRANTED = "granted"
    ALREADY_AUTHORIZED = "already_authorized"
    REJECTED = "rejected"
    LOCKED_OUT = "locked_out"


class AuthorizationRecord(BaseModel):
    """A chat that presented the correct secret."""

    chat_id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    authorized_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class AuthorizationState(BaseModel):
    """All authorized chats, keyed by chat id."""

    records: dict[int, AuthorizationRecord] = Field(default_factory=dict)

    def is_authorized(self, chat_id: int) -> bool:
        return chat_id in self.records
