"""Typed records kept by the conversation history buffer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class MessageRole(str, Enum):
    """Speaker of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(RecordModel):
    """Single message exchanged with the model."""

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


__all__ = ["ConversationMessage", "MessageRole", "RecordModel", "utc_now"]
