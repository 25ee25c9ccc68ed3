"""Conversation memory kept between model requests."""

from .history import DEFAULT_MAX_PAIRS, ConversationHistory
from .schema import ConversationMessage, MessageRole

__all__ = [
    "ConversationHistory",
    "ConversationMessage",
    "DEFAULT_MAX_PAIRS",
    "MessageRole",
]
