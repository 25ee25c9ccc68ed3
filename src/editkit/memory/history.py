"""Bounded in-memory conversation history."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterator, List

from .schema import ConversationMessage, MessageRole

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_PAIRS = 20


class ConversationHistory:
    """FIFO buffer holding at most ``max_pairs`` user/assistant exchanges.

    Eviction counts messages, not bytes: once the buffer exceeds
    ``max_pairs * 2`` messages the oldest ones are dropped.
    """

    def __init__(self, max_pairs: int = DEFAULT_MAX_PAIRS) -> None:
        if max_pairs < 1:
            raise ValueError("max_pairs must be at least 1")
        self._max_pairs = max_pairs
        self._messages: Deque[ConversationMessage] = deque()

    @property
    def max_pairs(self) -> int:
        return self._max_pairs

    def add_user_message(self, content: str) -> ConversationMessage:
        return self._append(MessageRole.USER, content)

    def add_assistant_message(self, content: str) -> ConversationMessage:
        return self._append(MessageRole.ASSISTANT, content)

    def messages(self) -> List[ConversationMessage]:
        """Return a copy of the stored messages, oldest first."""
        return list(self._messages)

    def format(self) -> str:
        """Render the history as ``ROLE: content`` paragraphs."""
        return "\n\n".join(
            f"{message.role.value.upper()}: {message.content}" for message in self._messages
        )

    def clear(self) -> None:
        self._messages.clear()

    @property
    def is_empty(self) -> bool:
        return not self._messages

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ConversationMessage]:
        return iter(self.messages())

    def _append(self, role: MessageRole, content: str) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content)
        self._messages.append(message)
        limit = self._max_pairs * 2
        evicted = 0
        while len(self._messages) > limit:
            self._messages.popleft()
            evicted += 1
        if evicted:
            LOGGER.debug("Evicted %d message(s) from conversation history", evicted)
        return message


__all__ = ["DEFAULT_MAX_PAIRS", "ConversationHistory"]
