"""Conversation history and its pluggable trimming strategies."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .models import SYSTEM_ROLE, USER_ROLE, ChatMessage

logger = logging.getLogger(__name__)


class Trim(ABC):
    """Interface for bounding the stored conversation log."""

    @abstractmethod
    def apply(self, messages: List[ChatMessage]) -> List[ChatMessage]:
        """Returns the messages to keep.

        `messages` never includes the seeded system message: the history
        holds it aside and restores it in first position.
        """
        pass


class KeepAll(Trim):
    """Default strategy: the log grows for the lifetime of the process."""

    def apply(self, messages: List[ChatMessage]) -> List[ChatMessage]:
        return messages


class LastTurns(Trim):
    """Keeps the last `max_turns` turns, each starting at a user message."""

    def __init__(self, max_turns: int):
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns

    def apply(self, messages: List[ChatMessage]) -> List[ChatMessage]:
        seen = 0
        start = 0
        for index in range(len(messages) - 1, -1, -1):
            if messages[index].role == USER_ROLE:
                seen += 1
                if seen == self.max_turns:
                    start = index
                    break
        return messages[start:]


class ConversationHistory:
    """Ordered, append-only log of the messages sent upstream as context.

    Appends are serialized with a lock so that concurrent prompt submissions
    never interleave partial writes. `snapshot` returns an immutable copy, so
    callers do not hold the lock while waiting on the provider.
    """

    def __init__(
        self, system_message: Optional[str] = None, trim: Optional[Trim] = None
    ):
        self._lock = threading.Lock()
        self._messages: List[ChatMessage] = []
        self.trim = trim if trim is not None else KeepAll()
        if system_message:
            self._messages.append(ChatMessage(role=SYSTEM_ROLE, content=system_message))

    @property
    def system_message(self) -> Optional[ChatMessage]:
        with self._lock:
            if self._messages and self._messages[0].role == SYSTEM_ROLE:
                return self._messages[0]
        return None

    def append(self, message: ChatMessage) -> None:
        if message.role == SYSTEM_ROLE:
            raise ValueError(
                "The system message can only be set when the history is created"
            )
        with self._lock:
            head: List[ChatMessage] = []
            body = self._messages
            if body and body[0].role == SYSTEM_ROLE:
                head, body = body[:1], body[1:]
            body.append(message)
            before = len(body)
            kept = [m for m in self.trim.apply(body) if m.role != SYSTEM_ROLE]
            dropped = before - len(kept)
            self._messages = head + kept
        if dropped:
            logger.debug("Trimmed %d message(s) from history", dropped)

    def snapshot(self) -> Tuple[ChatMessage, ...]:
        with self._lock:
            return tuple(self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
