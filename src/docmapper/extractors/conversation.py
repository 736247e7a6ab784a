"""Conversation context shared by text requests."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..config import Config

__all__ = ["Conversation", "trim_history"]

logger = logging.getLogger(__name__)


def trim_history(messages: List[Dict[str, str]], limit: int) -> List[Dict[str, str]]:
    """Keep only the most recent ``limit`` messages."""
    if len(messages) <= limit:
        return messages
    logger.debug("Trimming conversation history from %d to %d messages", len(messages), limit)
    return messages[-limit:]


@dataclass
class Conversation:
    """System prompt plus the running message history."""
    system_prompt: str
    messages: List[Dict[str, str]] = field(default_factory=list)
    max_history: int = Config.MAX_CONVERSATION_HISTORY

    def request_messages(self, user_message: str) -> List[Dict[str, str]]:
        """Build the messages for a new user turn with trimmed history."""
        history = trim_history(
            self.messages + [{"role": "user", "content": user_message}],
            self.max_history
        )
        return [{"role": "system", "content": self.system_prompt}] + history

    def record(self, user_message: str, reply: str) -> None:
        self.messages.append({"role": "user", "content": user_message})
        self.messages.append({"role": "assistant", "content": reply})
        self.messages = trim_history(self.messages, self.max_history)

    def clear(self) -> None:
        self.messages = []
