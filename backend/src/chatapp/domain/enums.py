"""Domain enumerations for the chat backend."""

from __future__ import annotations

import enum


class MessageRole(str, enum.Enum):
    """Author of a stored chat message."""

    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: str) -> MessageRole:
        """Accept stored roles, including the legacy ``model`` alias."""
        if value == "model":
            return cls.ASSISTANT
        return cls(value)
