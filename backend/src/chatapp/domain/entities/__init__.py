"""Domain entities — objects with identity and lifecycle.

Entities carry a unique ``id`` field and expose controlled mutation methods
that enforce their invariants.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from chatapp.domain.enums import MessageRole
from chatapp.domain.exceptions import ValidationError

TITLE_PREVIEW_CHARS = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


# ═══════════════════════════════════════════════════════════════
#  Message
# ═══════════════════════════════════════════════════════════════
@dataclass(slots=True)
class Message:
    """A single turn in a conversation."""

    chat_id: str
    role: MessageRole
    content: str
    id: str = field(default_factory=_new_id)
    file_url: str | None = None
    created_at: datetime = field(default_factory=_utcnow)


# ═══════════════════════════════════════════════════════════════
#  Chat
# ═══════════════════════════════════════════════════════════════
@dataclass(slots=True)
class Chat:
    """A titled conversation thread."""

    title: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_first_message(cls, message: str) -> Chat:
        """New chat titled after the opening message."""
        title = message[:TITLE_PREVIEW_CHARS]
        if len(message) > TITLE_PREVIEW_CHARS:
            title += "..."
        return cls(title=title)

    def rename(self, title: str) -> None:
        title = title.strip()
        if not title:
            raise ValidationError("Chat title must not be empty")
        self.title = title
        self.updated_at = _utcnow()

    @property
    def latest_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None
