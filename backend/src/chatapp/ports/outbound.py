"""Outbound ports — interfaces that infrastructure adapters must implement.

The application layer depends only on these abstractions, never on concrete
implementations (database drivers, HTTP clients, etc.).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from chatapp.domain.entities import Chat, Message
from chatapp.shared.providers.types import ChatMessage


# ═══════════════════════════════════════════════════════════════
#  Repository ports
# ═══════════════════════════════════════════════════════════════
class ChatRepository(ABC):
    """Persistence for conversation threads."""

    @abstractmethod
    async def save(self, chat: Chat) -> None: ...

    @abstractmethod
    async def get_by_id(self, chat_id: str) -> Chat | None: ...

    @abstractmethod
    async def list_with_latest_message(self) -> list[Chat]:
        """All chats newest first; ``messages`` holds at most the latest one."""

    @abstractmethod
    async def update(self, chat: Chat) -> None: ...

    @abstractmethod
    async def delete(self, chat_id: str) -> bool:
        """Delete a chat and its messages; False if it did not exist."""


class MessageRepository(ABC):
    """Persistence for individual messages."""

    @abstractmethod
    async def save(self, message: Message) -> None: ...

    @abstractmethod
    async def list_by_chat(self, chat_id: str) -> list[Message]:
        """All messages of a chat, oldest first."""

    @abstractmethod
    async def list_recent(self, chat_id: str, *, limit: int) -> list[Message]:
        """The last ``limit`` messages of a chat, oldest first."""

    @abstractmethod
    async def delete(self, message_id: str) -> bool: ...


# ═══════════════════════════════════════════════════════════════
#  Chat provider port
# ═══════════════════════════════════════════════════════════════
class ChatProviderPort(ABC):
    """One upstream language-model provider."""

    provider_id: str

    @abstractmethod
    async def send(self, messages: Sequence[ChatMessage]) -> str:
        """Return the assistant reply; raise ``ProviderError`` on failure.

        A structurally valid but empty reply is returned as ``""``.
        """

    @abstractmethod
    async def probe(self) -> None:
        """Cheap liveness request; raises on failure."""

    async def close(self) -> None:
        return None


# ═══════════════════════════════════════════════════════════════
#  File storage port
# ═══════════════════════════════════════════════════════════════
class FileStoragePort(ABC):
    """Opaque blob store returning public URLs."""

    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store ``content`` at ``path`` and return its public URL."""

    async def close(self) -> None:
        return None
