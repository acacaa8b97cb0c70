"""Query handlers — read-side use cases.

Query handlers are intentionally simple: they fetch data from repositories
and return domain objects.  No mutation happens here.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from chatapp.domain.entities import Chat, Message
from chatapp.ports.outbound import ChatRepository, MessageRepository

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════
#  List Chats
# ═══════════════════════════════════════════════════════════════
@dataclass
class ListChatsQuery:
    pass


class ListChatsHandler:
    def __init__(self, chat_repo: ChatRepository) -> None:
        self._repo = chat_repo

    async def handle(self, query: ListChatsQuery) -> list[Chat]:
        logger.debug("list_chats")
        return await self._repo.list_with_latest_message()


# ═══════════════════════════════════════════════════════════════
#  Get Chat Messages
# ═══════════════════════════════════════════════════════════════
@dataclass
class GetChatMessagesQuery:
    chat_id: str


class GetChatMessagesHandler:
    def __init__(self, message_repo: MessageRepository) -> None:
        self._repo = message_repo

    async def handle(self, query: GetChatMessagesQuery) -> list[Message]:
        logger.debug("get_chat_messages", chat_id=query.chat_id)
        return await self._repo.list_by_chat(query.chat_id)
