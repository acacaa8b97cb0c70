"""Concrete repository implementations using SQLAlchemy.

These adapters implement the outbound port interfaces, translating between
domain entities and ORM models.
"""

from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from chatapp.domain.entities import Chat, Message
from chatapp.domain.enums import MessageRole
from chatapp.ports.outbound import ChatRepository, MessageRepository

from .models import ChatModel, MessageModel


# ── Converters ───────────────────────────────────────────────
def _model_to_message(m: MessageModel) -> Message:
    return Message(
        id=m.id,
        chat_id=m.chat_id,
        role=MessageRole.parse(m.role),
        content=m.content,
        file_url=m.file_url,
        created_at=m.created_at,
    )


def _message_to_model(msg: Message) -> MessageModel:
    return MessageModel(
        id=msg.id,
        chat_id=msg.chat_id,
        role=msg.role.value,
        content=msg.content,
        file_url=msg.file_url,
        created_at=msg.created_at,
    )


def _model_to_chat(m: ChatModel, messages: list[Message] | None = None) -> Chat:
    return Chat(
        id=m.id,
        title=m.title,
        created_at=m.created_at,
        updated_at=m.updated_at,
        messages=messages or [],
    )


# ═══════════════════════════════════════════════════════════════
#  SQLAlchemy Chat Repository
# ═══════════════════════════════════════════════════════════════
class SQLAlchemyChatRepository(ChatRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, chat: Chat) -> None:
        self._session.add(
            ChatModel(
                id=chat.id,
                title=chat.title,
                created_at=chat.created_at,
                updated_at=chat.updated_at,
            )
        )
        await self._session.flush()

    async def get_by_id(self, chat_id: str) -> Chat | None:
        result = await self._session.get(ChatModel, chat_id)
        return _model_to_chat(result) if result else None

    async def list_with_latest_message(self) -> list[Chat]:
        chats = (
            await self._session.execute(select(ChatModel).order_by(ChatModel.created_at.desc()))
        ).scalars().all()

        ranked = select(
            MessageModel,
            func.row_number()
            .over(partition_by=MessageModel.chat_id, order_by=MessageModel.created_at.desc())
            .label("rn"),
        ).subquery()
        latest = aliased(MessageModel, ranked)
        rows = (await self._session.execute(select(latest).where(ranked.c.rn == 1))).scalars().all()
        latest_by_chat = {m.chat_id: _model_to_message(m) for m in rows}

        return [
            _model_to_chat(c, [latest_by_chat[c.id]] if c.id in latest_by_chat else [])
            for c in chats
        ]

    async def update(self, chat: Chat) -> None:
        model = await self._session.get(ChatModel, chat.id)
        if model is None:
            return
        model.title = chat.title
        model.updated_at = chat.updated_at
        await self._session.flush()

    async def delete(self, chat_id: str) -> bool:
        model = await self._session.get(ChatModel, chat_id)
        if model is None:
            return False
        await self._session.execute(delete(MessageModel).where(MessageModel.chat_id == chat_id))
        await self._session.delete(model)
        await self._session.flush()
        return True


# ═══════════════════════════════════════════════════════════════
#  SQLAlchemy Message Repository
# ═══════════════════════════════════════════════════════════════
class SQLAlchemyMessageRepository(MessageRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, message: Message) -> None:
        self._session.add(_message_to_model(message))
        await self._session.flush()

    async def list_by_chat(self, chat_id: str) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.chat_id == chat_id)
            .order_by(MessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [_model_to_message(m) for m in result.scalars().all()]

    async def list_recent(self, chat_id: str, *, limit: int) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.chat_id == chat_id)
            .order_by(MessageModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [_model_to_message(m) for m in reversed(result.scalars().all())]

    async def delete(self, message_id: str) -> bool:
        result = await self._session.execute(
            delete(MessageModel).where(MessageModel.id == message_id)
        )
        await self._session.flush()
        return bool(result.rowcount)
