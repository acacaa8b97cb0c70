"""Command handlers — write-side use cases.

Each handler encapsulates a single operation that mutates state.
Handlers depend only on port interfaces and the response router, never on
concrete adapters.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from pathlib import PurePosixPath

import structlog

from chatapp.domain.entities import Chat, Message
from chatapp.domain.enums import MessageRole
from chatapp.domain.exceptions import (
    ChatNotFoundError,
    MessageNotFoundError,
    ValidationError,
)
from chatapp.ports.outbound import ChatRepository, FileStoragePort, MessageRepository
from chatapp.shared.observability.metrics import CHAT_MESSAGES
from chatapp.shared.providers.router import ResponseRouter
from chatapp.shared.providers.types import ChatMessage, ChatRole

logger = structlog.get_logger(__name__)

EMPTY_REPLY_FALLBACK = "Sorry, I could not generate a response."


# ═══════════════════════════════════════════════════════════════
#  Send Message
# ═══════════════════════════════════════════════════════════════
@dataclass
class SendMessageCommand:
    """A user turn, optionally continuing an existing chat."""

    message: str
    chat_id: str | None = None
    file_url: str | None = None


@dataclass(frozen=True)
class SendMessageResult:
    chat_id: str
    message: str


class SendMessageHandler:
    """Asks the router for a reply, then stores both turns.

    The router is called before anything is written, so a request that no
    provider can serve leaves no chat or message behind.
    """

    def __init__(
        self,
        chat_repo: ChatRepository,
        message_repo: MessageRepository,
        router: ResponseRouter,
        *,
        context_window: int = 10,
    ) -> None:
        self._chat_repo = chat_repo
        self._message_repo = message_repo
        self._router = router
        self._context_window = context_window

    async def handle(self, cmd: SendMessageCommand) -> SendMessageResult:
        text = cmd.message.strip() if cmd.message else ""
        if not text:
            raise ValidationError("Message is required")

        chat: Chat | None = None
        history: list[Message] = []
        if cmd.chat_id:
            chat = await self._chat_repo.get_by_id(cmd.chat_id)
            if chat is None:
                raise ChatNotFoundError(cmd.chat_id)
            # The new user turn takes one slot of the window.
            history = await self._message_repo.list_recent(
                chat.id, limit=max(self._context_window - 1, 0)
            )

        log = logger.bind(chat_id=cmd.chat_id, history_len=len(history))
        log.info("send_message_started")

        context = [self._to_chat_message(m) for m in history]
        context.append(ChatMessage.user(cmd.message))

        reply = await self._router.get_response(context)
        if not reply.strip():
            log.warning("empty_reply_substituted")
            reply = EMPTY_REPLY_FALLBACK

        if chat is None:
            chat = Chat.from_first_message(cmd.message)
            await self._chat_repo.save(chat)

        await self._message_repo.save(
            Message(
                chat_id=chat.id,
                role=MessageRole.USER,
                content=cmd.message,
                file_url=cmd.file_url or None,
            )
        )
        await self._message_repo.save(
            Message(chat_id=chat.id, role=MessageRole.ASSISTANT, content=reply)
        )
        CHAT_MESSAGES.labels(role=MessageRole.USER.value).inc()
        CHAT_MESSAGES.labels(role=MessageRole.ASSISTANT.value).inc()

        log.info("send_message_completed", chat_id=chat.id, reply_chars=len(reply))
        return SendMessageResult(chat_id=chat.id, message=reply)

    @staticmethod
    def _to_chat_message(message: Message) -> ChatMessage:
        role = ChatRole.USER if message.role == MessageRole.USER else ChatRole.ASSISTANT
        return ChatMessage(role=role, content=message.content)


# ═══════════════════════════════════════════════════════════════
#  Rename / Delete Chat
# ═══════════════════════════════════════════════════════════════
@dataclass
class RenameChatCommand:
    chat_id: str
    title: str


class RenameChatHandler:
    def __init__(self, chat_repo: ChatRepository) -> None:
        self._repo = chat_repo

    async def handle(self, cmd: RenameChatCommand) -> Chat:
        chat = await self._repo.get_by_id(cmd.chat_id)
        if chat is None:
            raise ChatNotFoundError(cmd.chat_id)
        chat.rename(cmd.title)
        await self._repo.update(chat)
        logger.info("chat_renamed", chat_id=chat.id)
        return chat


@dataclass
class DeleteChatCommand:
    chat_id: str


class DeleteChatHandler:
    """Deletes a chat together with all of its messages."""

    def __init__(self, chat_repo: ChatRepository) -> None:
        self._repo = chat_repo

    async def handle(self, cmd: DeleteChatCommand) -> None:
        if not await self._repo.delete(cmd.chat_id):
            raise ChatNotFoundError(cmd.chat_id)
        logger.info("chat_deleted", chat_id=cmd.chat_id)


# ═══════════════════════════════════════════════════════════════
#  Delete Message
# ═══════════════════════════════════════════════════════════════
@dataclass
class DeleteMessageCommand:
    message_id: str


class DeleteMessageHandler:
    def __init__(self, message_repo: MessageRepository) -> None:
        self._repo = message_repo

    async def handle(self, cmd: DeleteMessageCommand) -> None:
        if not await self._repo.delete(cmd.message_id):
            raise MessageNotFoundError(cmd.message_id)
        logger.info("message_deleted", message_id=cmd.message_id)


# ═══════════════════════════════════════════════════════════════
#  Upload File
# ═══════════════════════════════════════════════════════════════
@dataclass
class UploadFileCommand:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class UploadedFile:
    url: str
    path: str


_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class UploadFileHandler:
    """Stores an attachment under a collision-resistant generated name."""

    def __init__(self, storage: FileStoragePort, *, prefix: str = "uploads") -> None:
        self._storage = storage
        self._prefix = prefix

    async def handle(self, cmd: UploadFileCommand) -> UploadedFile:
        if not cmd.content:
            raise ValidationError("No file provided")

        path = f"{self._prefix}/{self.generate_name(cmd.filename)}"
        url = await self._storage.upload(path, cmd.content, cmd.content_type)
        return UploadedFile(url=url, path=path)

    @staticmethod
    def generate_name(filename: str) -> str:
        suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(7))
        name = f"{int(time.time() * 1000)}-{suffix}"
        ext = PurePosixPath(filename or "").suffix
        return f"{name}{ext}" if ext else name
