"""Data Transfer Objects — Pydantic models for API boundaries.

Field aliases keep the camelCase wire format the web client already speaks
(``chatId``, ``fileUrl``) while the Python side stays snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chatapp.domain.entities import Chat, Message


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# ═══════════════════════════════════════════════════════════════
#  Common
# ═══════════════════════════════════════════════════════════════
class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | None = None  # type: ignore[type-arg]


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    environment: str = "development"
    services: dict[str, str] = Field(default_factory=dict)


class ProviderHealthResponse(BaseModel):
    provider_id: str
    healthy: bool
    last_checked_at: float | None = None
    last_error: str | None = None
    primary: bool = False


# ═══════════════════════════════════════════════════════════════
#  Chat
# ═══════════════════════════════════════════════════════════════
class ChatRequest(_CamelModel):
    chat_id: str | None = Field(None, alias="chatId")
    message: str = Field(..., min_length=1, max_length=32_000)
    file_url: str | None = Field(None, alias="fileUrl")


class ChatReplyResponse(_CamelModel):
    chat_id: str = Field(..., alias="chatId")
    message: str


class RenameChatRequest(_CamelModel):
    chat_id: str = Field(..., alias="chatId", min_length=1)
    title: str = Field(..., min_length=1, max_length=255)


class MessageResponse(_CamelModel):
    id: str
    chat_id: str = Field(..., alias="chatId")
    role: str
    content: str
    file_url: str | None = Field(None, alias="fileUrl")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_entity(cls, m: Message) -> MessageResponse:
        return cls(
            id=m.id,
            chat_id=m.chat_id,
            role=m.role.value,
            content=m.content,
            file_url=m.file_url,
            created_at=m.created_at,
        )


class ChatResponse(_CamelModel):
    id: str
    title: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    messages: list[MessageResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, c: Chat) -> ChatResponse:
        return cls(
            id=c.id,
            title=c.title,
            created_at=c.created_at,
            updated_at=c.updated_at,
            messages=[MessageResponse.from_entity(m) for m in c.messages],
        )


# ═══════════════════════════════════════════════════════════════
#  Upload
# ═══════════════════════════════════════════════════════════════
class UploadResponse(BaseModel):
    url: str
    path: str
