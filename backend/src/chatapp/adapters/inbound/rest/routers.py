"""Health, Chat, Chats, Messages, Upload, Providers — REST routers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import ORJSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.responses import Response

from chatapp.application.commands import (
    DeleteChatCommand,
    DeleteChatHandler,
    DeleteMessageCommand,
    DeleteMessageHandler,
    RenameChatCommand,
    RenameChatHandler,
    SendMessageCommand,
    SendMessageHandler,
    UploadFileCommand,
    UploadFileHandler,
)
from chatapp.application.dtos import (
    ChatReplyResponse,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    ProviderHealthResponse,
    RenameChatRequest,
    SuccessResponse,
    UploadResponse,
)
from chatapp.application.queries import (
    GetChatMessagesHandler,
    GetChatMessagesQuery,
    ListChatsHandler,
    ListChatsQuery,
)
from chatapp.dependencies import (
    ServiceContainer,
    get_chat_messages_handler,
    get_container,
    get_delete_chat_handler,
    get_delete_message_handler,
    get_health_cache,
    get_list_chats_handler,
    get_rename_chat_handler,
    get_response_router,
    get_send_message_handler,
    get_upload_file_handler,
)
from chatapp.shared.providers.health import ProviderHealthCache
from chatapp.shared.providers.router import ResponseRouter


# ═══════════════════════════════════════════════════════════════
#  Health
# ═══════════════════════════════════════════════════════════════
health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=HealthResponse)
async def health_check(
    container: ServiceContainer = Depends(get_container),
    health_cache: ProviderHealthCache = Depends(get_health_cache),
) -> ORJSONResponse:
    settings = container.settings

    db_status = "connected"
    db_error = None
    try:
        async with container.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        db_error = str(e)

    # Cached flags only; this endpoint never triggers a provider probe
    providers = {
        h.provider_id: "healthy" if h.healthy else "unhealthy"
        for h in health_cache.snapshots()
    }

    overall = "ok" if db_status == "connected" else "degraded"
    services = {"database": db_status, **providers}
    if db_error:
        services["database_error"] = db_error

    resp = HealthResponse(
        status=overall,
        environment=settings.app_env.value,
        services=services,
    )
    return ORJSONResponse(content=resp.model_dump(), status_code=200 if overall == "ok" else 503)


@health_router.get("/metrics")
async def prometheus_metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# ═══════════════════════════════════════════════════════════════
#  Chat
# ═══════════════════════════════════════════════════════════════
chat_router = APIRouter(prefix="/chat", tags=["Chat"])


@chat_router.post(
    "",
    response_model=ChatReplyResponse,
    responses={
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def send_message(
    body: ChatRequest,
    handler: SendMessageHandler = Depends(get_send_message_handler),
) -> ChatReplyResponse:
    result = await handler.handle(
        SendMessageCommand(message=body.message, chat_id=body.chat_id, file_url=body.file_url)
    )
    return ChatReplyResponse(chat_id=result.chat_id, message=result.message)


# ═══════════════════════════════════════════════════════════════
#  Chats
# ═══════════════════════════════════════════════════════════════
chats_router = APIRouter(prefix="/chats", tags=["Chats"])


@chats_router.get("", response_model=list[ChatResponse])
async def list_chats(
    handler: ListChatsHandler = Depends(get_list_chats_handler),
) -> list[ChatResponse]:
    chats = await handler.handle(ListChatsQuery())
    return [ChatResponse.from_entity(c) for c in chats]


@chats_router.patch("", response_model=ChatResponse, responses={404: {"model": ErrorResponse}})
async def rename_chat(
    body: RenameChatRequest,
    handler: RenameChatHandler = Depends(get_rename_chat_handler),
) -> ChatResponse:
    chat = await handler.handle(RenameChatCommand(chat_id=body.chat_id, title=body.title))
    return ChatResponse.from_entity(chat)


@chats_router.delete("", response_model=SuccessResponse, responses={404: {"model": ErrorResponse}})
async def delete_chat(
    chat_id: str = Query(..., alias="chatId", min_length=1),
    handler: DeleteChatHandler = Depends(get_delete_chat_handler),
) -> SuccessResponse:
    await handler.handle(DeleteChatCommand(chat_id=chat_id))
    return SuccessResponse()


@chats_router.get("/{chat_id}", response_model=list[MessageResponse])
async def get_chat_messages(
    chat_id: str,
    handler: GetChatMessagesHandler = Depends(get_chat_messages_handler),
) -> list[MessageResponse]:
    messages = await handler.handle(GetChatMessagesQuery(chat_id=chat_id))
    return [MessageResponse.from_entity(m) for m in messages]


# ═══════════════════════════════════════════════════════════════
#  Messages
# ═══════════════════════════════════════════════════════════════
messages_router = APIRouter(prefix="/messages", tags=["Messages"])


@messages_router.delete(
    "/{message_id}", response_model=SuccessResponse, responses={404: {"model": ErrorResponse}}
)
async def delete_message(
    message_id: str,
    handler: DeleteMessageHandler = Depends(get_delete_message_handler),
) -> SuccessResponse:
    await handler.handle(DeleteMessageCommand(message_id=message_id))
    return SuccessResponse()


# ═══════════════════════════════════════════════════════════════
#  Upload
# ═══════════════════════════════════════════════════════════════
upload_router = APIRouter(prefix="/upload", tags=["Upload"])


@upload_router.post("", response_model=UploadResponse, responses={502: {"model": ErrorResponse}})
async def upload_file(
    file: UploadFile = File(...),
    handler: UploadFileHandler = Depends(get_upload_file_handler),
) -> UploadResponse:
    content = await file.read()
    uploaded = await handler.handle(
        UploadFileCommand(
            filename=file.filename or "",
            content=content,
            content_type=file.content_type or "application/octet-stream",
        )
    )
    return UploadResponse(url=uploaded.url, path=uploaded.path)


# ═══════════════════════════════════════════════════════════════
#  Provider Health
# ═══════════════════════════════════════════════════════════════
providers_router = APIRouter(prefix="/providers", tags=["Provider Health"])


@providers_router.get("/health", response_model=list[ProviderHealthResponse])
async def provider_health(
    router: ResponseRouter = Depends(get_response_router),
) -> list[ProviderHealthResponse]:
    """Cached health records for the configured chat providers."""
    primary_id = router.providers[0].provider_id
    return [
        ProviderHealthResponse(
            provider_id=h.provider_id,
            healthy=h.healthy,
            last_checked_at=h.last_checked_at,
            last_error=h.last_error,
            primary=h.provider_id == primary_id,
        )
        for h in router.health_cache.snapshots()
    ]
