"""Dependency injection container — wires adapters to ports.

Long-lived collaborators (rate limiter, health cache, response router,
provider and storage clients, session factory) are built once per
application by ``build_container`` and kept on ``app.state``.  FastAPI's
``Depends()`` factories below read them from there for each request.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from chatapp.adapters.outbound.llm import build_chat_providers
from chatapp.adapters.outbound.persistence.database import create_engine, create_session_factory
from chatapp.adapters.outbound.persistence.repositories import (
    SQLAlchemyChatRepository,
    SQLAlchemyMessageRepository,
)
from chatapp.adapters.outbound.storage import SupabaseStorageAdapter
from chatapp.application.commands import (
    DeleteChatHandler,
    DeleteMessageHandler,
    RenameChatHandler,
    SendMessageHandler,
    UploadFileHandler,
)
from chatapp.application.queries import GetChatMessagesHandler, ListChatsHandler
from chatapp.config import Settings
from chatapp.ports.outbound import ChatProviderPort, FileStoragePort
from chatapp.shared.providers.health import ProviderHealthCache
from chatapp.shared.providers.rate_limiter import FixedWindowRateLimiter
from chatapp.shared.providers.router import ResponseRouter


# ── Per-application state ────────────────────────────────────
@dataclass
class ServiceContainer:
    """Process-lifetime collaborators shared by all request paths."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    providers: Sequence[ChatProviderPort]
    health_cache: ProviderHealthCache
    router: ResponseRouter
    rate_limiter: FixedWindowRateLimiter
    storage: FileStoragePort

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()
        await self.storage.close()
        await self.engine.dispose()


def build_container(
    settings: Settings,
    *,
    chat_providers: Sequence[ChatProviderPort] | None = None,
    storage: FileStoragePort | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
) -> ServiceContainer:
    """Construct every long-lived collaborator exactly once."""
    providers = list(chat_providers) if chat_providers is not None else build_chat_providers(settings)
    if len(providers) != 2:
        raise ValueError("exactly two chat providers (primary, fallback) are required")

    health_cache = ProviderHealthCache(providers, ttl_seconds=settings.health_check_ttl_seconds)
    engine = create_engine(settings)

    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        providers=providers,
        health_cache=health_cache,
        router=ResponseRouter(providers[0], providers[1], health_cache),
        rate_limiter=rate_limiter if rate_limiter is not None else FixedWindowRateLimiter(),
        storage=storage
        if storage is not None
        else SupabaseStorageAdapter(
            settings.supabase_url,
            settings.supabase_key,
            bucket=settings.supabase_bucket,
            timeout_s=settings.provider_timeout_seconds,
        ),
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container  # type: ignore[no-any-return]


def get_response_router(container: ServiceContainer = Depends(get_container)) -> ResponseRouter:
    return container.router


def get_health_cache(
    container: ServiceContainer = Depends(get_container),
) -> ProviderHealthCache:
    return container.health_cache


# ── DB session dependency ────────────────────────────────────
async def get_db_session(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    async with container.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Use-case handler factories ───────────────────────────────
def get_send_message_handler(
    session: AsyncSession = Depends(get_db_session),
    container: ServiceContainer = Depends(get_container),
) -> SendMessageHandler:
    return SendMessageHandler(
        chat_repo=SQLAlchemyChatRepository(session),
        message_repo=SQLAlchemyMessageRepository(session),
        router=container.router,
        context_window=container.settings.chat_context_window,
    )


def get_rename_chat_handler(
    session: AsyncSession = Depends(get_db_session),
) -> RenameChatHandler:
    return RenameChatHandler(SQLAlchemyChatRepository(session))


def get_delete_chat_handler(
    session: AsyncSession = Depends(get_db_session),
) -> DeleteChatHandler:
    return DeleteChatHandler(SQLAlchemyChatRepository(session))


def get_delete_message_handler(
    session: AsyncSession = Depends(get_db_session),
) -> DeleteMessageHandler:
    return DeleteMessageHandler(SQLAlchemyMessageRepository(session))


def get_list_chats_handler(
    session: AsyncSession = Depends(get_db_session),
) -> ListChatsHandler:
    return ListChatsHandler(SQLAlchemyChatRepository(session))


def get_chat_messages_handler(
    session: AsyncSession = Depends(get_db_session),
) -> GetChatMessagesHandler:
    return GetChatMessagesHandler(SQLAlchemyMessageRepository(session))


def get_upload_file_handler(
    container: ServiceContainer = Depends(get_container),
) -> UploadFileHandler:
    return UploadFileHandler(container.storage)
