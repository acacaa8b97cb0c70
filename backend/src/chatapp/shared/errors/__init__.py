"""Global exception handlers — map domain errors to HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse
import structlog

from chatapp.domain.exceptions import (
    ChatNotFoundError,
    DomainError,
    MessageNotFoundError,
    ProviderError,
    StorageError,
    ValidationError,
)
from chatapp.shared.providers.router import AllProvidersFailedError

logger = structlog.get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all domain→HTTP exception mappings."""

    @app.exception_handler(ValidationError)
    async def handle_validation(request: Request, exc: ValidationError) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=422,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(ChatNotFoundError)
    async def handle_chat_not_found(request: Request, exc: ChatNotFoundError) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=404,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(MessageNotFoundError)
    async def handle_message_not_found(
        request: Request, exc: MessageNotFoundError
    ) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=404,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(AllProvidersFailedError)
    async def handle_all_providers_failed(
        request: Request, exc: AllProvidersFailedError
    ) -> ORJSONResponse:
        logger.error("all_providers_failed_http", errors=exc.errors)
        return ORJSONResponse(
            status_code=503,
            content={
                "code": "SERVICE_UNAVAILABLE",
                "message": "Failed to generate a response. Please try again later.",
            },
        )

    # Only reachable from code that calls an adapter directly instead of via the router
    @app.exception_handler(ProviderError)
    async def handle_provider(request: Request, exc: ProviderError) -> ORJSONResponse:
        logger.error("provider_error_http", provider=exc.provider, message=exc.message)
        return ORJSONResponse(
            status_code=502,
            content={"code": exc.code, "message": "Upstream model provider error"},
        )

    @app.exception_handler(StorageError)
    async def handle_storage(request: Request, exc: StorageError) -> ORJSONResponse:
        logger.error("storage_error_http", message=exc.message)
        return ORJSONResponse(
            status_code=502,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(DomainError)
    async def handle_domain(request: Request, exc: DomainError) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=400,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("unhandled_exception", error=str(exc))
        return ORJSONResponse(
            status_code=500,
            content={
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            },
        )
