"""Domain-specific exception hierarchy.

All exceptions inherit from ``DomainError`` so callers can catch the entire
family in one clause while still discriminating on subclass.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain-layer errors."""

    def __init__(self, message: str, *, code: str = "DOMAIN_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# ── Validation ───────────────────────────────────────────────
class ValidationError(DomainError):
    """Input failed domain validation rules."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="VALIDATION_ERROR")


# ── Chats ────────────────────────────────────────────────────
class ChatNotFoundError(DomainError):
    def __init__(self, chat_id: str) -> None:
        super().__init__(f"Chat {chat_id!r} not found", code="CHAT_NOT_FOUND")


class MessageNotFoundError(DomainError):
    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message {message_id!r} not found", code="MESSAGE_NOT_FOUND")


# ── External services ───────────────────────────────────────
class ProviderError(DomainError):
    """An upstream chat provider could not produce a reply."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"[{provider}] {message}", code="PROVIDER_ERROR")


class StorageError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="STORAGE_ERROR")
