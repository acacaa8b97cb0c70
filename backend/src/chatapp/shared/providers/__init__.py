"""Provider routing layer.

Health-cached selection between two chat providers with a single failover,
plus the fixed-window rate limiter guarding inbound chat requests.
"""

from chatapp.shared.providers.types import (
    ChatMessage,
    ChatRole,
    ProviderHealth,
)
from chatapp.shared.providers.health import ProviderHealthCache
from chatapp.shared.providers.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)
from chatapp.shared.providers.router import (
    AllProvidersFailedError,
    ResponseRouter,
    RouterState,
)

__all__ = [
    "AllProvidersFailedError",
    "ChatMessage",
    "ChatRole",
    "FixedWindowRateLimiter",
    "ProviderHealth",
    "ProviderHealthCache",
    "RateLimitConfig",
    "RateLimitResult",
    "ResponseRouter",
    "RouterState",
]
