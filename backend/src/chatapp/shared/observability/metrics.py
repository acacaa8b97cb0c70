"""Prometheus metrics for the chat backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


# ── HTTP metrics ─────────────────────────────────────────────
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

RATE_LIMIT_REJECTIONS = Counter(
    "rate_limit_rejections_total",
    "Requests refused by the in-memory rate limiter",
    ["endpoint"],
)

# ── Provider metrics ─────────────────────────────────────────
PROVIDER_CALLS = Counter(
    "chat_provider_calls_total",
    "Chat completion calls per upstream provider",
    ["provider", "status"],
)

PROVIDER_LATENCY = Histogram(
    "chat_provider_latency_seconds",
    "Chat completion latency per upstream provider",
    ["provider"],
    buckets=(0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

PROVIDER_FAILOVERS = Counter(
    "chat_provider_failovers_total",
    "Requests retried on the alternate provider",
    ["from_provider", "to_provider"],
)

PROVIDER_PROBES = Counter(
    "chat_provider_probes_total",
    "Health probes sent to upstream providers",
    ["provider", "result"],
)

PROVIDER_HEALTHY = Gauge(
    "chat_provider_healthy",
    "Cached provider liveness (1 = healthy)",
    ["provider"],
)

# ── Chat metrics ─────────────────────────────────────────────
CHAT_MESSAGES = Counter(
    "chat_messages_total",
    "Chat messages persisted",
    ["role"],
)
