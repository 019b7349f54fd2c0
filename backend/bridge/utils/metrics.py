"""Prometheus metrics helpers for translation, sharing & billing observability.

Metrics taxonomy:
Translation lifecycle:
    - translations_completed_total
    - translations_failed_total (label stage)
    - translation_latency_seconds
    - quota_rejections_total
Generation service:
    - llm_requests_total (label model)
    - llm_token_usage_total (labels model, token_type)
Documents & shares:
    - uploads_total (label outcome)
    - export_requests_total (label format)
    - share_views_total (label outcome)
Webhooks:
    - webhook_events_total (labels provider, event_type, outcome)
"""
from prometheus_client import Counter, Histogram

# Counters
TRANSLATIONS_COMPLETED = Counter(
    "translations_completed_total",
    "Total number of translations persisted successfully",
)

TRANSLATIONS_FAILED = Counter(
    "translations_failed_total",
    "Total number of translation requests that failed",
    ["stage"],
)

QUOTA_REJECTIONS = Counter(
    "quota_rejections_total",
    "Translation requests rejected because the usage limit was reached",
)

# Latency histogram in seconds
TRANSLATION_LATENCY_SECONDS = Histogram(
    "translation_latency_seconds",
    "End-to-end translation pipeline latency in seconds",
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)

LLM_REQUESTS_TOTAL = Counter(
    "llm_requests_total",
    "Total calls to the generation service",
    ["model"],
)
LLM_TOKEN_USAGE = Counter(
    "llm_token_usage_total",
    "Tokens consumed by the generation service",
    ["model", "token_type"],
)

UPLOADS_TOTAL = Counter(
    "uploads_total",
    "Upload attempts",
    ["outcome"],
)
EXPORT_REQUESTS = Counter(
    "export_requests_total",
    "Total export requests",
    ["format"],
)
SHARE_VIEWS = Counter(
    "share_views_total",
    "Public share resolutions",
    ["outcome"],
)

WEBHOOK_EVENTS = Counter(
    "webhook_events_total",
    "Webhook events received",
    ["provider", "event_type", "outcome"],
)

__all__ = [
    "TRANSLATIONS_COMPLETED",
    "TRANSLATIONS_FAILED",
    "QUOTA_REJECTIONS",
    "TRANSLATION_LATENCY_SECONDS",
    "LLM_REQUESTS_TOTAL",
    "LLM_TOKEN_USAGE",
    "UPLOADS_TOTAL",
    "EXPORT_REQUESTS",
    "SHARE_VIEWS",
    "WEBHOOK_EVENTS",
]
