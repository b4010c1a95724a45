from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

authorization_decisions_total = Counter(
    "backoffice_authorization_decisions_total",
    "Authorization decisions rendered by the engine",
    ["result"],
)
activity_logs_written_total = Counter(
    "backoffice_activity_logs_written_total",
    "Activity log entries appended",
    ["event"],
)
activity_log_failures_total = Counter(
    "backoffice_activity_log_failures_total",
    "Activity log entries that could not be recorded",
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
