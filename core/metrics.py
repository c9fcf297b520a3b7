"""
Prometheus metrics for the licensing service.

Custom metrics for business logic and performance monitoring.
"""

from prometheus_client import Counter, Histogram

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# Webhook metrics
webhook_events_total = Counter(
    "webhook_events_total",
    "Provider webhook events by type and outcome",
    ["event_type", "outcome"],
)

# License metrics
license_transitions_total = Counter(
    "license_transitions_total",
    "License state transitions",
    ["transition"],
)

# Subscription command metrics
subscription_commands_total = Counter(
    "subscription_commands_total",
    "Subscription and account commands by outcome",
    ["command", "outcome"],
)

refunds_issued_total = Counter(
    "refunds_issued_total",
    "Refunds issued during cooling-period cancellations",
)

# Payment provider metrics
payment_provider_errors_total = Counter(
    "payment_provider_errors_total",
    "Failed payment provider calls",
    ["operation"],
)

payment_provider_duration_seconds = Histogram(
    "payment_provider_duration_seconds",
    "Payment provider call duration in seconds",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors",
    ["error_type", "endpoint"],
)
