"""Prometheus metrics definitions for the USSD flow engine.

This module provides centralized metric definitions for observability.
Metrics are exported via the /metrics endpoint for Prometheus scraping.
"""

from prometheus_client import Counter, Gauge, Histogram  # type: ignore[import-not-found]

# Request metrics
HTTP_REQUESTS = Counter(
    "ussd_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
HTTP_LATENCY = Histogram(
    "ussd_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
)

# Processing metrics
INPUTS_PROCESSED = Counter(
    "ussd_inputs_processed_total",
    "Inputs processed by outcome",
    ["outcome"],
)
INPUT_LATENCY = Histogram(
    "ussd_input_processing_seconds",
    "Input processing latency",
)
NODE_VISITS = Counter(
    "ussd_node_visits_total",
    "Node visits by node kind",
    ["kind"],
)
ACTION_CALLS = Counter(
    "ussd_action_calls_total",
    "External payment/api calls",
    ["kind", "result"],
)
ACTION_LATENCY = Histogram(
    "ussd_action_call_duration_seconds",
    "External action latency",
    ["kind"],
)

# Business metrics
ACTIVE_SESSIONS = Gauge(
    "ussd_sessions_active",
    "Active sessions",
)
SESSIONS = Counter(
    "ussd_sessions_total",
    "Sessions by lifecycle event",
    ["status"],
)
VALIDATIONS = Counter(
    "ussd_flow_validations_total",
    "Flow validations",
    ["result"],
)
