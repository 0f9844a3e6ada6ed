"""Prometheus metrics for webhook ingestion and automations."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

INBOUND_MESSAGES = Counter(
    "inbox_inbound_messages_total",
    "Total inbound messages received",
    ["channel_type", "status"],  # status: success, duplicate, error
)

STATUS_UPDATES = Counter(
    "inbox_status_updates_total",
    "Delivery status callbacks received",
    ["status", "result"],  # result: applied, ignored, unknown, unresolved, error
)

MESSAGE_PROCESSING_TIME = Histogram(
    "inbox_message_processing_seconds",
    "Time to process inbound/outbound messages",
    ["channel_type", "direction"],
)

AUTOMATION_EXECUTIONS = Counter(
    "automation_rule_executions_total",
    "Automation rule executions",
    ["trigger", "outcome"],
)

AUTOMATION_WEBHOOK_CALLS = Counter(
    "automation_webhook_calls_total",
    "Outbound automation webhook calls",
    ["result"],  # result: ok, error
)
