"""Prometheus metrics for the application"""
from prometheus_client import Counter, Histogram, REGISTRY


def _get_or_create(metric_cls, name, documentation, labelnames=()):
    """Register a collector once; reuse the registered one on re-import (tests, reloads)"""
    try:
        return metric_cls(name, documentation, labelnames)
    except ValueError:
        return REGISTRY._names_to_collectors.get(name)


# Ingestion metrics
webhooks_received_counter = _get_or_create(
    Counter,
    'payment_webhooks_received_total',
    'Total number of webhook deliveries received'
)

webhook_outcomes_counter = _get_or_create(
    Counter,
    'payment_webhooks_outcomes_total',
    'Webhook deliveries by terminal outcome',
    ['outcome']
)

webhook_processing_histogram = _get_or_create(
    Histogram,
    'payment_webhooks_processing_seconds',
    'Time spent ingesting a webhook delivery'
)

# Security metrics
signature_failures_counter = _get_or_create(
    Counter,
    'payment_webhooks_signature_failures_total',
    'Webhook deliveries rejected by signature verification',
    ['mode']
)

# Audit metrics
audit_write_failures_counter = _get_or_create(
    Counter,
    'payment_webhooks_audit_write_failures_total',
    'Audit log entries that could not be written'
)
