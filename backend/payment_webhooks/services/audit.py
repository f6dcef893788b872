"""Best-effort audit trail of webhook deliveries"""
from typing import Any, Optional

from payment_webhooks.core.logging import audit_logger
from payment_webhooks.core.metrics import audit_write_failures_counter
from payment_webhooks.db.store import TransactionStore
from payment_webhooks.models.audit_log import AuditLog, AuditStatus

UNKNOWN = "unknown"
MAX_IDENTIFIER_LENGTH = 255


def _describe(payload: Any):
    """event_id / event_type for the audit row, tolerating malformed payloads"""
    if not isinstance(payload, dict):
        return UNKNOWN, UNKNOWN
    event_id = payload.get("event_id")
    event_type = payload.get("event_type")
    return (
        str(event_id)[:MAX_IDENTIFIER_LENGTH] if event_id not in (None, "") else UNKNOWN,
        str(event_type)[:MAX_IDENTIFIER_LENGTH] if event_type not in (None, "") else UNKNOWN,
    )


class AuditRecorder:
    """Appends one AuditLog row per call and never lets a write failure escape"""

    def __init__(self, store: TransactionStore):
        self.store = store

    def record(self, payload: Any, status: AuditStatus, error: Optional[str] = None) -> None:
        event_id, event_type = _describe(payload)
        try:
            entry = AuditLog(
                event_id=event_id,
                event_type=event_type,
                payload=payload if isinstance(payload, dict) else {"raw_body": payload},
                status=AuditStatus(status).value,
                error_message=error,
            )
            self.store.insert_audit_log(entry)
        except Exception as e:
            audit_write_failures_counter.inc()
            audit_logger.error(
                f"Failed to log audit event {event_id} ({status}): {e}",
                exc_info=True
            )
