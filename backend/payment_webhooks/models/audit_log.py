"""AuditLog model"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, JSON, DateTime
from payment_webhooks.models.base import Base


class AuditStatus(str, enum.Enum):
    RECEIVED = "received"
    PROCESSED = "processed"
    FAILED = "failed"


class AuditLog(Base):
    """Append-only record of every webhook delivery attempt and its outcome"""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(255), nullable=False, index=True)
    event_type = Column(String(255), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    status = Column(String(50), default=AuditStatus.RECEIVED.value, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
