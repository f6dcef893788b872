"""Transaction model"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Numeric, JSON, DateTime, Enum
from payment_webhooks.models.base import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow():
    return datetime.now(timezone.utc)


class Transaction(Base):
    """Processed payment transaction (one row per unique event/transaction id)"""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(255), unique=True, nullable=False, index=True)
    transaction_id = Column(String(255), unique=True, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    sender_id = Column(String(255), nullable=False)
    sender_name = Column(String(255), nullable=False)
    sender_email = Column(String(255), nullable=False)
    sender_country = Column(String(2), nullable=False)

    receiver_id = Column(String(255), nullable=False)
    receiver_name = Column(String(255), nullable=False)
    receiver_email = Column(String(255), nullable=False)
    receiver_country = Column(String(2), nullable=False)

    status = Column(
        Enum(
            TransactionStatus,
            name="transaction_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_method = Column(String(255), nullable=False)

    # Derived fields
    processing_fee = Column(Numeric(10, 2), nullable=True)
    net_amount = Column(Numeric(10, 2), nullable=True)
    exchange_rate = Column(Numeric(10, 6), nullable=True)  # Reserved, never computed

    # "metadata" is reserved on declarative classes
    transaction_metadata = Column("metadata", JSON, nullable=True)

    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Transaction {self.transaction_id} event={self.event_id} status={self.status}>"
