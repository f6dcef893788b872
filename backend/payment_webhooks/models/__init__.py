"""SQLAlchemy models package - imports all models so they register with Base.metadata"""
from payment_webhooks.models.base import Base
from payment_webhooks.models.transaction import Transaction, TransactionStatus
from payment_webhooks.models.audit_log import AuditLog, AuditStatus

# Export all for convenience
__all__ = ["Base", "Transaction", "TransactionStatus", "AuditLog", "AuditStatus"]
