"""Storage interface consumed by the ingestion pipeline"""
import logging
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payment_webhooks.models.audit_log import AuditLog
from payment_webhooks.models.transaction import Transaction

logger = logging.getLogger(__name__)


class UniquenessViolation(Exception):
    """Insert clashed with the unique event_id / transaction_id constraints"""


class TransactionStore(Protocol):
    def find_transaction_by_event_id(self, event_id: str) -> Optional[Transaction]: ...

    def find_transaction_by_transaction_id(self, transaction_id: str) -> Optional[Transaction]: ...

    def insert_transaction(self, transaction: Transaction) -> Transaction: ...

    def insert_audit_log(self, entry: AuditLog) -> None: ...


class SqlAlchemyTransactionStore:
    """TransactionStore backed by a request-scoped SQLAlchemy session.

    Every write commits on its own so an audit entry never rides on (or is lost
    with) the transaction insert.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_transaction_by_event_id(self, event_id: str) -> Optional[Transaction]:
        return self.db.query(Transaction).filter(Transaction.event_id == event_id).first()

    def find_transaction_by_transaction_id(self, transaction_id: str) -> Optional[Transaction]:
        return self.db.query(Transaction).filter(Transaction.transaction_id == transaction_id).first()

    def insert_transaction(self, transaction: Transaction) -> Transaction:
        """Insert a transaction, raising UniquenessViolation on an id clash.

        Any other database error is rolled back and re-raised unchanged.
        """
        self.db.add(transaction)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(
                f"Unique constraint rejected transaction {transaction.transaction_id} "
                f"(event {transaction.event_id})"
            )
            raise UniquenessViolation(str(e.orig)) from e
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(transaction)
        return transaction

    def insert_audit_log(self, entry: AuditLog) -> None:
        self.db.add(entry)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
