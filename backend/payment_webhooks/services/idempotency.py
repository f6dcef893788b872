"""Idempotency guard over the transaction store.

The pre-insert lookup only saves work. Two concurrent deliveries of the same
event can both pass it; the unique constraints on event_id and transaction_id
decide the winner, and the store reports the loser as UniquenessViolation,
which the pipeline turns into the same duplicate outcome.
"""
import logging
from typing import Optional

from payment_webhooks.db.store import TransactionStore
from payment_webhooks.models.transaction import Transaction

logger = logging.getLogger(__name__)


class DuplicateTransactionError(Exception):
    """Event or transaction already processed; carries the stored record"""

    def __init__(self, existing_transaction: Transaction):
        super().__init__("Transaction already processed")
        self.existing_transaction = existing_transaction


class IdempotencyGuard:
    def __init__(self, store: TransactionStore):
        self.store = store

    def find_existing(self, event_id: str, transaction_id: str) -> Optional[Transaction]:
        """Prior record for either identifier; an event_id match takes precedence"""
        existing = self.store.find_transaction_by_event_id(event_id)
        if existing is None:
            existing = self.store.find_transaction_by_transaction_id(transaction_id)
        return existing

    def check_duplicate(self, event_id: str, transaction_id: str) -> None:
        """Raise DuplicateTransactionError if either identifier was already processed"""
        existing = self.find_existing(event_id, transaction_id)
        if existing is not None:
            logger.info(
                f"Duplicate webhook: event {event_id} / transaction {transaction_id} "
                f"already stored as {existing.id}"
            )
            raise DuplicateTransactionError(existing)
