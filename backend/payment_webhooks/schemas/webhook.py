"""Pydantic schemas for payment webhooks"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class Party(BaseModel):
    # Producers may send numeric ids; they are stored as text
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str
    email: str
    country: str


class TransactionData(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    transaction_id: str
    amount: Decimal
    currency: str
    sender: Party
    receiver: Party
    status: str
    payment_method: str
    metadata: Optional[Any] = None  # Opaque to validation


class IncomingEvent(BaseModel):
    """Decoded webhook body. Built only after PayloadValidator accepted it."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    event_id: str
    event_type: str
    timestamp: Optional[Any] = None  # Producer-claimed, informational only
    data: TransactionData


# Responses

def _status_value(status) -> str:
    return getattr(status, "value", status)


def _as_float(value) -> Optional[float]:
    # Numeric columns come back as Decimal; the wire format uses JSON numbers
    return None if value is None else float(value)


class ProcessedTransaction(BaseModel):
    id: str
    transaction_id: str
    status: str
    amount: float
    currency: str
    processing_fee: Optional[float] = None
    net_amount: Optional[float] = None

    @classmethod
    def from_transaction(cls, transaction) -> "ProcessedTransaction":
        return cls(
            id=transaction.id,
            transaction_id=transaction.transaction_id,
            status=_status_value(transaction.status),
            amount=float(transaction.amount),
            currency=transaction.currency,
            processing_fee=_as_float(transaction.processing_fee),
            net_amount=_as_float(transaction.net_amount),
        )


class WebhookSuccessResponse(BaseModel):
    success: bool = True
    message: str = "Webhook processed successfully"
    data: ProcessedTransaction


class ExistingTransaction(BaseModel):
    id: str
    transaction_id: str
    status: str
    processed_at: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, transaction) -> "ExistingTransaction":
        return cls(
            id=transaction.id,
            transaction_id=transaction.transaction_id,
            status=_status_value(transaction.status),
            processed_at=transaction.processed_at,
        )


class DuplicateResponse(BaseModel):
    error: str = "Conflict"
    message: str = "Transaction already processed"
    data: ExistingTransaction


class ValidationErrorResponse(BaseModel):
    error: str = "Validation Error"
    message: str
    field: str


class ErrorResponse(BaseModel):
    error: str
    message: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: datetime
