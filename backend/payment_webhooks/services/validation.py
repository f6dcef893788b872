"""Structural and semantic validation of decoded webhook payloads.

Checks run in a fixed order and stop at the first violation, so a given payload
always reports the same field.
"""
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Tuple

from payment_webhooks.models.transaction import TransactionStatus

VALID_CURRENCIES = ("USD", "EUR", "GBP", "INR", "JPY")
VALID_STATUSES = tuple(status.value for status in TransactionStatus)
MAX_DECIMAL_PLACES = 2
# Column limits: String(255) text, Numeric(10, 2) money
MAX_TEXT_LENGTH = 255
MAX_AMOUNT = Decimal("99999999.99")

_COUNTRY_RE = re.compile(r"[A-Z]{2}")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

# (field tag, path into the payload)
REQUIRED_FIELDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("event_id", ("event_id",)),
    ("event_type", ("event_type",)),
    ("data.transaction_id", ("data", "transaction_id")),
    ("data.amount", ("data", "amount")),
    ("data.currency", ("data", "currency")),
    ("data.sender.id", ("data", "sender", "id")),
    ("data.sender.name", ("data", "sender", "name")),
    ("data.sender.email", ("data", "sender", "email")),
    ("data.sender.country", ("data", "sender", "country")),
    ("data.receiver.id", ("data", "receiver", "id")),
    ("data.receiver.name", ("data", "receiver", "name")),
    ("data.receiver.email", ("data", "receiver", "email")),
    ("data.receiver.country", ("data", "receiver", "country")),
    ("data.status", ("data", "status")),
    ("data.payment_method", ("data", "payment_method")),
)

_NUMERIC_FIELDS = {"data.amount"}

# Type-checked by their own rule later on; the presence step leaves them alone
_RULE_CHECKED_FIELDS = {
    "data.currency", "data.status",
    "data.sender.country", "data.receiver.country",
    "data.sender.email", "data.receiver.email",
}

_SCALAR_TYPES = (str, int, float, Decimal)


class ValidationFailure(Exception):
    """Payload rejected; `field` names the offending field"""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def _lookup(payload: Any, path: Tuple[str, ...]) -> Any:
    value = payload
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def as_decimal(amount: Any) -> Decimal:
    """Exact decimal for a JSON number, using its shortest textual form for floats"""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(repr(amount))
    return Decimal(amount)


class PayloadValidator:
    """Fail-fast validator for incoming payment events"""

    valid_currencies = VALID_CURRENCIES
    valid_statuses = VALID_STATUSES

    def validate(self, payload: Dict[str, Any]) -> None:
        """Validate the whole payload, raising ValidationFailure on the first violated rule"""
        if not isinstance(payload, dict):
            raise ValidationFailure("body", "Request body must be a JSON object")

        self.validate_required(payload)

        data = payload["data"]
        self.validate_amount(data["amount"])
        self.validate_currency(data["currency"])
        self.validate_status(data["status"])
        self.validate_country(data["sender"]["country"], "sender.country")
        self.validate_country(data["receiver"]["country"], "receiver.country")
        self.validate_email(data["sender"]["email"], "sender.email")
        self.validate_email(data["receiver"]["email"], "receiver.email")

    def validate_required(self, payload: Dict[str, Any]) -> None:
        for field, path in REQUIRED_FIELDS:
            value = _lookup(payload, path)
            if value is None or value == "":
                raise ValidationFailure(field, f"{field} is required")
            if field in _NUMERIC_FIELDS:
                continue

            is_scalar = isinstance(value, _SCALAR_TYPES) and not isinstance(value, bool)
            if not is_scalar:
                if field in _RULE_CHECKED_FIELDS:
                    continue
                raise ValidationFailure(field, f"{field} must be a string or number")
            # Numeric identifiers are stored as their text form
            if len(str(value)) > MAX_TEXT_LENGTH:
                raise ValidationFailure(field, f"{field} cannot be longer than {MAX_TEXT_LENGTH} characters")

    def validate_amount(self, amount: Any) -> None:
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
            raise ValidationFailure("amount", "Amount must be a valid number")

        try:
            value = as_decimal(amount)
        except (InvalidOperation, ValueError):
            raise ValidationFailure("amount", "Amount must be a valid number")
        if (isinstance(amount, float) and not math.isfinite(amount)) or not value.is_finite():
            raise ValidationFailure("amount", "Amount must be a valid number")

        if value <= 0:
            raise ValidationFailure("amount", "Amount must be a positive number")

        exponent = value.normalize().as_tuple().exponent
        if -exponent > MAX_DECIMAL_PLACES:
            raise ValidationFailure(
                "amount",
                f"Amount cannot have more than {MAX_DECIMAL_PLACES} decimal places"
            )

        if value > MAX_AMOUNT:
            raise ValidationFailure("amount", f"Amount cannot exceed {MAX_AMOUNT}")

    def validate_currency(self, currency: Any) -> None:
        if not currency or not isinstance(currency, str):
            raise ValidationFailure("currency", "Currency is required")

        if not currency.isascii() or currency.upper() not in self.valid_currencies:
            raise ValidationFailure(
                "currency",
                f"Currency must be a valid ISO code. Supported: {', '.join(self.valid_currencies)}"
            )

    def validate_status(self, status: Any) -> None:
        if not status or not isinstance(status, str):
            raise ValidationFailure("status", "Status is required")

        if status not in self.valid_statuses:
            raise ValidationFailure("status", f"Status must be one of: {', '.join(self.valid_statuses)}")

    def validate_country(self, country: Any, field: str) -> None:
        if not country or not isinstance(country, str):
            raise ValidationFailure(field, "Country code is required")

        # Only ASCII: str.upper() maps some letters to two (e.g. "ß" -> "SS")
        if not country.isascii() or not _COUNTRY_RE.fullmatch(country.upper()):
            raise ValidationFailure(
                field,
                f"Country code must be 2-letter ISO code (e.g., US, IN, GB). Received: {country}"
            )

    def validate_email(self, email: Any, field: str) -> None:
        if not email or not isinstance(email, str):
            raise ValidationFailure(field, f"{field} is required")

        if not _EMAIL_RE.fullmatch(email):
            raise ValidationFailure(field, f"{field} must be a valid email address")

