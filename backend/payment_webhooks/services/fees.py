"""Derived monetary fields for processed transactions"""
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional, Union

from payment_webhooks.services.validation import as_decimal

PROCESSING_FEE_RATE = Decimal("0.02")  # 2%
CENT = Decimal("0.01")


class DerivedFields(NamedTuple):
    processing_fee: Decimal
    net_amount: Decimal


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class FeeCalculator:
    """Computes processing fee and net amount from an already validated amount"""

    def __init__(self, rate: Decimal = PROCESSING_FEE_RATE):
        self.rate = rate

    def calculate_derived_fields(self, amount: Union[Decimal, int, float]) -> DerivedFields:
        """Fee is rounded to cents first; the net amount is derived from the rounded fee.

        >>> FeeCalculator().calculate_derived_fields(Decimal("100.50"))
        DerivedFields(processing_fee=Decimal('2.01'), net_amount=Decimal('98.49'))
        """
        amount = as_decimal(amount)

        processing_fee = _to_cents(amount * self.rate)
        net_amount = _to_cents(amount - processing_fee)
        return DerivedFields(processing_fee=processing_fee, net_amount=net_amount)

    def calculate_exchange_rate(self, from_currency: str, to_currency: str, amount: Decimal) -> Optional[Decimal]:
        # Currency conversion is not supported; the column stays null
        return None
