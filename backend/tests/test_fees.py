"""Fee calculation tests"""
from decimal import Decimal

import pytest

from payment_webhooks.services.fees import FeeCalculator


@pytest.fixture
def calculator():
    return FeeCalculator()


@pytest.mark.critical
class TestDerivedFields:

    def test_fee_and_net_for_100_50(self, calculator):
        derived = calculator.calculate_derived_fields(Decimal("100.50"))
        assert derived.processing_fee == Decimal("2.01")
        assert derived.net_amount == Decimal("98.49")

    def test_float_input_matches_decimal_input(self, calculator):
        assert calculator.calculate_derived_fields(100.50) == calculator.calculate_derived_fields(Decimal("100.50"))

    def test_half_cent_rounds_up(self, calculator):
        # 0.25 * 2% = 0.005
        assert calculator.calculate_derived_fields(Decimal("0.25")).processing_fee == Decimal("0.01")

    def test_below_half_cent_rounds_down(self, calculator):
        # 0.20 * 2% = 0.004
        derived = calculator.calculate_derived_fields(Decimal("0.20"))
        assert derived.processing_fee == Decimal("0.00")
        assert derived.net_amount == Decimal("0.20")

    @pytest.mark.parametrize("amount", ["0.01", "1", "2500.75", "123.45", "99999999.99"])
    def test_net_plus_fee_equals_amount(self, calculator, amount):
        derived = calculator.calculate_derived_fields(Decimal(amount))
        assert derived.processing_fee + derived.net_amount == Decimal(amount)

    def test_integer_amount(self, calculator):
        derived = calculator.calculate_derived_fields(1000)
        assert derived.processing_fee == Decimal("20.00")
        assert derived.net_amount == Decimal("980.00")

    def test_custom_rate(self):
        derived = FeeCalculator(rate=Decimal("0.10")).calculate_derived_fields(Decimal("50"))
        assert derived.processing_fee == Decimal("5.00")


@pytest.mark.medium
class TestExchangeRate:

    def test_exchange_rate_is_not_computed(self, calculator):
        assert calculator.calculate_exchange_rate("USD", "INR", Decimal("10")) is None
