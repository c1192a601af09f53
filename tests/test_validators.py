"""Tests for input validation."""

from datetime import date
from decimal import Decimal

import pytest

from quote_engine.errors import InvalidInputError
from quote_engine.models import CommercialCondition, PaymentInput, PricingConfig
from quote_engine.validators import InputValidator


@pytest.fixture
def validator():
    return InputValidator()


class TestConfigValidation:

    def test_valid_config(self, validator):
        validator.validate_config(PricingConfig(tenant_id="t", service_margin=Decimal("30")))

    def test_negative_margin(self, validator):
        with pytest.raises(InvalidInputError, match="service_margin cannot be negative"):
            validator.validate_config(PricingConfig(tenant_id="t", service_margin=Decimal("-1")))


class TestPaymentValidation:

    def test_valid_payment(self, validator):
        validator.validate_payment(PaymentInput(list_price=Decimal("100"), discount_percent=Decimal("10")))

    def test_negative_override(self, validator):
        with pytest.raises(InvalidInputError, match="closing_override"):
            validator.validate_payment(PaymentInput(list_price=Decimal("100"), closing_override=Decimal("-1")))

    def test_discount_over_100(self, validator):
        with pytest.raises(InvalidInputError, match="between 0 and 100"):
            validator.validate_payment(PaymentInput(list_price=Decimal("100"), discount_percent=Decimal("101")))

    def test_negative_due_days(self, validator):
        with pytest.raises(InvalidInputError, match="deferred_due_days_before_event"):
            validator.validate_payment(PaymentInput(list_price=Decimal("100"), deferred_due_days_before_event=-1))

    def test_invalid_errors_are_value_errors(self, validator):
        with pytest.raises(ValueError):
            validator.validate_payment(PaymentInput(list_price=Decimal("-100")))


class TestConditionValidation:

    def test_unknown_advance_type(self, validator):
        condition = CommercialCondition(id="c", name="c", advance_type="installments")
        with pytest.raises(InvalidInputError, match="Invalid advance_type"):
            validator.validate_condition(condition)

    def test_percentage_advance_over_100(self, validator):
        condition = CommercialCondition(
            id="c", name="c", advance_type="percentage", advance_value=Decimal("120")
        )
        with pytest.raises(InvalidInputError, match="advance_value"):
            validator.validate_condition(condition)

    def test_large_fixed_advance_allowed(self, validator):
        condition = CommercialCondition(
            id="c", name="c", advance_type="fixed_amount", advance_value=Decimal("120000")
        )
        validator.validate_condition(condition)

    def test_inverted_window(self, validator):
        condition = CommercialCondition(
            id="c", name="c", active_from=date(2026, 6, 1), active_until=date(2026, 1, 1)
        )
        with pytest.raises(InvalidInputError, match="active_from"):
            validator.validate_condition(condition)

    def test_activation_window(self):
        condition = CommercialCondition(
            id="c", name="c", active_from=date(2026, 1, 1), active_until=date(2026, 12, 31)
        )
        assert condition.is_active(date(2026, 6, 1)) is True
        assert condition.is_active(date(2027, 1, 1)) is False
