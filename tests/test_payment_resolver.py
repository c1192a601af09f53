"""
Unit Tests for Payment Resolver

Priority order of the payable total:
1. Closing-price override
2. Negotiated price below list
3. List - discount - courtesies
"""

from decimal import Decimal

import pytest

from quote_engine.calculators.payment import PaymentResolver
from quote_engine.models import CommercialCondition, PaymentInput


def _condition(discount=None, advance_type=None, advance_value=None):
    return CommercialCondition(
        id="cond-1",
        name="Standard",
        discount_percent=Decimal(discount) if discount is not None else None,
        advance_type=advance_type,
        advance_value=Decimal(advance_value) if advance_value is not None else None,
    )


@pytest.fixture
def resolver():
    return PaymentResolver()


class TestListBranch:
    """No override and no usable negotiated price."""

    def test_list_minus_discount_and_courtesies(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            discount_percent=Decimal("10"),
            courtesy_total=Decimal("50"),
        )
        result = resolver.resolve(payment)

        assert result.source == "list"
        assert result.discount_amount == Decimal("100.00")
        assert result.total == Decimal("850.00")
        assert result.advance == Decimal("0")
        assert result.deferred == Decimal("850.00")

    def test_bonus_is_informational(self, resolver):
        payment = PaymentInput(list_price=Decimal("1000"), bonus=Decimal("100"))
        result = resolver.resolve(payment)

        assert result.total == Decimal("1000.00")
        assert result.bonus == Decimal("100.00")

    def test_condition_discount_applies(self, resolver):
        payment = PaymentInput(list_price=Decimal("1000"), condition=_condition(discount="5"))
        result = resolver.resolve(payment)

        assert result.discount_percent == Decimal("5")
        assert result.total == Decimal("950.00")

    def test_explicit_discount_wins_over_condition(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            discount_percent=Decimal("10"),
            condition=_condition(discount="5"),
        )
        assert resolver.resolve(payment).total == Decimal("900.00")

    def test_discounted_price_without_percent(self, resolver):
        payment = PaymentInput(list_price=Decimal("1000"), discounted_price=Decimal("900"))
        result = resolver.resolve(payment)

        assert result.discount_amount == Decimal("100.00")
        assert result.total == Decimal("900.00")

    def test_total_never_negative(self, resolver):
        payment = PaymentInput(list_price=Decimal("100"), courtesy_total=Decimal("150"))
        result = resolver.resolve(payment)

        assert result.total == Decimal("0")
        assert result.deferred == Decimal("0")


class TestNegotiatedBranch:
    """A negotiated price counts only when 0 < negotiated < list."""

    def test_negotiated_below_list(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            negotiated_price=Decimal("800"),
            courtesy_total=Decimal("50"),
        )
        result = resolver.resolve(payment)

        assert result.source == "negotiated"
        assert result.total == Decimal("800.00")
        assert result.savings == Decimal("200.00")

    def test_negotiated_at_or_above_list_is_ignored(self, resolver):
        payment = PaymentInput(list_price=Decimal("1000"), negotiated_price=Decimal("1200"))
        result = resolver.resolve(payment)

        assert result.source == "list"
        assert result.total == Decimal("1000.00")
        assert result.savings is None

    def test_zero_negotiated_is_ignored(self, resolver):
        payment = PaymentInput(list_price=Decimal("1000"), negotiated_price=Decimal("0"))
        assert resolver.resolve(payment).source == "list"


class TestClosingOverride:
    """The override is the total; the adjustment is reported."""

    def test_override_adjustment(self, resolver):
        """820 - (1000 - 100 - 50) = -30"""
        payment = PaymentInput(
            list_price=Decimal("1000"),
            courtesy_total=Decimal("100"),
            bonus=Decimal("50"),
            closing_override=Decimal("820"),
        )
        result = resolver.resolve(payment)

        assert result.source == "closing_override"
        assert result.total == Decimal("820.00")
        assert result.closing_adjustment == Decimal("-30.00")

    def test_override_beats_negotiated(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            negotiated_price=Decimal("700"),
            closing_override=Decimal("750"),
        )
        result = resolver.resolve(payment)

        assert result.total == Decimal("750.00")
        assert result.savings is None


class TestAdvance:
    """Advance and deferred split."""

    def test_percentage_advance(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            condition=_condition(advance_type="percentage", advance_value="30"),
        )
        result = resolver.resolve(payment)

        assert result.advance == Decimal("300.00")
        assert result.deferred == Decimal("700.00")
        assert result.advance_clamped is False

    def test_fixed_advance(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            condition=_condition(advance_type="fixed_amount", advance_value="250"),
        )
        result = resolver.resolve(payment)

        assert result.advance == Decimal("250.00")
        assert result.deferred == Decimal("750.00")

    def test_fixed_advance_clamped_to_total(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1000"),
            courtesy_total=Decimal("150"),
            condition=_condition(advance_type="fixed_amount", advance_value="2000"),
        )
        result = resolver.resolve(payment)

        assert result.advance == Decimal("850.00")
        assert result.advance_clamped is True
        assert result.deferred == Decimal("0")

    def test_advance_plus_deferred_is_total(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1234.565"),
            condition=_condition(advance_type="percentage", advance_value="33.33"),
        )
        result = resolver.resolve(payment)

        assert result.total == Decimal("1234.57")
        assert result.advance == Decimal("411.48")
        assert result.advance + result.deferred == result.total

    @pytest.mark.parametrize("total", ["0", "0.01", "99.99", "1000.03", "1234.565"])
    @pytest.mark.parametrize("percent", ["0", "33.33", "50", "100"])
    def test_split_always_adds_up(self, resolver, total, percent):
        payment = PaymentInput(
            list_price=Decimal(total),
            condition=_condition(advance_type="percentage", advance_value=percent),
        )
        result = resolver.resolve(payment)

        assert result.advance + result.deferred == result.total
        assert result.deferred >= 0

    @pytest.mark.parametrize("advance", ["0", "0.01", "500", "99999"])
    def test_fixed_split_adds_up(self, resolver, advance):
        payment = PaymentInput(
            list_price=Decimal("1000.03"),
            condition=_condition(advance_type="fixed_amount", advance_value=advance),
        )
        result = resolver.resolve(payment)

        assert result.advance + result.deferred == result.total
        assert result.advance <= result.total

    def test_legacy_amount_alias(self, resolver):
        payment = PaymentInput.from_dict({
            "list_price": 1000,
            "condition": {"name": "Legacy", "advance_type": "amount", "advance_value": 200},
        })
        result = resolver.resolve(payment)

        assert result.advance_type == "fixed_amount"
        assert result.advance == Decimal("200.00")

    def test_due_days_carried(self, resolver):
        payment = PaymentInput(list_price=Decimal("100"), deferred_due_days_before_event=5)
        assert resolver.resolve(payment).deferred_due_days_before_event == 5


class TestDeterminism:
    """Same input, same breakdown."""

    def test_repeated_resolution_is_identical(self, resolver):
        payment = PaymentInput(
            list_price=Decimal("1234.565"),
            discount_percent=Decimal("7.5"),
            courtesy_total=Decimal("120"),
            bonus=Decimal("30"),
            condition=_condition(advance_type="percentage", advance_value="33.33"),
        )
        assert resolver.resolve(payment) == resolver.resolve(payment)

    def test_fresh_resolvers_agree(self):
        payment = PaymentInput(
            list_price=Decimal("2000"),
            negotiated_price=Decimal("1850.005"),
            condition=_condition(advance_type="fixed_amount", advance_value="500"),
        )
        assert PaymentResolver().resolve(payment) == PaymentResolver().resolve(payment)

    def test_input_not_mutated(self, resolver):
        payment = PaymentInput(list_price=Decimal("1000"), closing_override=Decimal("900"))
        before = repr(payment)
        resolver.resolve(payment)
        assert repr(payment) == before
