"""
Payment Resolver

Resolves the final payable total at closing and splits it into
advance and deferred amounts. Never raises: unset inputs are treated
as absent and the corresponding branch is skipped.
"""

from decimal import Decimal

from ..models import (
    ADVANCE_FIXED_AMOUNT,
    ADVANCE_PERCENTAGE,
    CommercialCondition,
    PaymentBreakdown,
    PaymentInput,
)
from ..money import HUNDRED, ZERO, quantize_money

SOURCE_CLOSING_OVERRIDE = 'closing_override'
SOURCE_NEGOTIATED = 'negotiated'
SOURCE_LIST = 'list'


class PaymentResolver:
    """Computes total payable, savings, advance and deferred."""

    def resolve(self, payment: PaymentInput) -> PaymentBreakdown:
        """
        Resolve the payable total.

        Priority order:
        1. Closing-price override (is the total; adjustment is reported)
        2. Negotiated price below list
        3. List - discount - courtesies
        """
        list_price = quantize_money(payment.list_price)
        courtesies = quantize_money(payment.courtesy_total or ZERO)
        bonus = quantize_money(payment.bonus or ZERO)
        discount_percent = self._discount_percent(payment)
        discount = self._discount_amount(payment, list_price, discount_percent)

        closing_adjustment = None
        savings = None

        # Priority 1: Closing override
        if payment.closing_override is not None:
            total = quantize_money(payment.closing_override)
            closing_adjustment = total - (list_price - courtesies - bonus)
            source = SOURCE_CLOSING_OVERRIDE

        # Priority 2: Negotiated price
        elif payment.negotiated_price is not None and 0 < payment.negotiated_price < list_price:
            total = quantize_money(payment.negotiated_price)
            if list_price - total > 0:
                savings = list_price - total
            source = SOURCE_NEGOTIATED

        # Priority 3: List minus adjustments
        else:
            total = list_price - discount - courtesies
            source = SOURCE_LIST

        total = max(ZERO, total)
        advance, clamped = self._advance(total, payment.condition)

        return PaymentBreakdown(
            total=total,
            source=source,
            list_price=list_price,
            discount_percent=discount_percent,
            discount_amount=discount,
            courtesy_total=courtesies,
            bonus=bonus,
            closing_adjustment=closing_adjustment,
            savings=savings,
            advance_type=payment.condition.advance_type if payment.condition else None,
            advance=advance,
            advance_clamped=clamped,
            deferred=total - advance,
            deferred_due_days_before_event=payment.deferred_due_days_before_event,
        )

    def _discount_percent(self, payment: PaymentInput) -> Decimal | None:
        """Explicit percent wins over the condition's percent."""
        if payment.discount_percent is not None and payment.discount_percent > 0:
            return payment.discount_percent
        condition = payment.condition
        if condition is not None and condition.discount_percent is not None and condition.discount_percent > 0:
            return condition.discount_percent
        return None

    def _discount_amount(
        self,
        payment: PaymentInput,
        list_price: Decimal,
        discount_percent: Decimal | None
    ) -> Decimal:
        if discount_percent is not None:
            return quantize_money(list_price * discount_percent / HUNDRED)
        if payment.discounted_price is not None and payment.discounted_price < list_price:
            return quantize_money(list_price - payment.discounted_price)
        return ZERO

    def _advance(self, total: Decimal, condition: CommercialCondition | None) -> tuple[Decimal, bool]:
        """
        Advance owed upfront.

        A fixed amount larger than the total is clamped to the total.
        """
        if condition is None or condition.advance_value is None or condition.advance_value <= 0:
            return ZERO, False

        if condition.advance_type == ADVANCE_PERCENTAGE:
            return quantize_money(total * condition.advance_value / HUNDRED), False

        if condition.advance_type == ADVANCE_FIXED_AMOUNT:
            fixed = quantize_money(condition.advance_value)
            if fixed > total:
                return total, True
            return fixed, False

        return ZERO, False
