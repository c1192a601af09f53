"""
Margin Analyzer

Negotiation helpers: courtesy impact, margin validation and financial health.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from ..errors import InvalidInputError
from ..models import QuoteLineItem
from ..money import HUNDRED, ZERO, format_money, quantize_money, ratio

LEVEL_ACCEPTABLE = 'acceptable'
LEVEL_LOW = 'low'
LEVEL_CRITICAL = 'critical'

HEALTH_HEALTHY = 'healthy'
HEALTH_WARNING = 'warning'
HEALTH_CRITICAL = 'critical'
HEALTH_DANGER = 'danger'


@dataclass
class CourtesyImpact:
    total_courtesies: Decimal
    utility_impact: Decimal


@dataclass
class MarginValidation:
    is_valid: bool
    level: str
    message: str


@dataclass
class FinancialHealth:
    status: str
    current_margin: Decimal
    rescue_price: Decimal
    missing_difference: Decimal
    message: str


@dataclass
class NegotiationReview:
    """Margin checks of a negotiated price against a quote's frozen costs."""

    negotiated_price: Decimal
    margin_percent: Decimal
    courtesies: CourtesyImpact
    validation: MarginValidation
    health: FinancialHealth
    warnings: list = field(default_factory=list)  # NotFrozenWarning


class MarginAnalyzer:
    """Evaluates how far a negotiated price is from a healthy margin."""

    CRITICAL_MARGIN = Decimal('10')
    TARGET_MARGIN = Decimal('20')
    WARNING_MARGIN = Decimal('15')

    def courtesy_impact(self, items: list[QuoteLineItem], courtesy_ids: set[str]) -> CourtesyImpact:
        """
        Total list value given away as courtesies.

        Cost and expense of a courtesy are still incurred, so the utility
        lost is the full price minus what the item would have cost anyway.
        """
        total = ZERO
        impact = ZERO
        for item in items:
            if item.id not in courtesy_ids:
                continue
            price = item.unit_price * item.quantity
            total += price
            impact -= price - item.cost * item.quantity - item.expense * item.quantity

        return CourtesyImpact(
            total_courtesies=quantize_money(total),
            utility_impact=quantize_money(impact),
        )

    def validate_negotiated_margin(
        self,
        margin_percent: Decimal,
        final_price: Decimal,
        total_cost: Decimal,
        total_expense: Decimal
    ) -> MarginValidation:
        """
        Classify a negotiated margin.

        Priority order:
        1. Below cost + expense (invalid)
        2. Critical (< 10%)
        3. Low (< 20%)
        4. Acceptable
        """
        self._require_non_negative(final_price=final_price, total_cost=total_cost, total_expense=total_expense)
        minimum = total_cost + total_expense

        if final_price < minimum:
            return MarginValidation(
                is_valid=False,
                level=LEVEL_CRITICAL,
                message=f"Price cannot be below {format_money(minimum)} (cost + expense)",
            )

        if margin_percent < self.CRITICAL_MARGIN:
            return MarginValidation(
                is_valid=True,
                level=LEVEL_CRITICAL,
                message=f"Critical margin: {margin_percent:.1f}%. A minimum margin of 10% is recommended.",
            )

        if margin_percent < self.TARGET_MARGIN:
            return MarginValidation(
                is_valid=True,
                level=LEVEL_LOW,
                message=f"Low margin: {margin_percent:.1f}%. A minimum margin of 20% is recommended.",
            )

        return MarginValidation(
            is_valid=True,
            level=LEVEL_ACCEPTABLE,
            message=f"Acceptable margin: {margin_percent:.1f}%",
        )

    def financial_health(
        self,
        cost: Decimal,
        expense: Decimal,
        negotiated_price: Decimal,
        commission: Decimal = ZERO
    ) -> FinancialHealth:
        """
        Net margin after commission and the price needed to reach 20%.

        rescue price solves: price x 0.20 = price x (1 - commission) - costs
        """
        self._require_non_negative(cost=cost, expense=expense, negotiated_price=negotiated_price)
        commission = ratio(commission)
        total_costs = cost + expense
        net = negotiated_price - total_costs - negotiated_price * commission
        margin = net / negotiated_price * HUNDRED if negotiated_price > 0 else ZERO

        denominator = 1 - self.TARGET_MARGIN / HUNDRED - commission
        rescue = total_costs / denominator if denominator > 0 else negotiated_price
        rescue = quantize_money(rescue)
        missing = quantize_money(rescue - negotiated_price)

        if margin >= self.TARGET_MARGIN:
            status = HEALTH_HEALTHY
            message = "Solid margin for the operation."
        elif margin >= self.WARNING_MARGIN:
            status = HEALTH_WARNING
            message = (
                f"Low margin: {margin:.1f}%. {format_money(missing)} short of 20%. "
                f"Consider adjusting to {format_money(rescue)}."
            )
        elif margin >= self.CRITICAL_MARGIN:
            status = HEALTH_CRITICAL
            message = f"Profitability compromised. Minimum recommended price: {format_money(rescue)}."
        else:
            status = HEALTH_DANGER
            message = "Operational risk. The price is below the safety limit."

        return FinancialHealth(
            status=status,
            current_margin=quantize_money(margin),
            rescue_price=rescue,
            missing_difference=missing,
            message=message,
        )

    def review(
        self,
        items: list[QuoteLineItem],
        negotiated_price: Decimal,
        commission: Decimal = ZERO,
        courtesy_ids: set[str] | None = None
    ) -> NegotiationReview:
        """Run every negotiation check over a quote's line items."""
        total_cost = sum((item.cost * item.quantity for item in items), ZERO)
        total_expense = sum((item.expense * item.quantity for item in items), ZERO)

        margin = ZERO
        if negotiated_price > 0:
            margin = (negotiated_price - total_cost - total_expense) / negotiated_price * HUNDRED

        return NegotiationReview(
            negotiated_price=quantize_money(negotiated_price),
            margin_percent=quantize_money(margin),
            courtesies=self.courtesy_impact(items, courtesy_ids or set()),
            validation=self.validate_negotiated_margin(margin, negotiated_price, total_cost, total_expense),
            health=self.financial_health(total_cost, total_expense, negotiated_price, commission),
        )

    @staticmethod
    def _require_non_negative(**values: Decimal) -> None:
        for name, value in values.items():
            if value < 0:
                raise InvalidInputError(f"{name} cannot be negative, got: {value}")
