"""
Input Validation for the Quote Engine

Validates all input data before any calculation begins.
Raises InvalidInputError with clear messages for any constraint violations.
"""

from decimal import Decimal

from .errors import InvalidInputError
from .models import (
    ADVANCE_FIXED_AMOUNT,
    ADVANCE_PERCENTAGE,
    MODE_LIST_SUM,
    MODE_TARGET_TOTAL,
    UTILITY_PRODUCT,
    UTILITY_SERVICE,
    BillableEntry,
    CommercialCondition,
    PaymentInput,
    PricingConfig,
    PricingRequest,
)
from .money import HUNDRED, ratio


class InputValidator:
    """Validates quoting input according to business rules."""

    def validate_pricing(self, request: PricingRequest) -> None:
        """
        Run all pricing validations. Raises InvalidInputError if any check fails.
        """
        self.validate_config(request.config)
        for i, entry in enumerate(request.entries):
            self._validate_entry(entry, i)

        if request.mode not in (MODE_LIST_SUM, MODE_TARGET_TOTAL):
            raise InvalidInputError(
                f"Invalid mode: {request.mode}. Must be '{MODE_LIST_SUM}' or '{MODE_TARGET_TOTAL}'"
            )

        if request.mode == MODE_TARGET_TOTAL:
            if request.target_total is None:
                raise InvalidInputError(f"target_total is required when mode='{MODE_TARGET_TOTAL}'")
            if request.target_total < 0:
                raise InvalidInputError(f"target_total cannot be negative, got: {request.target_total}")

        if request.event_duration is not None and request.event_duration < 0:
            raise InvalidInputError(f"event_duration cannot be negative, got: {request.event_duration}")

    def validate_config(self, config: PricingConfig) -> None:
        """Validate pricing configuration ratios."""
        for name in ("service_margin", "product_margin", "sales_commission", "markup"):
            value = getattr(config, name)
            if value < 0:
                raise InvalidInputError(f"{name} cannot be negative, got: {value}")

        if ratio(config.sales_commission) >= 1:
            raise InvalidInputError(
                f"sales_commission must be below 100%, got: {config.sales_commission}"
            )

    def _validate_entry(self, entry: BillableEntry, index: int) -> None:
        """Validate a single billable entry."""
        label = entry.name or entry.service_id or f"entry {index}"

        if entry.cost < 0:
            raise InvalidInputError(f"cost cannot be negative for {label}, got: {entry.cost}")
        if entry.expense < 0:
            raise InvalidInputError(f"expense cannot be negative for {label}, got: {entry.expense}")
        if entry.quantity < 0:
            raise InvalidInputError(f"quantity cannot be negative for {label}, got: {entry.quantity}")
        if entry.public_price is not None and entry.public_price < 0:
            raise InvalidInputError(
                f"public_price cannot be negative for {label}, got: {entry.public_price}"
            )
        if entry.utility_type not in (UTILITY_SERVICE, UTILITY_PRODUCT):
            raise InvalidInputError(
                f"Invalid utility_type for {label}: {entry.utility_type}. "
                f"Must be '{UTILITY_SERVICE}' or '{UTILITY_PRODUCT}'"
            )

    def validate_quantities(self, requests: list[tuple[str, Decimal]]) -> None:
        """Freeze requests need strictly positive quantities."""
        for service_id, quantity in requests:
            if quantity <= 0:
                raise InvalidInputError(
                    f"quantity must be positive for service {service_id}, got: {quantity}"
                )

    def validate_payment(self, payment: PaymentInput) -> None:
        """Validate closing/payment input."""
        amounts = {
            "list_price": payment.list_price,
            "discounted_price": payment.discounted_price,
            "negotiated_price": payment.negotiated_price,
            "courtesy_total": payment.courtesy_total,
            "bonus": payment.bonus,
            "closing_override": payment.closing_override,
        }
        for name, value in amounts.items():
            if value is not None and value < 0:
                raise InvalidInputError(f"{name} cannot be negative, got: {value}")

        if payment.discount_percent is not None:
            self._validate_percent("discount_percent", payment.discount_percent)

        if payment.deferred_due_days_before_event < 0:
            raise InvalidInputError(
                f"deferred_due_days_before_event cannot be negative, "
                f"got: {payment.deferred_due_days_before_event}"
            )

        if payment.condition is not None:
            self.validate_condition(payment.condition)

    def validate_condition(self, condition: CommercialCondition) -> None:
        """Validate a commercial condition's discount and advance rule."""
        if condition.discount_percent is not None:
            self._validate_percent("discount_percent", condition.discount_percent)

        if (
            condition.active_from is not None
            and condition.active_until is not None
            and condition.active_from > condition.active_until
        ):
            raise InvalidInputError(
                f"active_from ({condition.active_from}) is after active_until ({condition.active_until})"
            )

        if condition.advance_type is None:
            return

        if condition.advance_type not in (ADVANCE_PERCENTAGE, ADVANCE_FIXED_AMOUNT):
            raise InvalidInputError(
                f"Invalid advance_type: {condition.advance_type}. "
                f"Must be '{ADVANCE_PERCENTAGE}' or '{ADVANCE_FIXED_AMOUNT}'"
            )

        if condition.advance_value is None:
            return

        if condition.advance_type == ADVANCE_PERCENTAGE:
            self._validate_percent("advance_value", condition.advance_value)
        elif condition.advance_value < 0:
            raise InvalidInputError(f"advance_value cannot be negative, got: {condition.advance_value}")

    def _validate_percent(self, name: str, value: Decimal) -> None:
        if not (0 <= value <= HUNDRED):
            raise InvalidInputError(f"{name} must be between 0 and 100, got: {value}")
