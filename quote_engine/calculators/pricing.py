"""
Pricing Calculator

Prices a bundle of billable entries under a tenant's pricing configuration.
Pure and deterministic: safe to re-run for display at any time.
"""

from decimal import Decimal

from ..models import (
    MODE_TARGET_TOTAL,
    UTILITY_PRODUCT,
    BillableEntry,
    CatalogService,
    EntryPricing,
    PricingConfig,
    PricingRequest,
    PricingResult,
    UnitPricing,
)
from ..money import HUNDRED, ZERO, quantize_money, ratio
from ..validators import InputValidator


class PricingCalculator:
    """Computes system price, sale price and profit for a bundle."""

    def __init__(self):
        self.validator = InputValidator()

    def calculate(self, request: PricingRequest) -> PricingResult:
        """
        Price all entries and aggregate.

        Sale price is the greater of:
        1. System price (costs + utility + commission + markup)
        2. Target price (sum of list prices, or the supplied target total)
        """
        self.validator.validate_pricing(request)
        config = request.config

        priced = [
            self._price_entry(entry, config, request.event_duration)
            for entry in request.entries
        ]

        total_cost = sum((p.entry.cost * p.effective_quantity for p in priced), ZERO)
        total_expense = sum((p.entry.expense * p.effective_quantity for p in priced), ZERO)
        total_utility = sum((p.unit.base_utility * p.effective_quantity for p in priced), ZERO)
        total_commission = sum((p.unit.commission_amount * p.effective_quantity for p in priced), ZERO)
        total_markup = sum((p.unit.markup_amount * p.effective_quantity for p in priced), ZERO)
        system_price = quantize_money(sum((p.system_total for p in priced), ZERO))
        list_price = quantize_money(sum((p.list_total for p in priced), ZERO))

        if request.mode == MODE_TARGET_TOTAL:
            target_price = quantize_money(request.target_total)
        else:
            target_price = list_price

        sale_price = max(system_price, target_price)
        net_profit = quantize_money(sale_price - total_cost - total_expense)

        return PricingResult(
            total_cost=quantize_money(total_cost),
            total_expense=quantize_money(total_expense),
            total_base_utility=quantize_money(total_utility),
            total_commission=quantize_money(total_commission),
            total_markup=quantize_money(total_markup),
            system_price=system_price,
            list_price=list_price,
            target_price=target_price,
            sale_price=sale_price,
            net_profit=net_profit,
            margin_percent=self._margin_percent(net_profit, sale_price),
            mode=request.mode,
            entries=priced,
        )

    def unit_price(self, service: CatalogService, config: PricingConfig) -> Decimal:
        """
        Price of one unit of a catalog service.

        The public price wins when the catalog sets one; otherwise the
        system price is derived from the pricing configuration.
        """
        if service.public_price is not None and service.public_price > 0:
            return quantize_money(service.public_price)
        unit = self.price_unit(service.cost, service.expense, service.utility_type, config)
        return quantize_money(unit.system_price)

    def price_unit(
        self,
        cost: Decimal,
        expense: Decimal,
        utility_type: str,
        config: PricingConfig
    ) -> UnitPricing:
        """
        Build up the price of a single unit.

        base_cost    = cost + expense
        base_utility = base_cost x margin(utility_type)
        subtotal     = base_cost + base_utility
        price_base   = subtotal / (1 - commission)
        markup       = price_base x markup
        system_price = price_base + markup
        """
        base_cost = cost + expense
        margin = ratio(config.product_margin if utility_type == UTILITY_PRODUCT else config.service_margin)
        base_utility = base_cost * margin
        subtotal = base_cost + base_utility

        commission = ratio(config.sales_commission)
        price_base = subtotal / (1 - commission)
        markup_amount = price_base * ratio(config.markup)

        return UnitPricing(
            base_cost=base_cost,
            base_utility=base_utility,
            subtotal=subtotal,
            price_base=price_base,
            commission_amount=price_base - subtotal,
            markup_amount=markup_amount,
            system_price=price_base + markup_amount,
        )

    def _price_entry(
        self,
        entry: BillableEntry,
        config: PricingConfig,
        event_duration: Decimal | None
    ) -> EntryPricing:
        unit = self.price_unit(entry.cost, entry.expense, entry.utility_type, config)
        qty = entry.effective_quantity(event_duration)
        system_total = unit.system_price * qty

        # Entries without a list price fall back to their system price
        if entry.public_price is not None:
            list_total = entry.public_price * qty
        else:
            list_total = system_total

        return EntryPricing(
            entry=entry,
            unit=unit,
            effective_quantity=qty,
            system_total=system_total,
            list_total=list_total,
        )

    @staticmethod
    def _margin_percent(net_profit: Decimal, sale_price: Decimal) -> Decimal:
        if sale_price <= 0:
            return ZERO
        return quantize_money(net_profit / sale_price * HUNDRED)
