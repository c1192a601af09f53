"""
Snapshot Freezer

Copies live catalog services into quote line items at quote-creation or
package-preload time. The copy is point-in-time: later catalog edits
never reach a frozen line item.
"""

import logging
from decimal import Decimal

from .calculators.pricing import PricingCalculator
from .errors import (
    ConfigurationMissingError,
    NotFrozenWarning,
    PartialFreezeWarning,
    QuoteNotFoundError,
)
from .models import (
    CatalogPackage,
    FreezeResult,
    LineItemsRead,
    LineItemView,
    PricingConfig,
    QuoteLineItem,
    effective_quantity,
)
from .money import quantize_money
from .ports import CatalogLookup, PricingConfigLookup
from .validators import InputValidator

logger = logging.getLogger(__name__)

REASON_LEGACY = 'legacy_item'
REASON_SERVICE_MISSING = 'service_missing'


class SnapshotFreezer:
    """Freezes catalog services into immutable quote line items."""

    def __init__(
        self,
        catalog: CatalogLookup,
        pricing_configs: PricingConfigLookup,
        calculator: PricingCalculator | None = None
    ):
        self.catalog = catalog
        self.pricing_configs = pricing_configs
        self.calculator = calculator or PricingCalculator()
        self.validator = InputValidator()

    def freeze(
        self,
        tenant_id: str,
        requests: list[tuple[str, Decimal]],
        event_duration: Decimal | None = None
    ) -> FreezeResult:
        """
        Produce one frozen line item per (service_id, quantity) pair.

        HOUR-billed services are subtotalled over the event duration.

        Services no longer in the catalog are skipped and reported in a
        PartialFreezeWarning; callers must check result.complete.
        """
        self.validator.validate_quantities(requests)
        config = self.active_config(tenant_id)

        items = []
        missing = []
        for service_id, quantity in requests:
            service = self.catalog.get_service(service_id)
            if service is None:
                missing.append(service_id)
                continue

            unit_price = self.calculator.unit_price(service, config)
            billed = effective_quantity(quantity, service.billing_type, event_duration)
            items.append(QuoteLineItem(
                service_id=service.id,
                quantity=quantity,
                name=service.name,
                unit_price=unit_price,
                cost=service.cost,
                expense=service.expense,
                subtotal=quantize_money(unit_price * billed),
                position=len(items),
                category_id=service.category_id,
                billing_type=service.billing_type,
                frozen=True,
            ))

        warning = None
        if missing:
            warning = PartialFreezeWarning(
                requested=len(requests),
                frozen=len(items),
                missing_service_ids=missing,
            )
            logger.warning(f"Partial freeze for tenant {tenant_id}: {warning.message}")

        return FreezeResult(items=items, warning=warning)

    def freeze_package(
        self,
        tenant_id: str,
        package_id: str,
        event_duration: Decimal | None = None
    ) -> tuple[CatalogPackage, FreezeResult]:
        """Freeze every service of a catalog package (package preload)."""
        package = self.catalog.get_package(package_id)
        if package is None:
            raise QuoteNotFoundError(f"Package not found: {package_id}")
        return package, self.freeze(tenant_id, package.requests(), event_duration)

    def read_line_items(
        self,
        tenant_id: str,
        stored: list[QuoteLineItem],
        event_duration: Decimal | None = None
    ) -> LineItemsRead:
        """
        Read stored line items for display.

        Frozen items are returned verbatim. Legacy items are recomputed
        from the live catalog and flagged frozen=False.
        """
        result = LineItemsRead()
        config = None

        for item in stored:
            if item.is_frozen:
                result.items.append(LineItemView(item=item, frozen=True))
                continue

            service = self.catalog.get_service(item.service_id) if item.service_id else None
            if service is None:
                result.items.append(LineItemView(item=item, frozen=False))
                result.warnings.append(NotFrozenWarning(item.id, item.service_id, REASON_SERVICE_MISSING))
                continue

            # Only look the configuration up when a legacy item needs it
            if config is None:
                config = self.active_config(tenant_id)

            unit_price = self.calculator.unit_price(service, config)
            billed = effective_quantity(item.quantity, service.billing_type, event_duration)
            live = QuoteLineItem(
                service_id=item.service_id,
                quantity=item.quantity,
                name=service.name,
                unit_price=unit_price,
                cost=service.cost,
                expense=service.expense,
                subtotal=quantize_money(unit_price * billed),
                position=item.position,
                category_id=service.category_id,
                billing_type=service.billing_type,
                id=item.id,
                quote_id=item.quote_id,
            )
            result.items.append(LineItemView(item=live, frozen=False))
            result.warnings.append(NotFrozenWarning(item.id, item.service_id, REASON_LEGACY))

        if result.warnings:
            logger.warning(
                f"{len(result.warnings)} line item(s) read without frozen values for tenant {tenant_id}"
            )
        return result

    def active_config(self, tenant_id: str) -> PricingConfig:
        # Looked up on every call so operator changes apply immediately
        config = self.pricing_configs.get_active_pricing_config(tenant_id)
        if config is None:
            raise ConfigurationMissingError(tenant_id)
        return config
