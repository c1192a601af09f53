"""
Quote Processor - Main Orchestrator

Coordinates pricing, freezing, promise-state resolution and closing.
Pure calculations run directly; store access goes through the retry policy.
"""

import logging
import time
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict

from .calculators import MarginAnalyzer, PaymentResolver, PricingCalculator
from .calculators.margin import NegotiationReview
from .errors import InvalidInputError, QuoteEngineError, QuoteNotFoundError
from .models import (
    BillableEntry,
    ClosingResult,
    CommercialCondition,
    Contact,
    FreezeResult,
    LineItemsRead,
    PaymentBreakdown,
    PaymentInput,
    PipelineStage,
    PricingRequest,
    PricingResult,
    Promise,
    Quote,
    QuoteCreation,
    QuoteLineItem,
    QuoteView,
    parse_date,
)
from .money import ZERO, optional_decimal, quantize_money
from .output import OutputBuilder
from .ports import CatalogLookup, ConditionLookup, PricingConfigLookup, QuoteStore, ReferrerDirectory
from .promise_state import PromiseStateResolver, PromiseStateView
from .referrers import ReferrerResolver
from .retry import RetryPolicy, call_with_retry
from .snapshot import SnapshotFreezer
from .statuses import CLOSING, NEGOTIATION, PENDING, normalize_status
from .validators import InputValidator

logger = logging.getLogger(__name__)


class QuoteProcessor:
    """
    Main orchestrator for quoting.

    Quote creation pipeline:
    1. Validate requests
    2. Freeze catalog services (needs the active pricing configuration)
    3. Compute list price from frozen subtotals
    4. Persist header + line items in one transaction (retried on transient errors)

    Closing pipeline:
    1. Load quote and its commercial condition (frozen snapshot first)
    2. Validate adjustments
    3. Resolve payable total and advance/deferred split
    4. Persist totals and condition snapshot in one transaction
    """

    def __init__(
        self,
        catalog: CatalogLookup | None = None,
        pricing_configs: PricingConfigLookup | None = None,
        store: QuoteStore | None = None,
        conditions: ConditionLookup | None = None,
        directory: ReferrerDirectory | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.catalog = catalog
        self.pricing_configs = pricing_configs
        self.store = store
        self.conditions = conditions
        self.retry_policy = retry_policy or RetryPolicy.from_env()
        self.sleep = sleep

        self.validator = InputValidator()
        self.pricing_calculator = PricingCalculator()
        self.payment_resolver = PaymentResolver()
        self.margin_analyzer = MarginAnalyzer()
        self.state_resolver = PromiseStateResolver(
            referrer_resolver=ReferrerResolver(directory) if directory is not None else None
        )
        self.output_builder = OutputBuilder()

        self.freezer = None
        if catalog is not None and pricing_configs is not None:
            self.freezer = SnapshotFreezer(catalog, pricing_configs, self.pricing_calculator)

    # -------------------------------------------------------------------------
    # Pure calculations
    # -------------------------------------------------------------------------

    def calculate_pricing(self, request: PricingRequest) -> PricingResult:
        return self.pricing_calculator.calculate(request)

    def resolve_payment(self, payment: PaymentInput) -> PaymentBreakdown:
        self.validator.validate_payment(payment)
        return self.payment_resolver.resolve(payment)

    def resolve_promise_state(
        self,
        promise: Promise,
        stage: PipelineStage | None,
        quotes: list[Quote] | None = None,
        contact: Contact | None = None
    ) -> PromiseStateView:
        """
        Resolve the lifecycle state of a promise.

        Quotes are read fresh from the store when not supplied; the
        result is never cached.
        """
        if quotes is None:
            store = self._require(self.store, "quote store")
            quotes = self._with_retry(store.list_quotes_for_promise, promise.id)
        return self.state_resolver.resolve(promise, stage, quotes, contact)

    # -------------------------------------------------------------------------
    # Quote lifecycle
    # -------------------------------------------------------------------------

    def create_quote(
        self,
        tenant_id: str,
        promise_id: str | None,
        name: str,
        requests: list[tuple[str, Decimal]],
        negotiated_price: Decimal | None = None,
        condition_id: str | None = None,
        event_duration: Decimal | None = None
    ) -> QuoteCreation:
        """Freeze the requested services and persist the quote atomically."""
        freezer = self._require(self.freezer, "catalog and pricing configuration")
        self._require(self.store, "quote store")

        frozen = freezer.freeze(tenant_id, requests, event_duration)
        header = Quote(
            id=None,
            tenant_id=tenant_id,
            promise_id=promise_id,
            name=name,
            status=PENDING,
            negotiated_price=negotiated_price,
            condition_id=condition_id,
        )
        return self._persist_quote(header, frozen)

    def create_quote_from_package(
        self,
        tenant_id: str,
        promise_id: str | None,
        package_id: str,
        name: str | None = None,
        event_duration: Decimal | None = None
    ) -> QuoteCreation:
        """Clone a catalog package into a new quote."""
        freezer = self._require(self.freezer, "catalog and pricing configuration")
        self._require(self.store, "quote store")

        package, frozen = freezer.freeze_package(tenant_id, package_id, event_duration)
        header = Quote(
            id=None,
            tenant_id=tenant_id,
            promise_id=promise_id,
            name=name or package.name,
            status=PENDING,
        )
        return self._persist_quote(header, frozen)

    def get_quote_view(self, tenant_id: str, quote_id: str, event_duration: Decimal | None = None) -> QuoteView:
        """
        Read a quote back with its line items and display pricing.

        Frozen items are always returned. Pricing is left as None when
        the tenant no longer has an active configuration.
        """
        quote = self._load_quote(tenant_id, quote_id)
        read = self._read_items(tenant_id, quote_id, event_duration)

        config = self.pricing_configs.get_active_pricing_config(tenant_id)
        if config is None:
            logger.warning(f"Quote {quote_id} read without pricing: no active configuration for {tenant_id}")
            return QuoteView(quote=quote, line_items=read)

        entries = [
            BillableEntry(
                cost=view.item.cost,
                expense=view.item.expense,
                quantity=view.item.quantity,
                public_price=view.item.unit_price,
                billing_type=view.item.billing_type,
                name=view.item.name,
                service_id=view.item.service_id,
            )
            for view in read.items
        ]
        pricing = self.pricing_calculator.calculate(
            PricingRequest(entries=entries, config=config, event_duration=event_duration)
        )
        return QuoteView(quote=quote, line_items=read, pricing=pricing)

    def review_negotiation(
        self,
        tenant_id: str,
        quote_id: str,
        negotiated_price: Decimal | None = None,
        courtesy_item_ids: set[str] | None = None
    ) -> NegotiationReview:
        """
        Check a negotiated price against the quote's frozen costs.

        Uses the price stored on the quote when none is given. Falls back
        to the list price for quotes that were never negotiated. Legacy
        items are costed from the live catalog and reported in warnings.
        """
        freezer = self._require(self.freezer, "catalog and pricing configuration")
        quote = self._load_quote(tenant_id, quote_id)
        read = self._read_items(tenant_id, quote_id)
        config = freezer.active_config(tenant_id)

        price = negotiated_price
        if price is None:
            price = quote.negotiated_price if quote.negotiated_price is not None else quote.list_price

        items = [view.item for view in read.items]
        review = self.margin_analyzer.review(items, price, config.sales_commission, courtesy_item_ids)
        review.warnings = read.warnings
        if not review.validation.is_valid:
            logger.warning(f"Negotiated price for quote {quote_id} is below cost: {review.validation.message}")
        return review

    def close_quote(
        self,
        tenant_id: str,
        quote_id: str,
        courtesy_total: Decimal | None = None,
        bonus: Decimal | None = None,
        closing_override: Decimal | None = None,
        discount_percent: Decimal | None = None,
        courtesy_item_ids: set[str] | None = None,
        on_date: date | None = None
    ) -> ClosingResult:
        """
        Resolve the final payable amount and persist it on the quote.

        When courtesy_item_ids is given without a courtesy_total, the
        courtesy total is the list value of those line items.
        """
        store = self._require(self.store, "quote store")
        quote = self._load_quote(tenant_id, quote_id)
        condition = self._condition_for(quote, on_date or date.today())

        warnings = []
        if courtesy_total is None and courtesy_item_ids:
            read = self._read_items(tenant_id, quote_id)
            items = [view.item for view in read.items]
            courtesy_total = self.margin_analyzer.courtesy_impact(items, courtesy_item_ids).total_courtesies
            warnings = read.warnings

        payment = PaymentInput(
            list_price=quote.list_price,
            discount_percent=discount_percent,
            negotiated_price=quote.negotiated_price,
            courtesy_total=courtesy_total,
            bonus=bonus,
            closing_override=closing_override,
            condition=condition,
        )
        breakdown = self.resolve_payment(payment)
        if breakdown.advance_clamped:
            logger.warning(f"Fixed advance exceeds total for quote {quote_id}; limited to {breakdown.total}")

        status = quote.status
        if normalize_status(status) in (PENDING, NEGOTIATION):
            status = CLOSING

        updated = replace(
            quote,
            status=status,
            condition_snapshot=condition,
            final_total=breakdown.total,
            advance=breakdown.advance,
            deferred=breakdown.deferred,
        )

        def persist() -> Quote:
            with store.transaction():
                return store.update_quote(updated)

        saved = self._with_retry(persist)
        logger.info(f"Quote closed: {quote_id} total {breakdown.total} ({breakdown.source})")
        return ClosingResult(quote=saved, payment=breakdown, warnings=warnings)

    # -------------------------------------------------------------------------
    # Dict-based API
    # -------------------------------------------------------------------------

    def calculate_pricing_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.calculate_pricing(PricingRequest.from_dict(data))
        return self.output_builder.build_pricing(result)

    def resolve_payment_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.resolve_payment(PaymentInput.from_dict(data))
        return self.output_builder.build_payment(result)

    def resolve_promise_state_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Resolve state from a payload carrying the promise, its stage,
        its quotes and optionally its contact.
        """
        promise = Promise.from_dict(data["promise"])
        stage = PipelineStage.from_dict(data["stage"]) if data.get("stage") else None
        quotes = None
        if "quotes" in data:
            quotes = [Quote.from_dict(q) for q in data["quotes"] or []]
        elif self.store is None:
            raise InvalidInputError("quotes is required when no quote store is configured")
        contact = Contact.from_dict(data["contact"]) if data.get("contact") else None
        view = self.resolve_promise_state(promise, stage, quotes, contact)
        return self.output_builder.build_promise_state(view)

    def create_quote_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        requests = [
            (item["service_id"], optional_decimal(item.get("quantity", 1)))
            for item in data.get("items", [])
        ]
        creation = self.create_quote(
            tenant_id=data["tenant_id"],
            promise_id=data.get("promise_id"),
            name=data.get("name", ""),
            requests=requests,
            negotiated_price=optional_decimal(data.get("negotiated_price")),
            condition_id=data.get("condition_id"),
            event_duration=optional_decimal(data.get("event_duration")),
        )
        return self.output_builder.build_quote_creation(creation)

    def close_quote_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.close_quote(
            tenant_id=data["tenant_id"],
            quote_id=data["quote_id"],
            courtesy_total=optional_decimal(data.get("courtesy_total")),
            bonus=optional_decimal(data.get("bonus")),
            closing_override=optional_decimal(data.get("closing_override")),
            discount_percent=optional_decimal(data.get("discount_percent")),
            courtesy_item_ids=set(data.get("courtesy_item_ids") or []),
            on_date=parse_date(data.get("on_date")),
        )
        return self.output_builder.build_closing(result)

    def get_quote_view_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        view = self.get_quote_view(
            data["tenant_id"],
            data["quote_id"],
            event_duration=optional_decimal(data.get("event_duration")),
        )
        return self.output_builder.build_quote_view(view)

    def review_negotiation_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        review = self.review_negotiation(
            data["tenant_id"],
            data["quote_id"],
            negotiated_price=optional_decimal(data.get("negotiated_price")),
            courtesy_item_ids=set(data.get("courtesy_item_ids") or []),
        )
        return self.output_builder.build_negotiation(review)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _condition_for(self, quote: Quote, on_date: date) -> CommercialCondition | None:
        """
        Frozen snapshot first; otherwise the live condition, which is
        then frozen onto the quote at closing.
        """
        if quote.condition_snapshot is not None:
            return quote.condition_snapshot
        if not quote.condition_id or self.conditions is None:
            return None

        condition = self._with_retry(self.conditions.get_condition, quote.condition_id)
        if condition is None:
            logger.warning(f"Commercial condition {quote.condition_id} not found for quote {quote.id}")
            return None
        if not condition.is_active(on_date):
            logger.warning(f"Commercial condition {condition.id} is outside its activation window on {on_date}")

        self.validator.validate_condition(condition)
        return replace(condition)

    def _persist_quote(self, header: Quote, frozen: FreezeResult) -> QuoteCreation:
        """Write the header and its line items in one transaction."""
        store = self.store
        header.list_price = quantize_money(sum((item.subtotal for item in frozen.items), ZERO))

        def persist() -> tuple[Quote, list[QuoteLineItem]]:
            with store.transaction():
                quote = store.create_quote(header)
                items = store.add_line_items(quote.id, frozen.items)
            return quote, items

        quote, items = self._with_retry(persist)
        logger.info(f"Quote created: {quote.id} ({len(items)} items, list price {quote.list_price})")
        return QuoteCreation(quote=quote, items=items, warning=frozen.warning)

    def _load_quote(self, tenant_id: str, quote_id: str) -> Quote:
        store = self._require(self.store, "quote store")
        quote = self._with_retry(store.get_quote, quote_id)
        # Another tenant's quote is reported as missing
        if quote is None or quote.tenant_id != tenant_id:
            raise QuoteNotFoundError(f"Quote not found: {quote_id}")
        return quote

    def _read_items(self, tenant_id: str, quote_id: str, event_duration: Decimal | None = None) -> LineItemsRead:
        """Stored line items through the freezer's read path (legacy items recomputed)."""
        freezer = self._require(self.freezer, "catalog and pricing configuration")
        stored = self._with_retry(self.store.list_line_items, quote_id)
        return freezer.read_line_items(tenant_id, stored, event_duration)

    def _with_retry(self, func: Callable, *args):
        return call_with_retry(func, self.retry_policy, *args, sleep=self.sleep)

    @staticmethod
    def _require(collaborator, name: str):
        if collaborator is None:
            raise QuoteEngineError(f"QuoteProcessor was created without a {name}")
        return collaborator


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def calculate_pricing_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Price a bundle from a Python dict and return a Python dict."""
    return QuoteProcessor().calculate_pricing_from_dict(input_data)


def resolve_payment_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve a payment from a Python dict and return a Python dict."""
    return QuoteProcessor().resolve_payment_from_dict(input_data)
