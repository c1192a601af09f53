"""
In-Memory Adapters

Dictionary-backed implementations of the collaborator interfaces, used
for local runs and tests. The quote store supports all-or-nothing
transactions so a quote header is never left without its line items.
"""

import copy
import itertools
from contextlib import contextmanager
from dataclasses import replace

from .errors import QuoteNotFoundError
from .models import (
    CatalogPackage,
    CatalogService,
    CommercialCondition,
    PricingConfig,
    Quote,
    QuoteLineItem,
)


class InMemoryCatalog:
    """Live catalog. Services can be edited or removed at any time."""

    def __init__(self, services: list[CatalogService] | None = None, packages: list[CatalogPackage] | None = None):
        self.services = {s.id: s for s in services or []}
        self.packages = {p.id: p for p in packages or []}

    def get_service(self, service_id: str) -> CatalogService | None:
        return self.services.get(service_id)

    def get_package(self, package_id: str) -> CatalogPackage | None:
        return self.packages.get(package_id)

    def upsert_service(self, service: CatalogService) -> None:
        self.services[service.id] = service

    def remove_service(self, service_id: str) -> None:
        self.services.pop(service_id, None)


class InMemoryPricingConfigs:
    def __init__(self, configs: list[PricingConfig] | None = None):
        self.configs = {c.tenant_id: c for c in configs or []}

    def get_active_pricing_config(self, tenant_id: str) -> PricingConfig | None:
        return self.configs.get(tenant_id)

    def set_config(self, config: PricingConfig) -> None:
        self.configs[config.tenant_id] = config


class InMemoryConditions:
    def __init__(self, conditions: list[CommercialCondition] | None = None):
        self.conditions = {c.id: c for c in conditions or []}

    def get_condition(self, condition_id: str) -> CommercialCondition | None:
        return self.conditions.get(condition_id)


class InMemoryDirectory:
    """Contact and staff names for referrer resolution."""

    def __init__(self, contacts: dict[str, str] | None = None, staff: dict[str, str] | None = None):
        self.contacts = dict(contacts or {})
        self.staff = dict(staff or {})

    def contact_name(self, contact_id: str) -> str | None:
        return self.contacts.get(contact_id)

    def staff_name(self, staff_id: str) -> str | None:
        return self.staff.get(staff_id)


class InMemoryQuoteStore:
    """Quote headers and line items with snapshot/rollback transactions."""

    def __init__(self):
        self.quotes: dict[str, Quote] = {}
        self.line_items: dict[str, list[QuoteLineItem]] = {}
        self._quote_ids = itertools.count(1)
        self._item_ids = itertools.count(1)

    @contextmanager
    def transaction(self):
        """Restore every table if the block raises."""
        saved_quotes = copy.deepcopy(self.quotes)
        saved_items = copy.deepcopy(self.line_items)
        try:
            yield self
        except BaseException:
            self.quotes = saved_quotes
            self.line_items = saved_items
            raise

    def create_quote(self, quote: Quote) -> Quote:
        stored = replace(copy.deepcopy(quote), id=quote.id or f"quote-{next(self._quote_ids)}")
        self.quotes[stored.id] = stored
        self.line_items.setdefault(stored.id, [])
        return copy.deepcopy(stored)

    def add_line_items(self, quote_id: str, items: list[QuoteLineItem]) -> list[QuoteLineItem]:
        if quote_id not in self.quotes:
            raise QuoteNotFoundError(f"Quote not found: {quote_id}")
        stored = [
            replace(copy.deepcopy(item), id=item.id or f"item-{next(self._item_ids)}", quote_id=quote_id)
            for item in items
        ]
        self.line_items[quote_id].extend(stored)
        return copy.deepcopy(stored)

    def get_quote(self, quote_id: str) -> Quote | None:
        quote = self.quotes.get(quote_id)
        return copy.deepcopy(quote) if quote else None

    def list_line_items(self, quote_id: str) -> list[QuoteLineItem]:
        items = sorted(self.line_items.get(quote_id, []), key=lambda i: i.position)
        return copy.deepcopy(items)

    def list_quotes_for_promise(self, promise_id: str) -> list[Quote]:
        """Non-archived quotes of a promise, in creation order."""
        return [
            copy.deepcopy(q) for q in self.quotes.values()
            if q.promise_id == promise_id and not q.archived
        ]

    def update_quote(self, quote: Quote) -> Quote:
        if quote.id not in self.quotes:
            raise QuoteNotFoundError(f"Quote not found: {quote.id}")
        self.quotes[quote.id] = copy.deepcopy(quote)
        return copy.deepcopy(quote)
