"""
Collaborator Interfaces

The engine reads and writes through these protocols. Implementations
live outside the engine (database, catalog service); in-memory versions
are provided in quote_engine.store.
"""

from contextlib import AbstractContextManager
from typing import Protocol

from .models import (
    CatalogPackage,
    CatalogService,
    CommercialCondition,
    PricingConfig,
    Quote,
    QuoteLineItem,
)


class CatalogLookup(Protocol):
    def get_service(self, service_id: str) -> CatalogService | None: ...

    def get_package(self, package_id: str) -> CatalogPackage | None: ...


class PricingConfigLookup(Protocol):
    def get_active_pricing_config(self, tenant_id: str) -> PricingConfig | None: ...


class ConditionLookup(Protocol):
    def get_condition(self, condition_id: str) -> CommercialCondition | None: ...


class ReferrerDirectory(Protocol):
    def contact_name(self, contact_id: str) -> str | None: ...

    def staff_name(self, staff_id: str) -> str | None: ...


class QuoteStore(Protocol):
    def transaction(self) -> AbstractContextManager: ...

    def create_quote(self, quote: Quote) -> Quote: ...

    def add_line_items(self, quote_id: str, items: list[QuoteLineItem]) -> list[QuoteLineItem]: ...

    def get_quote(self, quote_id: str) -> Quote | None: ...

    def list_line_items(self, quote_id: str) -> list[QuoteLineItem]: ...

    def list_quotes_for_promise(self, promise_id: str) -> list[Quote]: ...

    def update_quote(self, quote: Quote) -> Quote: ...
