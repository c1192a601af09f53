"""
Domain Models for the Quote Engine

These dataclasses provide type-safe representations of all quoting entities.
All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from .errors import InvalidInputError
from .money import ZERO, optional_decimal, to_decimal

# =============================================================================
# CONSTANTS
# =============================================================================

UTILITY_SERVICE = 'service'
UTILITY_PRODUCT = 'product'

BILLING_HOUR = 'HOUR'
BILLING_SERVICE = 'SERVICE'
BILLING_UNIT = 'UNIT'

MODE_LIST_SUM = 'list_sum'
MODE_TARGET_TOTAL = 'target_total'

ADVANCE_PERCENTAGE = 'percentage'
ADVANCE_FIXED_AMOUNT = 'fixed_amount'

REFERRER_CONTACT = 'CONTACT'
REFERRER_STAFF = 'STAFF'

# Legacy spellings seen in stored conditions
_ADVANCE_ALIASES = {
    'percentage': ADVANCE_PERCENTAGE,
    'fixed_amount': ADVANCE_FIXED_AMOUNT,
    'amount': ADVANCE_FIXED_AMOUNT,
}

# Spanish utility tags from the catalog
_UTILITY_ALIASES = {
    'service': UTILITY_SERVICE,
    'servicio': UTILITY_SERVICE,
    'product': UTILITY_PRODUCT,
    'producto': UTILITY_PRODUCT,
}


def normalize_utility_type(value: str | None) -> str:
    if not value:
        return UTILITY_SERVICE
    return _UTILITY_ALIASES.get(str(value).lower(), str(value).lower())


def normalize_advance_type(value: str | None) -> str | None:
    if not value:
        return None
    return _ADVANCE_ALIASES.get(str(value).lower(), str(value).lower())


def parse_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return datetime.strptime(value[:10], "%Y-%m-%d").date()


def effective_quantity(quantity: Decimal, billing_type: str, event_duration: Decimal | None) -> Decimal:
    """HOUR items bill quantity x event duration; everything else bills quantity."""
    if billing_type == BILLING_HOUR and event_duration is not None and event_duration > 0:
        return quantity * event_duration
    return quantity


# =============================================================================
# PRICING INPUT MODELS
# =============================================================================


@dataclass
class PricingConfig:
    """Active pricing configuration of a tenant (margins, commission, markup)."""

    tenant_id: str
    service_margin: Decimal = ZERO
    product_margin: Decimal = ZERO
    sales_commission: Decimal = ZERO
    markup: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict) -> "PricingConfig":
        return cls(
            tenant_id=data.get("tenant_id", ""),
            service_margin=to_decimal(data.get("service_margin", 0)),
            product_margin=to_decimal(data.get("product_margin", 0)),
            sales_commission=to_decimal(data.get("sales_commission", 0)),
            markup=to_decimal(data.get("markup", 0)),
        )


@dataclass
class BillableEntry:
    """One priced entry of a bundle (a catalog service times a quantity)."""

    cost: Decimal
    expense: Decimal
    quantity: Decimal
    utility_type: str = UTILITY_SERVICE
    public_price: Decimal | None = None
    billing_type: str = BILLING_SERVICE
    name: str | None = None
    service_id: str | None = None

    def effective_quantity(self, event_duration: Decimal | None) -> Decimal:
        return effective_quantity(self.quantity, self.billing_type, event_duration)

    @classmethod
    def from_dict(cls, data: dict) -> "BillableEntry":
        return cls(
            cost=to_decimal(data.get("cost", 0)),
            expense=to_decimal(data.get("expense", 0)),
            quantity=to_decimal(data.get("quantity", 1)),
            utility_type=normalize_utility_type(data.get("utility_type")),
            public_price=optional_decimal(data.get("public_price")),
            billing_type=str(data.get("billing_type") or BILLING_SERVICE).upper(),
            name=data.get("name"),
            service_id=data.get("service_id"),
        )


@dataclass
class PricingRequest:
    """Complete input for pricing a bundle."""

    entries: list[BillableEntry]
    config: PricingConfig
    mode: str = MODE_LIST_SUM
    target_total: Decimal | None = None
    event_duration: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "PricingRequest":
        return cls(
            entries=[BillableEntry.from_dict(e) for e in data.get("entries", [])],
            config=PricingConfig.from_dict(data["config"]),
            mode=data.get("mode", MODE_LIST_SUM),
            target_total=optional_decimal(data.get("target_total")),
            event_duration=optional_decimal(data.get("event_duration")),
        )


# =============================================================================
# CATALOG MODELS
# =============================================================================


@dataclass
class CatalogService:
    """A live catalog service. Mutable by operators at any time."""

    id: str
    name: str
    cost: Decimal
    expense: Decimal = ZERO
    utility_type: str = UTILITY_SERVICE
    public_price: Decimal | None = None
    category_id: str | None = None
    billing_type: str = BILLING_SERVICE

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogService":
        return cls(
            id=data["id"],
            name=data["name"],
            cost=to_decimal(data.get("cost", 0)),
            expense=to_decimal(data.get("expense", 0)),
            utility_type=normalize_utility_type(data.get("utility_type")),
            public_price=optional_decimal(data.get("public_price")),
            category_id=data.get("category_id"),
            billing_type=str(data.get("billing_type") or BILLING_SERVICE).upper(),
        )


@dataclass
class PackageItem:
    service_id: str
    quantity: Decimal


@dataclass
class CatalogPackage:
    """A preset bundle of catalog services that can be cloned into a quote."""

    id: str
    name: str
    items: list[PackageItem] = field(default_factory=list)

    def requests(self) -> list[tuple[str, Decimal]]:
        return [(item.service_id, item.quantity) for item in self.items]


# =============================================================================
# QUOTE MODELS
# =============================================================================


@dataclass
class QuoteLineItem:
    """
    One service entry inside a quote.

    Frozen items carry a point-in-time copy of name, price and cost and
    have frozen=True. Items written before freezing existed never set it,
    whatever name or price they happen to hold.
    """

    service_id: str | None
    quantity: Decimal
    name: str | None = None
    unit_price: Decimal = ZERO
    cost: Decimal = ZERO
    expense: Decimal = ZERO
    subtotal: Decimal = ZERO
    position: int = 0
    category_id: str | None = None
    billing_type: str = BILLING_SERVICE
    frozen: bool = False
    id: str | None = None
    quote_id: str | None = None

    @property
    def is_frozen(self) -> bool:
        return self.frozen

    def effective_quantity(self, event_duration: Decimal | None) -> Decimal:
        return effective_quantity(self.quantity, self.billing_type, event_duration)


@dataclass
class CommercialCondition:
    """A discount + advance-payment policy applicable to a quote."""

    id: str | None
    name: str
    discount_percent: Decimal | None = None
    advance_type: str | None = None
    advance_value: Decimal | None = None
    active_from: date | None = None
    active_until: date | None = None

    def is_active(self, on: date) -> bool:
        if self.active_from and on < self.active_from:
            return False
        if self.active_until and on > self.active_until:
            return False
        return True

    @classmethod
    def from_dict(cls, data: dict) -> "CommercialCondition":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            discount_percent=optional_decimal(data.get("discount_percent")),
            advance_type=normalize_advance_type(data.get("advance_type")),
            advance_value=optional_decimal(data.get("advance_value")),
            active_from=parse_date(data.get("active_from")),
            active_until=parse_date(data.get("active_until")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "discount_percent": str(self.discount_percent) if self.discount_percent is not None else None,
            "advance_type": self.advance_type,
            "advance_value": str(self.advance_value) if self.advance_value is not None else None,
            "active_from": self.active_from.isoformat() if self.active_from else None,
            "active_until": self.active_until.isoformat() if self.active_until else None,
        }


@dataclass
class Quote:
    """A priced proposal attached to a promise."""

    id: str | None
    tenant_id: str
    promise_id: str | None
    name: str
    status: str = 'pending'
    list_price: Decimal = ZERO
    negotiated_price: Decimal | None = None
    condition_id: str | None = None
    condition_snapshot: CommercialCondition | None = None
    archived: bool = False
    event_id: str | None = None
    final_total: Decimal | None = None
    advance: Decimal | None = None
    deferred: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Quote":
        snapshot = data.get("condition_snapshot")
        return cls(
            id=data.get("id"),
            tenant_id=data.get("tenant_id", ""),
            promise_id=data.get("promise_id"),
            name=data.get("name", ""),
            status=data.get("status", "pending"),
            list_price=to_decimal(data.get("list_price", 0)),
            negotiated_price=optional_decimal(data.get("negotiated_price")),
            condition_id=data.get("condition_id"),
            condition_snapshot=CommercialCondition.from_dict(snapshot) if snapshot else None,
            archived=bool(data.get("archived", False)),
            event_id=data.get("event_id"),
        )


# =============================================================================
# PROMISE MODELS
# =============================================================================


@dataclass(frozen=True)
class ContactReferrer:
    """Promise referred by another contact."""

    id: str


@dataclass(frozen=True)
class StaffReferrer:
    """Promise referred by a staff member."""

    id: str


Referrer = ContactReferrer | StaffReferrer | None


def parse_referrer(data: dict) -> Referrer:
    """Build a Referrer from {'referrer_type': ..., 'referrer_id': ...}."""
    referrer_type = data.get("referrer_type")
    referrer_id = data.get("referrer_id")
    if not referrer_type or not referrer_id:
        return None

    referrer_type = str(referrer_type).upper()
    if referrer_type == REFERRER_CONTACT:
        return ContactReferrer(referrer_id)
    if referrer_type == REFERRER_STAFF:
        return StaffReferrer(referrer_id)

    raise InvalidInputError(
        f"Invalid referrer_type: {referrer_type}. Must be '{REFERRER_CONTACT}' or '{REFERRER_STAFF}'"
    )


def referrer_type(referrer: Referrer) -> str | None:
    """Stored tag for a referrer value."""
    if isinstance(referrer, ContactReferrer):
        return REFERRER_CONTACT
    if isinstance(referrer, StaffReferrer):
        return REFERRER_STAFF
    return None


@dataclass
class PipelineStage:
    """An ordered step within a named pipeline."""

    slug: str
    name: str = ""
    order: int = 0
    active: bool = True
    pipeline: str = 'commercial'

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineStage":
        return cls(
            slug=data["slug"],
            name=data.get("name", ""),
            order=int(data.get("order", 0)),
            active=data.get("active", True),
            pipeline=data.get("pipeline", "commercial"),
        )


@dataclass
class Contact:
    id: str
    name: str
    phone: str | None = None
    email: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Contact":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            phone=data.get("phone"),
            email=data.get("email"),
        )


@dataclass
class Promise:
    """A prospective booking inquiry."""

    id: str
    tenant_id: str
    contact_id: str | None = None
    event_type: str | None = None
    event_date: str | None = None
    event_name: str | None = None
    event_location: str | None = None
    duration_hours: Decimal | None = None
    referrer: Referrer = None

    @classmethod
    def from_dict(cls, data: dict) -> "Promise":
        return cls(
            id=data["id"],
            tenant_id=data.get("tenant_id", ""),
            contact_id=data.get("contact_id"),
            event_type=data.get("event_type"),
            event_date=data.get("event_date"),
            event_name=data.get("event_name"),
            event_location=data.get("event_location"),
            duration_hours=optional_decimal(data.get("duration_hours")),
            referrer=parse_referrer(data),
        )


# =============================================================================
# PAYMENT INPUT
# =============================================================================


@dataclass
class PaymentInput:
    """Everything needed to resolve the payable total at closing."""

    list_price: Decimal
    discount_percent: Decimal | None = None
    discounted_price: Decimal | None = None
    negotiated_price: Decimal | None = None
    courtesy_total: Decimal | None = None
    bonus: Decimal | None = None
    closing_override: Decimal | None = None
    condition: CommercialCondition | None = None
    deferred_due_days_before_event: int = 2

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentInput":
        condition = data.get("condition")
        return cls(
            list_price=to_decimal(data.get("list_price", 0)),
            discount_percent=optional_decimal(data.get("discount_percent")),
            discounted_price=optional_decimal(data.get("discounted_price")),
            negotiated_price=optional_decimal(data.get("negotiated_price")),
            courtesy_total=optional_decimal(data.get("courtesy_total")),
            bonus=optional_decimal(data.get("bonus")),
            closing_override=optional_decimal(data.get("closing_override")),
            condition=CommercialCondition.from_dict(condition) if condition else None,
            deferred_due_days_before_event=int(data.get("deferred_due_days_before_event", 2)),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class UnitPricing:
    """Per-unit price build-up of one entry."""

    base_cost: Decimal = ZERO
    base_utility: Decimal = ZERO
    subtotal: Decimal = ZERO
    price_base: Decimal = ZERO
    commission_amount: Decimal = ZERO
    markup_amount: Decimal = ZERO
    system_price: Decimal = ZERO


@dataclass
class EntryPricing:
    entry: BillableEntry
    unit: UnitPricing
    effective_quantity: Decimal
    system_total: Decimal
    list_total: Decimal


@dataclass
class PricingResult:
    """Aggregate totals for a priced bundle."""

    total_cost: Decimal = ZERO
    total_expense: Decimal = ZERO
    total_base_utility: Decimal = ZERO
    total_commission: Decimal = ZERO
    total_markup: Decimal = ZERO
    system_price: Decimal = ZERO
    list_price: Decimal = ZERO
    target_price: Decimal = ZERO
    sale_price: Decimal = ZERO
    net_profit: Decimal = ZERO
    margin_percent: Decimal = ZERO
    mode: str = MODE_LIST_SUM
    entries: list[EntryPricing] = field(default_factory=list)


@dataclass
class FreezeResult:
    items: list[QuoteLineItem] = field(default_factory=list)
    warning: object | None = None  # PartialFreezeWarning

    @property
    def complete(self) -> bool:
        return self.warning is None


@dataclass
class LineItemView:
    item: QuoteLineItem
    frozen: bool


@dataclass
class LineItemsRead:
    items: list[LineItemView] = field(default_factory=list)
    warnings: list = field(default_factory=list)  # NotFrozenWarning


@dataclass
class PaymentBreakdown:
    """Final payable total and its advance/deferred split."""

    total: Decimal = ZERO
    source: str = 'list'  # 'closing_override', 'negotiated' or 'list'
    list_price: Decimal = ZERO
    discount_percent: Decimal | None = None
    discount_amount: Decimal = ZERO
    courtesy_total: Decimal = ZERO
    bonus: Decimal = ZERO
    closing_adjustment: Decimal | None = None
    savings: Decimal | None = None
    advance_type: str | None = None
    advance: Decimal = ZERO
    advance_clamped: bool = False
    deferred: Decimal = ZERO
    deferred_due_days_before_event: int = 2


@dataclass
class QuoteCreation:
    """A persisted quote with the line items frozen for it."""

    quote: Quote
    items: list[QuoteLineItem] = field(default_factory=list)
    warning: object | None = None  # PartialFreezeWarning

    @property
    def complete(self) -> bool:
        return self.warning is None


@dataclass
class QuoteView:
    """A stored quote read back for display, prices recomputed on demand."""

    quote: Quote
    line_items: LineItemsRead
    pricing: PricingResult | None = None  # None while the tenant has no active configuration


@dataclass
class ClosingResult:
    quote: Quote
    payment: PaymentBreakdown
    warnings: list = field(default_factory=list)  # NotFrozenWarning
