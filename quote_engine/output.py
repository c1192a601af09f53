"""
Output Builder

Constructs API responses from engine results. Every amount goes through
to_money / format_money so summaries and contracts show the same cents.
"""

from .calculators.margin import NegotiationReview
from .models import (
    ADVANCE_FIXED_AMOUNT,
    ADVANCE_PERCENTAGE,
    ClosingResult,
    LineItemView,
    PaymentBreakdown,
    PricingResult,
    Quote,
    QuoteCreation,
    QuoteLineItem,
    QuoteView,
)
from .money import format_money as _fmt
from .money import to_money
from .promise_state import PromiseStateView


class OutputBuilder:
    """Builds the final output responses."""

    def build_pricing(self, result: PricingResult) -> dict:
        """Pricing totals with value and description for each field."""
        target_desc = (
            "Supplied target total"
            if result.mode == 'target_total'
            else "Sum of list price x quantity"
        )
        return {
            "mode": result.mode,
            "entries_count": len(result.entries),
            "totals": {
                "total_cost": {
                    "value": to_money(result.total_cost),
                    "description": "Sum of cost x effective quantity",
                },
                "total_expense": {
                    "value": to_money(result.total_expense),
                    "description": "Sum of expense x effective quantity",
                },
                "total_base_utility": {
                    "value": to_money(result.total_base_utility),
                    "description": "Profit before commission and markup, from configured margins",
                },
                "total_commission": {
                    "value": to_money(result.total_commission),
                    "description": "Sales commission built into the system price",
                },
                "total_markup": {
                    "value": to_money(result.total_markup),
                    "description": "Configured markup over the base price",
                },
                "system_price": {
                    "value": to_money(result.system_price),
                    "description": "Costs + utility + commission + markup",
                },
                "target_price": {
                    "value": to_money(result.target_price),
                    "description": target_desc,
                },
                "sale_price": {
                    "value": to_money(result.sale_price),
                    "description": f"max(system {_fmt(result.system_price)}, target {_fmt(result.target_price)}) = {_fmt(result.sale_price)}",
                },
                "net_profit": {
                    "value": to_money(result.net_profit),
                    "description": f"sale ({_fmt(result.sale_price)}) - cost ({_fmt(result.total_cost)}) - expense ({_fmt(result.total_expense)})",
                },
            },
            "list_price": to_money(result.list_price),
            "margin_percent": float(result.margin_percent),
            "entries": [
                {
                    "service_id": p.entry.service_id,
                    "name": p.entry.name,
                    "effective_quantity": float(p.effective_quantity),
                    "unit_system_price": to_money(p.unit.system_price),
                    "system_total": to_money(p.system_total),
                    "list_total": to_money(p.list_total),
                }
                for p in result.entries
            ],
        }

    def build_payment(self, payment: PaymentBreakdown) -> dict:
        """Payable total, adjustments and the advance/deferred split."""
        lines = {
            "list_price": {
                "value": to_money(payment.list_price),
                "label": "Precio de lista",
                "description": "Price before any adjustment",
            },
            "discount": {
                "value": to_money(payment.discount_amount),
                "label": "Descuento",
                "description": self._discount_description(payment),
            },
            "courtesies": {
                "value": to_money(payment.courtesy_total),
                "label": "Cortesías",
                "description": "List value of items given as courtesy",
            },
            "bonus": {
                "value": to_money(payment.bonus),
                "label": "Bono especial",
                "description": "Special bonus granted to the client",
            },
        }

        if payment.closing_adjustment is not None:
            baseline = payment.list_price - payment.courtesy_total - payment.bonus
            lines["closing_adjustment"] = {
                "value": to_money(payment.closing_adjustment),
                "label": "Ajuste por cierre",
                "description": f"closing price ({_fmt(payment.total)}) - (list {_fmt(payment.list_price)} - courtesies {_fmt(payment.courtesy_total)} - bonus {_fmt(payment.bonus)} = {_fmt(baseline)})",
            }

        if payment.savings is not None:
            lines["savings"] = {
                "value": to_money(payment.savings),
                "label": "Ahorro",
                "description": f"list ({_fmt(payment.list_price)}) - negotiated ({_fmt(payment.total)})",
            }

        return {
            "source": payment.source,
            "total": {
                "value": to_money(payment.total),
                "formatted": _fmt(payment.total),
                "description": self._total_description(payment),
            },
            "lines": lines,
            "advance": {
                "value": to_money(payment.advance),
                "formatted": _fmt(payment.advance),
                "type": payment.advance_type,
                "clamped": payment.advance_clamped,
                "description": self._advance_description(payment),
            },
            "deferred": {
                "value": to_money(payment.deferred),
                "formatted": _fmt(payment.deferred),
                "due_days_before_event": payment.deferred_due_days_before_event,
                "description": f"total ({_fmt(payment.total)}) - advance ({_fmt(payment.advance)}), due {payment.deferred_due_days_before_event} days before the event",
            },
        }

    def build_negotiation(self, review: NegotiationReview) -> dict:
        """Margin checks for a negotiated price."""
        health = review.health
        return {
            "negotiated_price": {
                "value": to_money(review.negotiated_price),
                "formatted": _fmt(review.negotiated_price),
            },
            "margin_percent": float(review.margin_percent),
            "margin": {
                "is_valid": review.validation.is_valid,
                "level": review.validation.level,
                "message": review.validation.message,
            },
            "health": {
                "status": health.status,
                "current_margin": float(health.current_margin),
                "rescue_price": to_money(health.rescue_price),
                "missing_difference": to_money(health.missing_difference),
                "message": health.message,
            },
            "courtesies": {
                "total": to_money(review.courtesies.total_courtesies),
                "utility_impact": to_money(review.courtesies.utility_impact),
                "description": "List value given away and the utility it costs",
            },
            "warnings": [w.to_dict() for w in review.warnings],
        }

    def build_promise_state(self, view: PromiseStateView) -> dict:
        return view.to_dict()

    def build_quote(self, quote: Quote) -> dict:
        return {
            "id": quote.id,
            "promise_id": quote.promise_id,
            "name": quote.name,
            "status": quote.status,
            "list_price": to_money(quote.list_price),
            "negotiated_price": to_money(quote.negotiated_price) if quote.negotiated_price is not None else None,
            "condition_id": quote.condition_id,
            "condition_snapshot": quote.condition_snapshot.to_dict() if quote.condition_snapshot else None,
            "archived": quote.archived,
            "event_id": quote.event_id,
            "final_total": to_money(quote.final_total) if quote.final_total is not None else None,
            "advance": to_money(quote.advance) if quote.advance is not None else None,
            "deferred": to_money(quote.deferred) if quote.deferred is not None else None,
        }

    def build_quote_creation(self, creation: QuoteCreation) -> dict:
        return {
            "quote": self.build_quote(creation.quote),
            "items": [self._line_item(item, frozen=True) for item in creation.items],
            "complete": creation.complete,
            "warnings": [creation.warning.to_dict()] if creation.warning else [],
        }

    def build_quote_view(self, view: QuoteView) -> dict:
        return {
            "quote": self.build_quote(view.quote),
            "items": [self._line_item_view(v) for v in view.line_items.items],
            "warnings": [w.to_dict() for w in view.line_items.warnings],
            "pricing": self.build_pricing(view.pricing) if view.pricing is not None else None,
        }

    def build_closing(self, result: ClosingResult) -> dict:
        return {
            "quote": self.build_quote(result.quote),
            "payment": self.build_payment(result.payment),
            "warnings": [w.to_dict() for w in result.warnings],
        }

    def _line_item_view(self, view: LineItemView) -> dict:
        return self._line_item(view.item, frozen=view.frozen)

    @staticmethod
    def _line_item(item: QuoteLineItem, frozen: bool) -> dict:
        return {
            "id": item.id,
            "service_id": item.service_id,
            "name": item.name,
            "quantity": float(item.quantity),
            "unit_price": to_money(item.unit_price),
            "cost": to_money(item.cost),
            "subtotal": to_money(item.subtotal),
            "position": item.position,
            "billing_type": item.billing_type,
            "frozen": frozen,
        }

    @staticmethod
    def _discount_description(payment: PaymentBreakdown) -> str:
        if payment.discount_percent is not None:
            return f"{payment.discount_percent}% x {_fmt(payment.list_price)} = {_fmt(payment.discount_amount)}"
        if payment.discount_amount > 0:
            return f"Discount-adjusted price applied: {_fmt(payment.discount_amount)} off list"
        return "No discount applied"

    @staticmethod
    def _total_description(payment: PaymentBreakdown) -> str:
        if payment.source == 'closing_override':
            return "Closing price agreed with the client; other adjustments are informational"
        if payment.source == 'negotiated':
            return "Negotiated price below list"
        return f"list ({_fmt(payment.list_price)}) - discount ({_fmt(payment.discount_amount)}) - courtesies ({_fmt(payment.courtesy_total)})"

    @staticmethod
    def _advance_description(payment: PaymentBreakdown) -> str:
        if payment.advance_type == ADVANCE_PERCENTAGE:
            return f"Percentage advance on {_fmt(payment.total)} = {_fmt(payment.advance)}"
        if payment.advance_type == ADVANCE_FIXED_AMOUNT:
            if payment.advance_clamped:
                return f"Fixed advance exceeded the total; limited to {_fmt(payment.total)}"
            return f"Fixed advance of {_fmt(payment.advance)}"
        return "No advance required"
