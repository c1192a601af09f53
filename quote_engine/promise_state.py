"""
Promise State Resolver

Derives the lifecycle state of a promise from its pipeline stage and the
statuses of its quotes. Read-time projection only: the result is never
stored, so it cannot drift from the quotes it is computed from.

Rules are evaluated in order; the first one that matches wins. Within a
rule, the first qualifying quote in iteration order wins.
"""

from dataclasses import dataclass, field
from typing import Callable

from .models import Contact, PipelineStage, Promise, Quote, referrer_type
from .referrers import ReferrerResolver
from .statuses import CLOSING, INACTIVE, is_authorized_family, normalize_status

APPROVED_STAGE_SLUG = 'approved'

# =============================================================================
# STATE VARIANTS
# =============================================================================


@dataclass(frozen=True)
class Pending:
    name = 'pending'


@dataclass(frozen=True)
class Closing:
    quote_id: str
    name = 'closing'


@dataclass(frozen=True)
class Authorized:
    quote_id: str
    name = 'authorized'


PromiseState = Pending | Closing | Authorized


@dataclass
class PromiseStateView:
    """Resolved state plus a display snapshot of the promise and its contact."""

    state: PromiseState
    matched_rule: str
    stage_approved: bool = False
    promise: dict = field(default_factory=dict)
    contact: dict | None = None

    @property
    def closing_quote_id(self) -> str | None:
        return self.state.quote_id if isinstance(self.state, Closing) else None

    @property
    def authorized_quote_id(self) -> str | None:
        return self.state.quote_id if isinstance(self.state, Authorized) else None

    def to_dict(self) -> dict:
        return {
            "state": self.state.name,
            "matched_rule": self.matched_rule,
            "stage_approved": self.stage_approved,
            "closing_quote_id": self.closing_quote_id,
            "authorized_quote_id": self.authorized_quote_id,
            "promise": self.promise,
            "contact": self.contact,
        }


# =============================================================================
# RULES
# =============================================================================


@dataclass
class RuleContext:
    quotes: list[Quote]
    stage_approved: bool


@dataclass(frozen=True)
class StateRule:
    name: str
    match: Callable[[RuleContext], PromiseState | None]


def _first(quotes: list[Quote], predicate: Callable[[Quote], bool]) -> Quote | None:
    for quote in quotes:
        if predicate(quote):
            return quote
    return None


def _authorized_with_event(ctx: RuleContext) -> PromiseState | None:
    quote = _first(ctx.quotes, lambda q: is_authorized_family(q.status) and bool(q.event_id))
    return Authorized(quote.id) if quote else None


def _approved_stage_fallback(ctx: RuleContext) -> PromiseState | None:
    if not ctx.stage_approved:
        return None
    quote = _first(ctx.quotes, lambda q: is_authorized_family(q.status))
    return Authorized(quote.id) if quote else None


def _closing_status(ctx: RuleContext) -> PromiseState | None:
    quote = _first(ctx.quotes, lambda q: normalize_status(q.status) == CLOSING)
    return Closing(quote.id) if quote else None


def _authorized_without_event(ctx: RuleContext) -> PromiseState | None:
    # Contract generation and similar pre-authorization work is still pending
    quote = _first(ctx.quotes, lambda q: is_authorized_family(q.status) and not q.event_id)
    return Closing(quote.id) if quote else None


def _pending(ctx: RuleContext) -> PromiseState | None:
    return Pending()


DEFAULT_RULES = (
    StateRule('authorized_with_event', _authorized_with_event),
    StateRule('approved_stage_fallback', _approved_stage_fallback),
    StateRule('closing_status', _closing_status),
    StateRule('authorized_family_without_event', _authorized_without_event),
    StateRule('pending', _pending),
)


# =============================================================================
# RESOLVER
# =============================================================================


class PromiseStateResolver:
    """Evaluates the ordered rule list over a promise's active quotes."""

    def __init__(
        self,
        rules: tuple[StateRule, ...] = DEFAULT_RULES,
        referrer_resolver: ReferrerResolver | None = None
    ):
        self.rules = rules
        self.referrer_resolver = referrer_resolver

    def resolve_state(self, stage: PipelineStage | None, quotes: list[Quote]) -> tuple[PromiseState, str]:
        """Return the resolved state and the name of the rule that produced it."""
        ctx = RuleContext(
            quotes=self.active_quotes(quotes),
            stage_approved=self.is_stage_approved(stage),
        )
        for rule in self.rules:
            state = rule.match(ctx)
            if state is not None:
                return state, rule.name
        return Pending(), 'pending'

    def resolve(
        self,
        promise: Promise,
        stage: PipelineStage | None,
        quotes: list[Quote],
        contact: Contact | None = None
    ) -> PromiseStateView:
        state, rule_name = self.resolve_state(stage, quotes)
        return PromiseStateView(
            state=state,
            matched_rule=rule_name,
            stage_approved=self.is_stage_approved(stage),
            promise=self._promise_snapshot(promise, stage),
            contact=self._contact_snapshot(contact),
        )

    @staticmethod
    def active_quotes(quotes: list[Quote]) -> list[Quote]:
        """Non-archived, non-cancelled quotes in their original order."""
        return [
            q for q in quotes
            if not q.archived and normalize_status(q.status) not in INACTIVE
        ]

    @staticmethod
    def is_stage_approved(stage: PipelineStage | None) -> bool:
        return stage is not None and stage.slug == APPROVED_STAGE_SLUG

    def _promise_snapshot(self, promise: Promise, stage: PipelineStage | None) -> dict:
        referrer = promise.referrer
        referrer_name = None
        if self.referrer_resolver is not None:
            referrer_name = self.referrer_resolver.resolve_referrer_name(referrer)

        return {
            "promise_id": promise.id,
            "tenant_id": promise.tenant_id,
            "event_type": promise.event_type,
            "event_date": promise.event_date,
            "event_name": promise.event_name,
            "event_location": promise.event_location,
            "duration_hours": float(promise.duration_hours) if promise.duration_hours is not None else None,
            "pipeline_stage": stage.slug if stage else None,
            "pipeline_stage_name": stage.name if stage else None,
            "referrer_type": referrer_type(referrer),
            "referrer_id": referrer.id if referrer is not None else None,
            "referrer_name": referrer_name,
        }

    @staticmethod
    def _contact_snapshot(contact: Contact | None) -> dict | None:
        if contact is None:
            return None
        return {
            "contact_id": contact.id,
            "name": contact.name,
            "phone": contact.phone,
            "email": contact.email,
        }
