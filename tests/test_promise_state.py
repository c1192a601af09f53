"""
Unit Tests for Promise State Resolver

Rule precedence:
1. Authorized-family quote with an event
2. Approved stage with an authorized-family quote
3. Quote in closing
4. Authorized-family quote without an event (still closing)
5. Pending
"""

from decimal import Decimal

import pytest

from quote_engine.models import Contact, ContactReferrer, PipelineStage, Promise, Quote, StaffReferrer
from quote_engine.promise_state import (
    Authorized,
    Closing,
    Pending,
    PromiseStateResolver,
    StateRule,
)
from quote_engine.referrers import ReferrerResolver
from quote_engine.store import InMemoryDirectory


def _quote(quote_id, status, event_id=None, archived=False):
    return Quote(
        id=quote_id,
        tenant_id="studio-1",
        promise_id="p-1",
        name=f"Quote {quote_id}",
        status=status,
        list_price=Decimal("1000"),
        event_id=event_id,
        archived=archived,
    )


STAGE_NEGOTIATION = PipelineStage(slug="negotiation", name="Negotiation", order=2)
STAGE_APPROVED = PipelineStage(slug="approved", name="Approved", order=4)


@pytest.fixture
def resolver():
    return PromiseStateResolver()


class TestRulePrecedence:
    """Higher rules win regardless of quote order."""

    def test_no_quotes_is_pending(self, resolver):
        state, rule = resolver.resolve_state(STAGE_NEGOTIATION, [])

        assert state == Pending()
        assert rule == "pending"

    def test_authorized_with_event(self, resolver):
        quotes = [_quote("q1", "authorized", event_id="ev-1")]
        state, rule = resolver.resolve_state(STAGE_NEGOTIATION, quotes)

        assert state == Authorized("q1")
        assert rule == "authorized_with_event"

    def test_authorized_beats_closing_in_any_order(self, resolver):
        closing = _quote("q1", "closing")
        authorized = _quote("q2", "contract_signed", event_id="ev-1")

        for quotes in ([closing, authorized], [authorized, closing]):
            state, _ = resolver.resolve_state(STAGE_NEGOTIATION, quotes)
            assert state == Authorized("q2")

    def test_approved_stage_fallback(self, resolver):
        quotes = [_quote("q1", "closing"), _quote("q2", "approved")]
        state, rule = resolver.resolve_state(STAGE_APPROVED, quotes)

        assert state == Authorized("q2")
        assert rule == "approved_stage_fallback"

    def test_closing_status(self, resolver):
        quotes = [_quote("q1", "pending"), _quote("q2", "closing")]
        state, rule = resolver.resolve_state(STAGE_NEGOTIATION, quotes)

        assert state == Closing("q2")
        assert rule == "closing_status"

    def test_authorized_without_event_is_closing(self, resolver):
        quotes = [_quote("q1", "contract_generated")]
        state, rule = resolver.resolve_state(STAGE_NEGOTIATION, quotes)

        assert state == Closing("q1")
        assert rule == "authorized_family_without_event"

    def test_approved_stage_without_authorized_quote_falls_through(self, resolver):
        quotes = [_quote("q1", "closing")]
        state, rule = resolver.resolve_state(STAGE_APPROVED, quotes)

        assert state == Closing("q1")
        assert rule == "closing_status"

    def test_first_match_within_rule(self, resolver):
        quotes = [_quote("q1", "closing"), _quote("q2", "closing")]
        state, _ = resolver.resolve_state(STAGE_NEGOTIATION, quotes)
        assert state == Closing("q1")


class TestActiveQuotes:
    """Archived and cancelled quotes never count."""

    def test_archived_quote_ignored(self, resolver):
        quotes = [_quote("q1", "authorized", event_id="ev-1", archived=True)]
        state, _ = resolver.resolve_state(STAGE_NEGOTIATION, quotes)
        assert state == Pending()

    def test_cancelled_quote_ignored(self, resolver):
        quotes = [_quote("q1", "cancelled"), _quote("q2", "pending")]
        assert resolver.active_quotes(quotes) == [quotes[1]]

    def test_spanish_status_aliases(self, resolver):
        quotes = [_quote("q1", "en_cierre")]
        state, _ = resolver.resolve_state(STAGE_NEGOTIATION, quotes)
        assert state == Closing("q1")

    def test_dashed_status(self, resolver):
        quotes = [_quote("q1", "Contract-Signed", event_id="ev-1")]
        state, _ = resolver.resolve_state(STAGE_NEGOTIATION, quotes)
        assert state == Authorized("q1")


class TestCustomRules:
    """Rules are plain data and can be replaced."""

    def test_custom_rule_list(self):
        always_closing = StateRule("always", lambda ctx: Closing("manual"))
        resolver = PromiseStateResolver(rules=(always_closing,))

        state, rule = resolver.resolve_state(None, [])

        assert state == Closing("manual")
        assert rule == "always"


class TestView:
    """The resolved view carries promise and contact snapshots."""

    def test_view_to_dict(self):
        directory = InMemoryDirectory(contacts={"c-9": "Ana Ruiz"}, staff={"u-1": "Luis"})
        resolver = PromiseStateResolver(referrer_resolver=ReferrerResolver(directory))
        promise = Promise(
            id="p-1",
            tenant_id="studio-1",
            event_type="wedding",
            event_date="2026-05-10",
            duration_hours=Decimal("6"),
            referrer=ContactReferrer("c-9"),
        )
        contact = Contact(id="c-1", name="Maria", phone="555-0101")

        view = resolver.resolve(promise, STAGE_APPROVED, [_quote("q1", "closing")], contact)
        data = view.to_dict()

        assert data["state"] == "closing"
        assert data["closing_quote_id"] == "q1"
        assert data["authorized_quote_id"] is None
        assert data["stage_approved"] is True
        assert data["promise"]["referrer_type"] == "CONTACT"
        assert data["promise"]["referrer_name"] == "Ana Ruiz"
        assert data["promise"]["duration_hours"] == 6.0
        assert data["contact"]["name"] == "Maria"

    def test_staff_referrer_name(self):
        directory = InMemoryDirectory(staff={"u-1": "Luis"})
        resolver = PromiseStateResolver(referrer_resolver=ReferrerResolver(directory))
        promise = Promise(id="p-1", tenant_id="studio-1", referrer=StaffReferrer("u-1"))

        view = resolver.resolve(promise, None, [])

        assert view.promise["referrer_type"] == "STAFF"
        assert view.promise["referrer_name"] == "Luis"
        assert view.contact is None
