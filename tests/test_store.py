"""Tests for the in-memory quote store."""

from decimal import Decimal

import pytest

from quote_engine.errors import QuoteNotFoundError
from quote_engine.models import Quote, QuoteLineItem
from quote_engine.store import InMemoryQuoteStore


def _header(promise_id="p-1", **kwargs):
    return Quote(id=None, tenant_id="studio-1", promise_id=promise_id, name="Quote", **kwargs)


def _line(service_id, position=0):
    return QuoteLineItem(
        service_id=service_id,
        quantity=Decimal("1"),
        name=service_id,
        unit_price=Decimal("100"),
        subtotal=Decimal("100"),
        position=position,
    )


@pytest.fixture
def store():
    return InMemoryQuoteStore()


class TestQuoteStore:

    def test_assigns_ids(self, store):
        quote = store.create_quote(_header())
        items = store.add_line_items(quote.id, [_line("s1"), _line("s2", 1)])

        assert quote.id == "quote-1"
        assert [i.id for i in items] == ["item-1", "item-2"]
        assert all(i.quote_id == "quote-1" for i in items)

    def test_returns_copies(self, store):
        quote = store.create_quote(_header())
        quote.name = "changed outside"

        assert store.get_quote(quote.id).name == "Quote"

    def test_line_items_sorted_by_position(self, store):
        quote = store.create_quote(_header())
        store.add_line_items(quote.id, [_line("s2", 1), _line("s1", 0)])

        assert [i.service_id for i in store.list_line_items(quote.id)] == ["s1", "s2"]

    def test_items_for_unknown_quote(self, store):
        with pytest.raises(QuoteNotFoundError):
            store.add_line_items("quote-404", [_line("s1")])

    def test_archived_quotes_not_listed(self, store):
        store.create_quote(_header())
        store.create_quote(_header(archived=True))
        store.create_quote(_header(promise_id="p-2"))

        assert [q.id for q in store.list_quotes_for_promise("p-1")] == ["quote-1"]

    def test_update_unknown_quote(self, store):
        with pytest.raises(QuoteNotFoundError):
            store.update_quote(_header())


class TestTransactions:

    def test_rollback_removes_header(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                quote = store.create_quote(_header())
                store.add_line_items(quote.id, [_line("s1")])
                raise RuntimeError("connection dropped")

        assert store.quotes == {}
        assert store.line_items == {}

    def test_commit_keeps_writes(self, store):
        with store.transaction():
            quote = store.create_quote(_header())
            store.add_line_items(quote.id, [_line("s1")])

        assert store.get_quote(quote.id) is not None
        assert len(store.list_line_items(quote.id)) == 1
