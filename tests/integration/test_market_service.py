"""Integration tests for the market book."""

import pytest

from kingdoms.domain.errors import (
    ConflictRetryable,
    InsufficientOfferQuantity,
    InsufficientResources,
    InvalidInput,
    InvalidResourceType,
    NotAuthorized,
    OfferNotFound,
)
from kingdoms.models import MarketOffer
from kingdoms.services.ledger_service import ResourceLedger
from kingdoms.services.market_service import MarketBook
from kingdoms.utils.rng import SeededRandomSource


def _book(session):
    ledger = ResourceLedger(session)
    return MarketBook(session, ledger), ledger


@pytest.fixture
def seller(make_kingdom):
    return make_kingdom(1, wood=100, gold=0)


@pytest.fixture
def buyer(make_kingdom):
    return make_kingdom(2, gold=1000)


def test_create_offer_escrows_quantity(session, seller):
    book, ledger = _book(session)

    offer = book.create_offer(seller, "wood", 40, "gold", 3)

    assert offer.id is not None
    assert offer.quantity == 40
    assert ledger.get(seller, "wood") == 60


def test_create_offer_needs_funds(session, seller):
    book, ledger = _book(session)
    with pytest.raises(InsufficientResources):
        book.create_offer(seller, "wood", 101, "gold", 1)
    assert ledger.get(seller, "wood") == 100


def test_create_offer_validation(session, seller):
    book, _ = _book(session)
    with pytest.raises(InvalidResourceType):
        book.create_offer(seller, "silk", 1, "gold", 1)
    with pytest.raises(InvalidResourceType):
        book.create_offer(seller, "wood", 1, "silk", 1)
    with pytest.raises(InvalidInput):
        book.create_offer(seller, "wood", 0, "gold", 1)
    with pytest.raises(InvalidInput):
        book.create_offer(seller, "wood", 1, "gold", -1)


def test_offer_must_ask_for_another_resource(session, seller):
    book, ledger = _book(session)
    with pytest.raises(InvalidInput):
        book.create_offer(seller, "wood", 10, "wood", 2)
    assert ledger.get(seller, "wood") == 100
    assert book.list_offers() == []


def test_partial_buy_settles_both_sides(session, seller, buyer):
    book, ledger = _book(session)
    offer = book.create_offer(seller, "wood", 40, "gold", 3)

    settlement = book.buy(offer.id, buyer, 10)

    assert settlement.total_price == 30
    assert settlement.remaining_quantity == 30
    assert ledger.get(buyer, "gold") == 970
    assert ledger.get(buyer, "wood") == 10
    assert ledger.get(seller, "gold") == 30
    assert book.get(offer.id).quantity == 30


def test_buying_everything_deletes_the_offer(session, seller, buyer):
    book, _ = _book(session)
    offer = book.create_offer(seller, "wood", 5, "gold", 2)

    settlement = book.buy(offer.id, buyer, 5)

    assert settlement.remaining_quantity == 0
    assert book.get(offer.id) is None
    assert book.list_offers() == []


def test_buy_error_order(session, seller, make_kingdom):
    book, _ = _book(session)
    broke = make_kingdom(3, gold=5)
    offer = book.create_offer(seller, "wood", 5, "gold", 2)

    with pytest.raises(OfferNotFound):
        book.buy(offer.id + 100, broke, 1)
    with pytest.raises(InsufficientOfferQuantity):
        book.buy(offer.id, broke, 6)
    with pytest.raises(InsufficientResources):
        book.buy(offer.id, broke, 3)
    assert book.get(offer.id).quantity == 5


def test_npc_offer_does_not_pay_anyone(session, buyer):
    book, ledger = _book(session)
    npc = MarketOffer(
        seller_kingdom_id=None,
        resource_type="stone",
        quantity=10,
        price_type="gold",
        price_amount=4,
    )
    session.add(npc)
    session.flush()

    settlement = book.buy(npc.id, buyer, 10)

    assert settlement.seller_kingdom_id is None
    assert ledger.get(buyer, "stone") == 10
    assert ledger.get(buyer, "gold") == 960


def test_create_then_cancel_restores_ledger(session, seller):
    book, ledger = _book(session)
    before = ledger.balances(seller)
    offer = book.create_offer(seller, "wood", 70, "gold", 1)

    receipt = book.cancel_offer(offer.id, seller)

    assert receipt.refunded == 70
    assert ledger.balances(seller) == before
    assert book.get(offer.id) is None


def test_cancel_refunds_only_the_remainder(session, seller, buyer):
    book, ledger = _book(session)
    offer = book.create_offer(seller, "wood", 50, "gold", 1)
    book.buy(offer.id, buyer, 20)

    receipt = book.cancel_offer(offer.id, seller)

    assert receipt.refunded == 30
    assert ledger.get(seller, "wood") == 80
    assert ledger.get(buyer, "wood") == 20


def test_only_the_seller_may_cancel(session, seller, buyer):
    book, _ = _book(session)
    offer = book.create_offer(seller, "wood", 10, "gold", 1)
    with pytest.raises(NotAuthorized):
        book.cancel_offer(offer.id, buyer)
    with pytest.raises(OfferNotFound):
        book.cancel_offer(offer.id + 1, seller)


def test_list_offers_newest_first(session, seller):
    book, _ = _book(session)
    first = book.create_offer(seller, "wood", 1, "gold", 1)
    second = book.create_offer(seller, "wood", 2, "gold", 1)

    assert [o.id for o in book.list_offers()] == [second.id, first.id]
    assert [o.id for o in book.list_offers(limit=1)] == [second.id]


def test_npc_offers_are_not_persisted(session):
    book, _ = _book(session)
    offers = list(book.npc_offers(2, SeededRandomSource("npc")))
    assert len(offers) == 4
    assert book.list_offers() == []


def test_concurrent_buyers_never_oversell(session_factory, seller, make_kingdom):
    buyer_a = make_kingdom(10, gold=1000)
    buyer_b = make_kingdom(11, gold=1000)
    with session_factory() as setup, setup.begin():
        offer_id = MarketBook(setup, ResourceLedger(setup)).create_offer(
            seller, "wood", 10, "gold", 1
        ).id

    first = session_factory()
    second = session_factory()
    try:
        book_a, _ = _book(first)
        book_b, _ = _book(second)
        # Both requests see the full offer before either writes.
        assert book_a.get(offer_id).quantity == 10
        seen_by_b = book_b.get(offer_id)
        assert seen_by_b.quantity == 10

        book_a.buy(offer_id, buyer_a, 10)
        first.commit()

        book_b.get = lambda _offer_id: seen_by_b
        with pytest.raises(InsufficientOfferQuantity):
            book_b.buy(offer_id, buyer_b, 10)
        second.rollback()
    finally:
        first.close()
        second.close()

    with session_factory() as check:
        ledger = ResourceLedger(check)
        assert ledger.get(buyer_a, "wood") == 10
        assert ledger.get(buyer_b, "wood") == 0
        assert ledger.get(buyer_b, "gold") == 1000
        assert ledger.get(seller, "gold") == 10


def test_cancel_conflicts_with_a_concurrent_purchase(session_factory, seller, buyer):
    with session_factory() as setup, setup.begin():
        offer_id = MarketBook(setup, ResourceLedger(setup)).create_offer(
            seller, "wood", 10, "gold", 1
        ).id

    first = session_factory()
    second = session_factory()
    try:
        book_b, _ = _book(second)
        stale = book_b.get(offer_id)
        assert stale.quantity == 10

        book_a, _ = _book(first)
        book_a.buy(offer_id, buyer, 4)
        first.commit()

        book_b.get = lambda _offer_id: stale
        with pytest.raises(ConflictRetryable):
            book_b.cancel_offer(offer_id, seller)
        second.rollback()
    finally:
        first.close()
        second.close()

    with session_factory() as check:
        assert ResourceLedger(check).get(seller, "wood") == 90
        assert MarketBook(check, ResourceLedger(check)).get(offer_id).quantity == 6
