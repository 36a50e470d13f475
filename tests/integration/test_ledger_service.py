"""Integration tests for the resource ledger."""

import pytest

from kingdoms.domain.errors import (
    ConflictRetryable,
    InsufficientResources,
    InvalidInput,
    InvalidResourceType,
)
from kingdoms.services.ledger_service import ResourceLedger


@pytest.fixture
def kingdoms(make_kingdom):
    return (
        make_kingdom(1, gold=100, wood=50),
        make_kingdom(2, gold=10),
    )


def test_missing_row_reads_as_zero(session, kingdoms):
    ledger = ResourceLedger(session)
    assert ledger.get(kingdoms[1], "stone") == 0
    assert ledger.balances(kingdoms[0]) == {"gold": 100, "wood": 50}


def test_adjust_credits_and_debits(session, kingdoms):
    ledger = ResourceLedger(session)
    assert ledger.adjust(kingdoms[0], "gold", 25) == 125
    assert ledger.adjust(kingdoms[0], "gold", -125) == 0


def test_adjust_refuses_to_go_negative(session, kingdoms):
    ledger = ResourceLedger(session)
    with pytest.raises(InsufficientResources) as excinfo:
        ledger.adjust(kingdoms[0], "gold", -101)
    assert excinfo.value.details["available"] == 100
    assert ledger.get(kingdoms[0], "gold") == 100


def test_debit_of_missing_row_is_insufficient(session, kingdoms):
    with pytest.raises(InsufficientResources):
        ResourceLedger(session).adjust(kingdoms[1], "stone", -1)


def test_credit_creates_missing_row(session, kingdoms):
    ledger = ResourceLedger(session)
    assert ledger.adjust(kingdoms[1], "stone", 40) == 40
    session.commit()
    assert ResourceLedger(session).get(kingdoms[1], "stone") == 40


def test_unknown_resource_type(session, kingdoms):
    with pytest.raises(InvalidResourceType):
        ResourceLedger(session).adjust(kingdoms[0], "mana", 1)


def test_transfer_conserves_total(session, kingdoms):
    ledger = ResourceLedger(session)
    before = ledger.get(kingdoms[0], "gold") + ledger.get(kingdoms[1], "gold")

    ledger.transfer(kingdoms[0], kingdoms[1], "gold", 60)

    assert ledger.get(kingdoms[0], "gold") == 40
    assert ledger.get(kingdoms[1], "gold") == 70
    assert ledger.get(kingdoms[0], "gold") + ledger.get(kingdoms[1], "gold") == before


def test_transfer_never_partially_applies(session, kingdoms):
    ledger = ResourceLedger(session)
    with pytest.raises(InsufficientResources):
        ledger.transfer(kingdoms[1], kingdoms[0], "gold", 11)
    assert ledger.get(kingdoms[0], "gold") == 100
    assert ledger.get(kingdoms[1], "gold") == 10


@pytest.mark.parametrize("amount", [0, -5])
def test_transfer_requires_positive_amount(session, kingdoms, amount):
    with pytest.raises(InvalidInput):
        ResourceLedger(session).transfer(kingdoms[0], kingdoms[1], "gold", amount)


def test_transfer_to_self_is_invalid(session, kingdoms):
    with pytest.raises(InvalidInput):
        ResourceLedger(session).transfer(kingdoms[0], kingdoms[0], "gold", 1)


def test_spend_checks_every_resource_before_deducting(session, kingdoms):
    ledger = ResourceLedger(session)
    with pytest.raises(InsufficientResources) as excinfo:
        ledger.spend(kingdoms[0], {"gold": 50, "wood": 60, "stone": 1})

    assert set(excinfo.value.details["shortfalls"]) == {"wood", "stone"}
    assert ledger.balances(kingdoms[0]) == {"gold": 100, "wood": 50}


def test_spend_deducts_all_costs(session, kingdoms):
    ledger = ResourceLedger(session)
    ledger.spend(kingdoms[0], {"gold": 100, "wood": 1})
    assert ledger.balances(kingdoms[0]) == {"gold": 0, "wood": 49}


def test_concurrent_spends_cannot_overdraw(session_factory, kingdoms):
    """Two requests that both saw 100 gold cannot both spend 70."""
    first = session_factory()
    second = session_factory()
    try:
        ledger_a = ResourceLedger(first)
        ledger_b = ResourceLedger(second)
        assert ledger_a.get(kingdoms[0], "gold") == 100
        assert ledger_b.get(kingdoms[0], "gold") == 100

        ledger_a.adjust(kingdoms[0], "gold", -70)
        first.commit()

        with pytest.raises(InsufficientResources):
            ledger_b.adjust(kingdoms[0], "gold", -70)
        second.rollback()
    finally:
        first.close()
        second.close()

    with session_factory() as check:
        assert ResourceLedger(check).get(kingdoms[0], "gold") == 30


def test_stale_joint_spend_rolls_back(session_factory, kingdoms):
    """The joint check passes on a stale view but the conditional debit still fails."""
    first = session_factory()
    second = session_factory()
    try:
        assert ResourceLedger(second).shortfalls(kingdoms[0], {"gold": 80, "wood": 10}) == {}

        ResourceLedger(first).adjust(kingdoms[0], "gold", -50)
        first.commit()

        ledger_b = ResourceLedger(second)
        with pytest.raises(InsufficientResources):
            ledger_b.adjust(kingdoms[0], "wood", -10)
            ledger_b.adjust(kingdoms[0], "gold", -80)
        second.rollback()
    finally:
        first.close()
        second.close()

    with session_factory() as check:
        assert ResourceLedger(check).balances(kingdoms[0]) == {"gold": 50, "wood": 50}


def test_concurrent_row_creation_is_retryable(session_factory, kingdoms):
    first = session_factory()
    second = session_factory()
    try:
        ResourceLedger(first).adjust(kingdoms[1], "food", 5)
        first.commit()

        # The second request decided to insert before the first committed.
        ledger_b = ResourceLedger(second)
        with pytest.raises(ConflictRetryable):
            ledger_b._create_row(kingdoms[1], "food", 7)
        second.rollback()
    finally:
        first.close()
        second.close()
