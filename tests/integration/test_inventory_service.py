"""Integration tests for the unit inventory."""

from datetime import UTC, datetime, timedelta

import pytest

from kingdoms.domain.errors import (
    ConflictRetryable,
    InsufficientResources,
    InsufficientUnits,
    InvalidInput,
    InvalidUnitType,
    UnitNotFound,
)
from kingdoms.models import ensure_utc
from kingdoms.services.inventory_service import UnitInventory
from kingdoms.services.ledger_service import ResourceLedger

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _inventory(session, now=NOW):
    ledger = ResourceLedger(session, clock=lambda: now)
    return UnitInventory(session, ledger, clock=lambda: now), ledger


@pytest.fixture
def kingdom(make_kingdom):
    return make_kingdom(1, gold=5000, food=5000)


def test_train_credits_quantity_and_starts_timer(session, kingdom):
    inventory, ledger = _inventory(session)

    stock = inventory.train(kingdom, "archer", 4)

    assert stock.quantity == 4
    assert stock.level == 1
    assert stock.training_in_progress is True
    assert ensure_utc(stock.training_complete_at) == NOW + timedelta(seconds=450 * 4)
    assert ledger.balances(kingdom) == {"gold": 5000 - 600, "food": 5000 - 300}


def test_training_again_adds_to_existing_stock(session, kingdom):
    inventory, _ = _inventory(session)
    inventory.train(kingdom, "spearman", 2)
    later = NOW + timedelta(minutes=1)

    stock = inventory.train(kingdom, "spearman", 3, now=later)

    assert stock.quantity == 5
    assert ensure_utc(stock.training_complete_at) == later + timedelta(seconds=900)


def test_train_with_insufficient_gold_changes_nothing(session, make_kingdom):
    poor = make_kingdom(2, gold=99, food=5000)
    inventory, ledger = _inventory(session)

    with pytest.raises(InsufficientResources):
        inventory.train(poor, "spearman", 1)

    assert ledger.balances(poor) == {"gold": 99, "food": 5000}
    assert inventory.get(poor, "spearman") is None


def test_train_validates_type_and_quantity(session, kingdom):
    inventory, _ = _inventory(session)
    with pytest.raises(InvalidUnitType):
        inventory.train(kingdom, "dragon", 1)
    with pytest.raises(InvalidInput):
        inventory.train(kingdom, "spearman", 0)


def test_complete_training_clears_due_flags_only(session, kingdom):
    inventory, _ = _inventory(session)
    inventory.train(kingdom, "spearman", 1)  # due at +300s
    inventory.train(kingdom, "cavalry", 1)  # due at +600s

    completed = inventory.complete_training(kingdom, now=NOW + timedelta(seconds=300))

    assert [s.unit_type for s in completed] == ["spearman"]
    assert completed[0].training_in_progress is False
    assert completed[0].training_complete_at is None
    assert completed[0].quantity == 1
    assert inventory.get(kingdom, "cavalry").training_in_progress is True


def test_complete_training_is_idempotent(session, kingdom):
    inventory, _ = _inventory(session)
    inventory.train(kingdom, "spearman", 2)
    later = NOW + timedelta(hours=1)

    assert len(inventory.complete_training(kingdom, now=later)) == 1
    assert inventory.complete_training(kingdom, now=later) == []
    assert inventory.get(kingdom, "spearman").quantity == 2


def test_upgrade_prices_by_current_level(session, kingdom):
    inventory, ledger = _inventory(session)
    inventory.train(kingdom, "spearman", 1)  # 100 gold, 50 food

    assert inventory.upgrade(kingdom, "spearman").level == 2  # 500 gold, 250 food
    assert inventory.upgrade(kingdom, "spearman").level == 3  # 1000 gold, 500 food

    assert ledger.balances(kingdom) == {"gold": 5000 - 1600, "food": 5000 - 800}


def test_upgrade_missing_stock(session, kingdom):
    inventory, _ = _inventory(session)
    with pytest.raises(UnitNotFound):
        inventory.upgrade(kingdom, "archer")


def test_upgrade_conflicts_when_level_moves(session_factory, kingdom, give_units):
    give_units(kingdom, "archer", 5)
    first = session_factory()
    second = session_factory()
    try:
        inventory_b, _ = _inventory(second)
        observed = inventory_b.get(kingdom, "archer")
        assert observed.level == 1

        inventory_a, _ = _inventory(first)
        inventory_a.upgrade(kingdom, "archer")
        first.commit()

        # Pin the second request to the level it saw before the first committed.
        inventory_b.get = lambda kingdom_id, unit_type: observed
        with pytest.raises(ConflictRetryable):
            inventory_b.upgrade(kingdom, "archer")
        second.rollback()
    finally:
        first.close()
        second.close()


def test_remove_refuses_to_go_negative(session, kingdom, give_units):
    give_units(kingdom, "cavalry", 3)
    inventory, _ = _inventory(session)

    with pytest.raises(InsufficientUnits):
        inventory.remove(kingdom, "cavalry", 4)
    inventory.remove(kingdom, "cavalry", 3)
    assert inventory.get(kingdom, "cavalry").quantity == 0


def test_transfer_creates_destination_at_source_level(session, make_kingdom, give_units):
    source = make_kingdom(1)
    target = make_kingdom(2)
    give_units(source, "cavalry", 10, level=3)
    inventory, _ = _inventory(session)

    inventory.transfer(source, target, "cavalry", 4)

    assert inventory.get(source, "cavalry").quantity == 6
    moved = inventory.get(target, "cavalry")
    assert (moved.quantity, moved.level) == (4, 3)


def test_transfer_keeps_destination_level(session, make_kingdom, give_units):
    source = make_kingdom(1)
    target = make_kingdom(2)
    give_units(source, "archer", 10, level=4)
    give_units(target, "archer", 1, level=1)
    inventory, _ = _inventory(session)

    inventory.transfer(source, target, "archer", 5)

    moved = inventory.get(target, "archer")
    assert (moved.quantity, moved.level) == (6, 1)
    assert inventory.get(source, "archer").level == 4


def test_transfer_insufficient_units(session, make_kingdom, give_units):
    source = make_kingdom(1)
    target = make_kingdom(2)
    give_units(source, "archer", 2)
    inventory, _ = _inventory(session)

    with pytest.raises(InsufficientUnits):
        inventory.transfer(source, target, "archer", 3)
    assert inventory.get(target, "archer") is None
