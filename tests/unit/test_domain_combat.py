"""Unit tests for combat resolution."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kingdoms.domain.combat import (
    DeclaredUnit,
    apply_loss_ratio,
    attack_power,
    compute_plunder,
    defense_power,
    merge_declared_units,
    resolve_combat,
)
from kingdoms.domain.errors import InvalidInput, InvalidUnitType
from kingdoms.domain.rules_config import BattleRules, RulesConfig

UNIT_TYPES = ["spearman", "archer", "cavalry", "shield_bearer"]


def test_power_uses_attack_for_attackers_and_defense_for_defenders():
    units = {"spearman": 10, "shield_bearer": 2}
    assert attack_power(units) == 10 * 10 + 5 * 2
    assert defense_power(units) == 5 * 10 + 15 * 2


def test_attacker_victory_with_power_ratio_losses():
    outcome = resolve_combat({"spearman": 10}, {"spearman": 10}, {"gold": 1000})

    assert outcome.attacker_power == 100
    assert outcome.defender_power == 50
    assert outcome.success is True
    assert outcome.winner == "attacker"
    # floor(10 * 50/150) and floor(10 * 100/150)
    assert outcome.attacker_losses == {"spearman": 3}
    assert outcome.defender_losses == {"spearman": 6}
    assert outcome.stolen_resources == {"gold": 200}


def test_shield_bearers_hold_against_equal_spearmen():
    outcome = resolve_combat({"spearman": 10}, {"shield_bearer": 10}, {"gold": 1000})

    assert outcome.attacker_power == 100
    assert outcome.defender_power == 150
    assert outcome.success is False
    assert outcome.attacker_losses == {"spearman": 6}
    assert outcome.defender_losses == {"shield_bearer": 4}
    assert outcome.stolen_resources == {}


def test_tie_goes_to_defender():
    outcome = resolve_combat({"spearman": 10}, {"spearman": 20}, {"gold": 500})

    assert outcome.attacker_power == outcome.defender_power == 100
    assert outcome.success is False
    assert outcome.attacker_losses == {"spearman": 5}
    assert outcome.defender_losses == {"spearman": 10}
    assert outcome.stolen_resources == {}


def test_losses_floor_independently_per_type():
    # attacker power 10*3 + 15*3 = 75, defender 5*5 = 25, total 100
    outcome = resolve_combat({"spearman": 3, "archer": 3}, {"spearman": 5})

    assert outcome.attacker_losses == {"spearman": 0, "archer": 0}
    assert outcome.defender_losses == {"spearman": 3}


def test_undefended_kingdom_loses_nothing_but_resources():
    outcome = resolve_combat({"cavalry": 2}, {}, {"gold": 99, "food": 10})

    assert outcome.success is True
    assert outcome.attacker_losses == {"cavalry": 0}
    assert outcome.defender_losses == {}
    assert outcome.stolen_resources == {"gold": 19, "food": 2}


def test_zero_power_on_both_sides_is_invalid():
    with pytest.raises(InvalidInput):
        resolve_combat({}, {})
    with pytest.raises(InvalidInput):
        resolve_combat({"archer": 0}, {"cavalry": 0})


def test_unknown_unit_type_is_rejected():
    with pytest.raises(InvalidUnitType):
        resolve_combat({"dragon": 1}, {"spearman": 1})
    with pytest.raises(InvalidUnitType):
        resolve_combat({"spearman": 1}, {"dragon": 1})


def test_plunder_floors_and_skips_empty_types():
    assert compute_plunder({"gold": 1000, "wood": 4, "stone": 0, "food": 5}) == {
        "gold": 200,
        "food": 1,
    }


def test_steal_percent_comes_from_rules():
    rules = RulesConfig(battle=BattleRules(steal_percent=50))
    outcome = resolve_combat({"spearman": 10}, {}, {"gold": 101}, rules=rules)
    assert outcome.stolen_resources == {"gold": 50}


def test_apply_loss_ratio_handles_zero_numerator():
    assert apply_loss_ratio({"spearman": 7}, 0, 70) == {"spearman": 0}


def test_merge_declared_units_sums_repeats():
    merged = merge_declared_units(
        [DeclaredUnit("spearman", 3), DeclaredUnit("archer", 1), DeclaredUnit("spearman", 2)]
    )
    assert merged == {"spearman": 5, "archer": 1}


@pytest.mark.parametrize("quantity", [0, -1])
def test_merge_declared_units_rejects_non_positive_quantities(quantity):
    with pytest.raises(InvalidInput):
        merge_declared_units([DeclaredUnit("spearman", quantity)])


def test_resolution_is_deterministic():
    args = ({"archer": 7, "cavalry": 3}, {"shield_bearer": 4, "spearman": 9}, {"gold": 333})
    assert resolve_combat(*args) == resolve_combat(*args)


armies = st.dictionaries(st.sampled_from(UNIT_TYPES), st.integers(min_value=0, max_value=500))
balances = st.dictionaries(
    st.sampled_from(["gold", "wood", "stone", "food"]), st.integers(min_value=0, max_value=10**6)
)


@given(attacker=armies, defender=armies, resources=balances)
def test_resolver_properties(attacker, defender, resources):
    if attack_power(attacker) + defense_power(defender) == 0:
        with pytest.raises(InvalidInput):
            resolve_combat(attacker, defender, resources)
        return

    outcome = resolve_combat(attacker, defender, resources)

    assert outcome.success == (outcome.attacker_power > outcome.defender_power)
    for unit_type, lost in outcome.attacker_losses.items():
        assert 0 <= lost <= attacker[unit_type]
    for unit_type, lost in outcome.defender_losses.items():
        assert 0 <= lost <= defender[unit_type]
    if not outcome.success:
        assert outcome.stolen_resources == {}
    for resource_type, stolen in outcome.stolen_resources.items():
        assert stolen == resources[resource_type] * 20 // 100
        assert 0 < stolen <= resources[resource_type]
