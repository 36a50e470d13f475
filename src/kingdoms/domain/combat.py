"""Combat resolution rules.

Pure functions only: the resolver never touches storage, so the same inputs
always yield the same :class:`CombatOutcome`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from kingdoms.domain.errors import InvalidInput, InvalidUnitType
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig, UnitProfile


@dataclass(frozen=True, slots=True)
class DeclaredUnit:
    """A unit type and quantity an attacker commits to a battle."""

    unit_type: str
    quantity: int


@dataclass(frozen=True, slots=True)
class CombatOutcome:
    """Summary of a resolved battle."""

    success: bool
    attacker_power: int
    defender_power: int
    attacker_losses: dict[str, int] = field(default_factory=dict)
    defender_losses: dict[str, int] = field(default_factory=dict)
    stolen_resources: dict[str, int] = field(default_factory=dict)

    @property
    def winner(self) -> str:
        return "attacker" if self.success else "defender"


def merge_declared_units(units: Iterable[DeclaredUnit]) -> dict[str, int]:
    """Collapse a declaration into ``{unit_type: quantity}``, summing repeats."""

    merged: dict[str, int] = {}
    for unit in units:
        if unit.quantity <= 0:
            raise InvalidInput(
                "declared unit quantities must be positive",
                {"unit_type": unit.unit_type, "quantity": unit.quantity},
            )
        merged[unit.unit_type] = merged.get(unit.unit_type, 0) + unit.quantity
    return merged


def _profile(unit_type: str, rules: RulesConfig) -> UnitProfile:
    try:
        return rules.military.units[unit_type]
    except KeyError:
        raise InvalidUnitType(f"unknown unit type: {unit_type}", {"unit_type": unit_type}) from None


def attack_power(units: Mapping[str, int], rules: RulesConfig = DEFAULT_RULES) -> int:
    """Sum of attack times quantity."""

    return sum(_profile(unit_type, rules).attack * qty for unit_type, qty in units.items())


def defense_power(units: Mapping[str, int], rules: RulesConfig = DEFAULT_RULES) -> int:
    """Sum of defense times quantity."""

    return sum(_profile(unit_type, rules).defense * qty for unit_type, qty in units.items())


def apply_loss_ratio(
    units: Mapping[str, int], numerator: int, denominator: int
) -> dict[str, int]:
    """Floor ``quantity * numerator / denominator`` independently per unit type.

    Remainders are not redistributed, so the total can fall short of the
    theoretical ratio by up to one unit per type.
    """

    return {unit_type: qty * numerator // denominator for unit_type, qty in units.items()}


def compute_plunder(
    balances: Mapping[str, int], rules: RulesConfig = DEFAULT_RULES
) -> dict[str, int]:
    """Resources taken from a defeated kingdom, floored per type; zeros omitted."""

    percent = rules.battle.steal_percent
    plunder: dict[str, int] = {}
    for resource_type, amount in balances.items():
        stolen = amount * percent // 100
        if stolen > 0:
            plunder[resource_type] = stolen
    return plunder


def resolve_combat(
    attacker_units: Mapping[str, int],
    defender_units: Mapping[str, int],
    defender_resources: Mapping[str, int] | None = None,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> CombatOutcome:
    """Resolve an attack using the power-ratio model.

    Args:
        attacker_units: Declared attacking units ``{unit_type: quantity}``
        defender_units: The defender's whole inventory ``{unit_type: quantity}``
        defender_resources: Defender balances before the battle; only used when
            the attacker wins
        rules: Rule tables supplying unit stats and the steal percentage

    Returns:
        CombatOutcome with per-type losses for both sides and, on success,
        the plunder taken from ``defender_resources``.

    Raises:
        InvalidUnitType: If either side lists a unit type absent from the rules
        InvalidInput: If both sides have zero power
    """

    attacker_power = attack_power(attacker_units, rules)
    defender_power = defense_power(defender_units, rules)
    total_power = attacker_power + defender_power
    if total_power == 0:
        raise InvalidInput(
            "no meaningful battle possible: both sides have zero power",
            {"attacker_power": attacker_power, "defender_power": defender_power},
        )

    success = attacker_power > defender_power
    stolen = compute_plunder(defender_resources or {}, rules) if success else {}

    return CombatOutcome(
        success=success,
        attacker_power=attacker_power,
        defender_power=defender_power,
        attacker_losses=apply_loss_ratio(attacker_units, defender_power, total_power),
        defender_losses=apply_loss_ratio(defender_units, attacker_power, total_power),
        stolen_resources=stolen,
    )
