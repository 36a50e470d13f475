"""Immutable rule tables injected into the engine components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


def _frozen(table: dict) -> Mapping:
    return MappingProxyType(table)


@dataclass(frozen=True, slots=True)
class UnitProfile:
    """Combat stats and economy figures for a single unit type.

    ``cost`` and ``upgrade_cost`` are per unit and per level respectively.
    ``speed`` is carried for future use and plays no part in resolution.
    """

    attack: int
    defense: int
    speed: float
    cost: Mapping[str, int]
    training_seconds: int
    upgrade_cost: Mapping[str, int]


@dataclass(frozen=True, slots=True)
class BuildingProfile:
    """Construction cost of a building; upgrades cost ``cost`` times the level."""

    cost: Mapping[str, int]


def _default_units() -> Mapping[str, UnitProfile]:
    return _frozen(
        {
            "spearman": UnitProfile(
                attack=10,
                defense=5,
                speed=1.0,
                cost=_frozen({"gold": 100, "food": 50}),
                training_seconds=300,
                upgrade_cost=_frozen({"gold": 500, "food": 250}),
            ),
            "archer": UnitProfile(
                attack=15,
                defense=3,
                speed=1.2,
                cost=_frozen({"gold": 150, "food": 75}),
                training_seconds=450,
                upgrade_cost=_frozen({"gold": 750, "food": 375}),
            ),
            "cavalry": UnitProfile(
                attack=20,
                defense=8,
                speed=1.5,
                cost=_frozen({"gold": 200, "food": 100}),
                training_seconds=600,
                upgrade_cost=_frozen({"gold": 1000, "food": 500}),
            ),
            "shield_bearer": UnitProfile(
                attack=5,
                defense=15,
                speed=0.8,
                cost=_frozen({"gold": 250, "food": 125}),
                training_seconds=750,
                upgrade_cost=_frozen({"gold": 1250, "food": 625}),
            ),
        }
    )


def _default_buildings() -> Mapping[str, BuildingProfile]:
    return _frozen(
        {
            "town_hall": BuildingProfile(cost=_frozen({"gold": 1000, "wood": 500, "stone": 500})),
            "barracks": BuildingProfile(cost=_frozen({"gold": 300, "wood": 200, "stone": 100})),
            "hospital": BuildingProfile(cost=_frozen({"gold": 400, "wood": 300, "stone": 200})),
            "market": BuildingProfile(cost=_frozen({"gold": 500, "wood": 400, "stone": 300})),
            "school": BuildingProfile(cost=_frozen({"gold": 600, "wood": 500, "stone": 400})),
        }
    )


@dataclass(frozen=True, slots=True)
class EconomyRules:
    """Resource catalogue and the balances every new kingdom starts with."""

    resource_types: tuple[str, ...] = ("gold", "wood", "stone", "food")
    starting_balances: Mapping[str, int] = field(
        default_factory=lambda: _frozen({"gold": 1000, "wood": 500, "stone": 500, "food": 1000})
    )


@dataclass(frozen=True, slots=True)
class MilitaryRules:
    """Unit catalogue and training prerequisites."""

    units: Mapping[str, UnitProfile] = field(default_factory=_default_units)
    training_building: str | None = "barracks"


@dataclass(frozen=True, slots=True)
class BattleRules:
    """Parameters for attack resolution."""

    steal_percent: int = 20  # of each defender balance, floored
    history_limit: int = 50


@dataclass(frozen=True, slots=True)
class ConstructionRules:
    """Building catalogue."""

    buildings: Mapping[str, BuildingProfile] = field(default_factory=_default_buildings)


@dataclass(frozen=True, slots=True)
class MarketRules:
    """NPC offer generation figures."""

    npc_offer_count: int = 4
    npc_base_amounts: Mapping[str, int] = field(
        default_factory=lambda: _frozen({"gold": 100, "wood": 50, "stone": 50, "food": 75})
    )
    npc_level_bonus_percent: int = 10  # per kingdom level


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    economy: EconomyRules = field(default_factory=EconomyRules)
    military: MilitaryRules = field(default_factory=MilitaryRules)
    battle: BattleRules = field(default_factory=BattleRules)
    construction: ConstructionRules = field(default_factory=ConstructionRules)
    market: MarketRules = field(default_factory=MarketRules)


DEFAULT_RULES = RulesConfig()
