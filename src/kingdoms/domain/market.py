"""NPC market offer generation."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from kingdoms.domain.errors import InvalidInput
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig
from kingdoms.utils.rng import RandomSource


@dataclass(frozen=True, slots=True)
class NpcOffer:
    """A synthetic offer; never escrowed and never persisted."""

    resource_type: str
    quantity: int
    price_type: str
    price_amount: int
    seller_type: str = "NPC"


def scale_for_level(base: int, kingdom_level: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    """``floor(base * (1 + level * bonus%))`` in integer arithmetic."""

    bonus = rules.market.npc_level_bonus_percent
    return base * (100 + kingdom_level * bonus) // 100


def generate_npc_offers(
    kingdom_level: int,
    random_source: RandomSource,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> Iterator[NpcOffer]:
    """Lazily yield NPC offers scaled to ``kingdom_level``.

    Each offer sells a randomly chosen resource and asks for a different,
    randomly chosen resource in return. Arguments are checked on call; the
    offers themselves are drawn as the result is iterated.
    """

    if kingdom_level < 1:
        raise InvalidInput("kingdom level must be at least 1", {"kingdom_level": kingdom_level})

    bases = rules.market.npc_base_amounts
    resource_types = [r for r in rules.economy.resource_types if r in bases]
    if len(resource_types) < 2:
        raise InvalidInput("NPC market needs at least two priced resource types")

    return _draw_offers(kingdom_level, random_source, bases, resource_types, rules)


def _draw_offers(
    kingdom_level: int,
    random_source: RandomSource,
    bases: Mapping[str, int],
    resource_types: list[str],
    rules: RulesConfig,
) -> Iterator[NpcOffer]:
    for _ in range(rules.market.npc_offer_count):
        sell = random_source.choice(resource_types)
        price_type = random_source.choice([r for r in resource_types if r != sell])
        yield NpcOffer(
            resource_type=sell,
            quantity=scale_for_level(bases[sell], kingdom_level, rules),
            price_type=price_type,
            price_amount=scale_for_level(bases[price_type], kingdom_level, rules),
        )
