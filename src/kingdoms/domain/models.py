"""Immutable snapshots returned by the engine.

ORM rows never leave a unit of work; services convert them into these frozen
dataclasses before the transaction ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class KingdomSnapshot:
    id: int
    player_id: int
    name: str
    level: int
    resources: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UnitStockSnapshot:
    kingdom_id: int
    unit_type: str
    quantity: int
    level: int
    training_in_progress: bool
    training_complete_at: datetime | None


@dataclass(frozen=True, slots=True)
class BuildingSnapshot:
    id: int
    kingdom_id: int
    building_type: str
    level: int
    position_x: int
    position_y: int


@dataclass(frozen=True, slots=True)
class OfferSnapshot:
    id: int
    seller_kingdom_id: int | None
    resource_type: str
    quantity: int
    price_type: str
    price_amount: int
    created_at: datetime | None

    @property
    def seller_type(self) -> str:
        return "NPC" if self.seller_kingdom_id is None else "Player"


@dataclass(frozen=True, slots=True)
class Settlement:
    """Result of a market purchase."""

    offer_id: int
    buyer_kingdom_id: int
    seller_kingdom_id: int | None
    resource_type: str
    quantity: int
    price_type: str
    total_price: int
    remaining_quantity: int


@dataclass(frozen=True, slots=True)
class CancellationReceipt:
    offer_id: int
    seller_kingdom_id: int
    resource_type: str
    refunded: int


@dataclass(frozen=True, slots=True)
class TransferReceipt:
    """Result of an alliance send (resources or units)."""

    from_kingdom_id: int
    to_kingdom_id: int
    kind: str  # "resource" or "unit"
    type: str
    amount: int


@dataclass(frozen=True, slots=True)
class BattleReport:
    """Immutable event describing one attack, mirroring its audit row."""

    id: int
    attacker_kingdom_id: int
    defender_kingdom_id: int
    status: str
    attacker_power: int
    defender_power: int
    attacker_losses: dict[str, int]
    defender_losses: dict[str, int]
    resources_stolen: dict[str, int]
    created_at: datetime | None

    @property
    def success(self) -> bool:
        return self.status == "completed"
