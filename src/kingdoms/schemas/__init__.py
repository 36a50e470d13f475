from .alliance import ResourceSend, TransferRead, UnitSend
from .battle import AttackCreate, BattleRead, DeclaredUnitIn
from .building import BuildingCreate, BuildingRead
from .kingdom import KingdomCreate, KingdomRead
from .market import (
    CancellationRead,
    NpcOfferRead,
    OfferBuy,
    OfferCreate,
    OfferRead,
    SettlementRead,
)
from .unit import UnitRead, UnitTrain

__all__ = [
    "AttackCreate",
    "BattleRead",
    "BuildingCreate",
    "BuildingRead",
    "CancellationRead",
    "DeclaredUnitIn",
    "KingdomCreate",
    "KingdomRead",
    "NpcOfferRead",
    "OfferBuy",
    "OfferCreate",
    "OfferRead",
    "ResourceSend",
    "SettlementRead",
    "TransferRead",
    "UnitRead",
    "UnitSend",
    "UnitTrain",
]
