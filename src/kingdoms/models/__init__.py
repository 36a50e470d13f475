"""SQLAlchemy models for the kingdom engine.

This module exports all database models and the declarative base.
"""

# Alliance models (read-only for the engine)
from .alliance import Alliance, AllianceMember
from .base import AuditMixin, Base, CreatedAtMixin, at_least, ensure_utc, utc_now

# Battle audit log
from .battle import BattleRecord

# Kingdom models
from .kingdom import Building, Kingdom

# Ledger models
from .ledger import ResourceBalance

# Market models
from .market import MarketOffer

# Inventory models
from .unit import UnitStock

__all__ = [
    "Alliance",
    "AllianceMember",
    "Base",
    "BattleRecord",
    "Building",
    "Kingdom",
    "MarketOffer",
    "ResourceBalance",
    "CreatedAtMixin",
    "at_least",
    "AuditMixin",
    "UnitStock",
    "ensure_utc",
    "utc_now",
]
