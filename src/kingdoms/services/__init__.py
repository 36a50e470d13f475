"""Service layer for the kingdom engine.

All services operate on a SQLAlchemy session owned by the caller; none of
them commits. The transaction coordinator owns sessions and transactions:

- ResourceLedger: Balances, conditional adjustments, joint spends, transfers
- UnitInventory: Training, completion, upgrades, losses, unit transfers
- MarketBook: Escrowed offers, partial fills, cancellation refunds, NPC offers
- SqlAllianceDirectory: Alliance membership lookups
- TransactionCoordinator: One retryable unit of work per player intent

Production Usage:
    from kingdoms.factory import create_coordinator
    coordinator = create_coordinator(session_factory)
    coordinator.train_units(player_id, kingdom_id, "spearman", 5)

Testing Usage:
    from kingdoms.factory import create_all_services
    services = create_all_services(session)
    services["ledger"].adjust(kingdom_id, "gold", -100)
"""

from kingdoms.services.alliance_service import SqlAllianceDirectory
from kingdoms.services.inventory_service import UnitInventory
from kingdoms.services.ledger_service import ResourceLedger
from kingdoms.services.market_service import MarketBook
from kingdoms.services.transaction_service import TransactionCoordinator, UnitOfWork

__all__ = [
    "MarketBook",
    "ResourceLedger",
    "SqlAllianceDirectory",
    "TransactionCoordinator",
    "UnitInventory",
    "UnitOfWork",
]
