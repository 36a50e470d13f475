"""Service Factory for the kingdom engine.

This module provides factory functions for creating service instances with
proper dependency wiring. Use these functions in production code to ensure
all service dependencies are correctly initialized.

For testing, inject protocol-based fakes instead of using these factories.

Example:
    # Production usage
    from kingdoms.factory import create_coordinator
    coordinator = create_coordinator(session_factory)

    # Testing usage
    from kingdoms.services.transaction_service import TransactionCoordinator

    class FakeAlliances:
        def __init__(self, session):
            pass

        def is_member(self, alliance_id, player_id):
            return True

    coordinator = TransactionCoordinator(
        session_factory, alliance_directory_factory=FakeAlliances
    )
"""

from sqlalchemy.orm import Session, sessionmaker

from kingdoms.config import Settings, get_settings
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig
from kingdoms.services.alliance_service import SqlAllianceDirectory
from kingdoms.services.inventory_service import UnitInventory
from kingdoms.services.ledger_service import ResourceLedger
from kingdoms.services.market_service import MarketBook
from kingdoms.services.transaction_service import TransactionCoordinator


def create_ledger(session: Session, rules: RulesConfig = DEFAULT_RULES) -> ResourceLedger:
    """Create a ResourceLedger bound to a session.

    Args:
        session: Database session
        rules: Rule tables

    Returns:
        Fully initialized ResourceLedger
    """
    return ResourceLedger(session, rules)


def create_inventory(session: Session, rules: RulesConfig = DEFAULT_RULES) -> UnitInventory:
    """Create a UnitInventory with all dependencies.

    Args:
        session: Database session
        rules: Rule tables

    Returns:
        Fully initialized UnitInventory with ResourceLedger dependency
    """
    return UnitInventory(session, create_ledger(session, rules), rules)


def create_market(session: Session, rules: RulesConfig = DEFAULT_RULES) -> MarketBook:
    """Create a MarketBook with all dependencies.

    Args:
        session: Database session
        rules: Rule tables

    Returns:
        Fully initialized MarketBook with ResourceLedger dependency
    """
    return MarketBook(session, create_ledger(session, rules), rules)


def create_coordinator(
    session_factory: sessionmaker[Session],
    rules: RulesConfig = DEFAULT_RULES,
    settings: Settings | None = None,
) -> TransactionCoordinator:
    """Create the TransactionCoordinator used by the HTTP layer.

    Args:
        session_factory: Session factory every intent opens its session from
        rules: Rule tables
        settings: Runtime settings supplying the retry budget

    Returns:
        TransactionCoordinator reading alliance membership from the database
    """
    settings = settings or get_settings()
    return TransactionCoordinator(
        session_factory,
        rules,
        alliance_directory_factory=SqlAllianceDirectory,
        retry_attempts=settings.conflict_retry_attempts,
    )


def create_all_services(session: Session, rules: RulesConfig = DEFAULT_RULES) -> dict:
    """Create the per-session services sharing one ledger.

    Args:
        session: Database session
        rules: Rule tables

    Returns:
        Dictionary containing all initialized services:
        - ledger: ResourceLedger
        - inventory: UnitInventory
        - market: MarketBook
        - alliances: SqlAllianceDirectory
    """
    ledger = create_ledger(session, rules)
    return {
        "ledger": ledger,
        "inventory": UnitInventory(session, ledger, rules),
        "market": MarketBook(session, ledger, rules),
        "alliances": SqlAllianceDirectory(session),
    }
