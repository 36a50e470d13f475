"""Pytest configuration and shared database fixtures.

This adds the `src/` directory to `sys.path` so tests can import the
`kingdoms` package without requiring an editable install in CI, and provides
file-backed SQLite databases so two sessions can interleave like two
concurrent requests.
"""

import sys
from pathlib import Path

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import pytest  # noqa: E402
from sqlalchemy import update  # noqa: E402

from kingdoms.config import Settings  # noqa: E402
from kingdoms.database import build_session_factory, create_db_engine, init_db  # noqa: E402
from kingdoms.models import (  # noqa: E402
    Alliance,
    AllianceMember,
    Building,
    Kingdom,
    ResourceBalance,
    UnitStock,
)
from kingdoms.services.transaction_service import TransactionCoordinator  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(database_url=f"sqlite:///{tmp_path / 'kingdoms.db'}", _env_file=None)


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def coordinator(session_factory):
    return TransactionCoordinator(session_factory)


@pytest.fixture
def make_kingdom(session_factory):
    """Insert a kingdom with explicit balances, bypassing the coordinator."""

    def _make(player_id: int, name: str | None = None, level: int = 1, **balances: int) -> int:
        with session_factory() as session, session.begin():
            kingdom = Kingdom(player_id=player_id, name=name or f"Kingdom {player_id}", level=level)
            session.add(kingdom)
            session.flush()
            for resource_type, amount in balances.items():
                session.add(
                    ResourceBalance(
                        kingdom_id=kingdom.id, resource_type=resource_type, amount=amount
                    )
                )
            return kingdom.id

    return _make


@pytest.fixture
def set_balance(session_factory):
    def _set(kingdom_id: int, resource_type: str, amount: int) -> None:
        with session_factory() as session, session.begin():
            session.execute(
                update(ResourceBalance)
                .where(
                    ResourceBalance.kingdom_id == kingdom_id,
                    ResourceBalance.resource_type == resource_type,
                )
                .values(amount=amount)
            )

    return _set


@pytest.fixture
def give_units(session_factory):
    def _give(kingdom_id: int, unit_type: str, quantity: int, level: int = 1) -> None:
        with session_factory() as session, session.begin():
            session.add(
                UnitStock(
                    kingdom_id=kingdom_id, unit_type=unit_type, quantity=quantity, level=level
                )
            )

    return _give


@pytest.fixture
def add_building(session_factory):
    def _add(kingdom_id: int, building_type: str, level: int = 1) -> int:
        with session_factory() as session, session.begin():
            building = Building(kingdom_id=kingdom_id, building_type=building_type, level=level)
            session.add(building)
            session.flush()
            return building.id

    return _add


@pytest.fixture
def make_alliance(session_factory):
    def _make(name: str, *player_ids: int) -> int:
        with session_factory() as session, session.begin():
            alliance = Alliance(name=name, leader_player_id=player_ids[0])
            session.add(alliance)
            session.flush()
            for index, player_id in enumerate(player_ids):
                session.add(
                    AllianceMember(
                        alliance_id=alliance.id,
                        player_id=player_id,
                        role="leader" if index == 0 else "member",
                    )
                )
            return alliance.id

    return _make
