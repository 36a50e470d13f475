"""Transaction Coordinator.

Entry point for every player intent. Each intent runs as one unit of work:
a fresh session, one ``session.begin()`` transaction, the services bound to
that session, and frozen snapshots as the result. Any exception rolls the
whole unit back. :class:`ConflictRetryable` is the only error that causes a
re-run, bounded by ``retry_attempts``.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from kingdoms.domain.combat import DeclaredUnit, merge_declared_units, resolve_combat
from kingdoms.domain.errors import (
    BuildingNotFound,
    ConflictRetryable,
    EngineError,
    InsufficientResources,
    InsufficientUnits,
    InvalidBuildingType,
    InvalidInput,
    InvalidUnits,
    KingdomAlreadyExists,
    KingdomNotFound,
    MissingPrerequisite,
    NotAMember,
    NotAuthorized,
)
from kingdoms.domain.market import NpcOffer
from kingdoms.domain.models import (
    BattleReport,
    BuildingSnapshot,
    CancellationReceipt,
    KingdomSnapshot,
    OfferSnapshot,
    Settlement,
    TransferReceipt,
    UnitStockSnapshot,
)
from kingdoms.domain.rules_config import DEFAULT_RULES, BuildingProfile, RulesConfig
from kingdoms.interfaces import IAllianceDirectory
from kingdoms.models import (
    BattleRecord,
    Building,
    Kingdom,
    MarketOffer,
    ResourceBalance,
    ensure_utc,
    utc_now,
)
from kingdoms.services.alliance_service import SqlAllianceDirectory
from kingdoms.services.inventory_service import UnitInventory, snapshot_stock
from kingdoms.services.ledger_service import ResourceLedger
from kingdoms.services.market_service import MarketBook, snapshot_offer
from kingdoms.utils.rng import RandomSource, SeededRandomSource, SystemRandomSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class UnitOfWork:
    """Services bound to the session of a single intent."""

    session: Session
    ledger: ResourceLedger
    inventory: UnitInventory
    market: MarketBook
    alliances: IAllianceDirectory


def snapshot_building(building: Building) -> BuildingSnapshot:
    return BuildingSnapshot(
        id=building.id,
        kingdom_id=building.kingdom_id,
        building_type=building.building_type,
        level=building.level,
        position_x=building.position_x,
        position_y=building.position_y,
    )


def snapshot_battle(record: BattleRecord) -> BattleReport:
    units_lost = record.units_lost or {}
    return BattleReport(
        id=record.id,
        attacker_kingdom_id=record.attacker_kingdom_id,
        defender_kingdom_id=record.defender_kingdom_id,
        status=record.status,
        attacker_power=record.attacker_power,
        defender_power=record.defender_power,
        attacker_losses=dict(units_lost.get("attacker", {})),
        defender_losses=dict(units_lost.get("defender", {})),
        resources_stolen=dict(record.resources_stolen or {}),
        created_at=ensure_utc(record.created_at),
    )


class TransactionCoordinator:
    """Runs player intents as isolated, retryable units of work.

    Args:
        session_factory: Creates the session each attempt runs in
        rules: Rule tables shared by every service
        clock: Source of "now" for timers and timestamps
        alliance_directory_factory: Builds the membership lookup for a session
        random_source_factory: Builds the random source for NPC offers from a
            kingdom id; ``None`` uses an unseeded source
        retry_attempts: Total attempts per intent when it hits a conflict
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        rules: RulesConfig = DEFAULT_RULES,
        *,
        clock: Callable[[], datetime] = utc_now,
        alliance_directory_factory: Callable[[Session], IAllianceDirectory] = SqlAllianceDirectory,
        random_source_factory: Callable[[int], RandomSource] | None = None,
        retry_attempts: int = 3,
    ):
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self.session_factory = session_factory
        self.rules = rules
        self.clock = clock
        self.alliance_directory_factory = alliance_directory_factory
        self.random_source_factory = random_source_factory
        self.retry_attempts = retry_attempts

    # ------------------------------------------------------------------
    # Unit of work plumbing
    # ------------------------------------------------------------------

    def _open(self, session: Session) -> UnitOfWork:
        ledger = ResourceLedger(session, self.rules, self.clock)
        return UnitOfWork(
            session=session,
            ledger=ledger,
            inventory=UnitInventory(session, ledger, self.rules, self.clock),
            market=MarketBook(session, ledger, self.rules, self.clock),
            alliances=self.alliance_directory_factory(session),
        )

    def _run(self, intent: str, work: Callable[[UnitOfWork], T]) -> T:
        for attempt in range(1, self.retry_attempts + 1):
            session = self.session_factory()
            try:
                with session.begin():
                    result = work(self._open(session))
            except ConflictRetryable as exc:
                if attempt == self.retry_attempts:
                    logger.warning(
                        "%s gave up after %d conflicting attempts: %s", intent, attempt, exc
                    )
                    raise
                logger.warning("%s conflicted on attempt %d, retrying: %s", intent, attempt, exc)
                continue
            except EngineError as exc:
                logger.info("%s rejected (%s): %s", intent, exc.code, exc)
                raise
            finally:
                session.close()
            logger.info("%s committed", intent)
            return result
        raise AssertionError("unreachable")  # pragma: no cover

    def _read(self, work: Callable[[UnitOfWork], T]) -> T:
        session = self.session_factory()
        try:
            with session.begin():
                return work(self._open(session))
        finally:
            session.close()

    @staticmethod
    def _kingdom(session: Session, kingdom_id: int) -> Kingdom:
        kingdom = session.get(Kingdom, kingdom_id, populate_existing=True)
        if kingdom is None:
            raise KingdomNotFound(f"kingdom {kingdom_id} not found", {"kingdom_id": kingdom_id})
        return kingdom

    def _owned(self, session: Session, player_id: int, kingdom_id: int) -> Kingdom:
        kingdom = self._kingdom(session, kingdom_id)
        if kingdom.player_id != player_id:
            raise NotAuthorized(
                f"player {player_id} does not own kingdom {kingdom_id}",
                {"player_id": player_id, "kingdom_id": kingdom_id},
            )
        return kingdom

    def _building_profile(self, building_type: str) -> BuildingProfile:
        try:
            return self.rules.construction.buildings[building_type]
        except KeyError:
            raise InvalidBuildingType(
                f"unknown building type: {building_type}", {"building_type": building_type}
            ) from None

    def _snapshot_kingdom(self, uow: UnitOfWork, kingdom: Kingdom) -> KingdomSnapshot:
        return KingdomSnapshot(
            id=kingdom.id,
            player_id=kingdom.player_id,
            name=kingdom.name,
            level=kingdom.level,
            resources=uow.ledger.balances(kingdom.id),
        )

    # ------------------------------------------------------------------
    # Kingdoms
    # ------------------------------------------------------------------

    def create_kingdom(self, player_id: int, name: str) -> KingdomSnapshot:
        """Found a kingdom for a player and seed its starting balances."""
        name = (name or "").strip()
        if not name:
            raise InvalidInput("kingdom name must not be empty")

        def work(uow: UnitOfWork) -> KingdomSnapshot:
            existing = uow.session.scalar(select(Kingdom.id).where(Kingdom.player_id == player_id))
            if existing is not None:
                raise KingdomAlreadyExists(
                    f"player {player_id} already has a kingdom",
                    {"player_id": player_id, "kingdom_id": existing},
                )
            kingdom = Kingdom(player_id=player_id, name=name, level=1)
            uow.session.add(kingdom)
            try:
                uow.session.flush()
            except IntegrityError as exc:
                raise KingdomAlreadyExists(
                    f"player {player_id} already has a kingdom", {"player_id": player_id}
                ) from exc
            uow.ledger.open_accounts(kingdom.id, self.rules.economy.starting_balances)
            return self._snapshot_kingdom(uow, kingdom)

        return self._run("create_kingdom", work)

    def kingdom_overview(self, kingdom_id: int) -> KingdomSnapshot:
        return self._read(
            lambda uow: self._snapshot_kingdom(uow, self._kingdom(uow.session, kingdom_id))
        )

    def kingdom_for_player(self, player_id: int) -> KingdomSnapshot:
        def work(uow: UnitOfWork) -> KingdomSnapshot:
            kingdom = uow.session.scalar(select(Kingdom).where(Kingdom.player_id == player_id))
            if kingdom is None:
                raise KingdomNotFound(
                    f"player {player_id} has no kingdom", {"player_id": player_id}
                )
            return self._snapshot_kingdom(uow, kingdom)

        return self._read(work)

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def train_units(
        self, player_id: int, kingdom_id: int, unit_type: str, quantity: int
    ) -> UnitStockSnapshot:
        """Pay for a training batch; the units join the stockpile at once."""

        def work(uow: UnitOfWork) -> UnitStockSnapshot:
            self._owned(uow.session, player_id, kingdom_id)
            uow.inventory.profile(unit_type)
            required = self.rules.military.training_building
            if required is not None:
                has_building = uow.session.scalar(
                    select(Building.id)
                    .where(Building.kingdom_id == kingdom_id, Building.building_type == required)
                    .limit(1)
                )
                if has_building is None:
                    raise MissingPrerequisite(
                        f"training units requires a {required}",
                        {"kingdom_id": kingdom_id, "building_type": required},
                    )
            return snapshot_stock(uow.inventory.train(kingdom_id, unit_type, quantity))

        return self._run("train_units", work)

    def complete_training(self, player_id: int, kingdom_id: int) -> list[UnitStockSnapshot]:
        def work(uow: UnitOfWork) -> list[UnitStockSnapshot]:
            self._owned(uow.session, player_id, kingdom_id)
            return [snapshot_stock(s) for s in uow.inventory.complete_training(kingdom_id)]

        return self._run("complete_training", work)

    def upgrade_unit(self, player_id: int, kingdom_id: int, unit_type: str) -> UnitStockSnapshot:
        def work(uow: UnitOfWork) -> UnitStockSnapshot:
            self._owned(uow.session, player_id, kingdom_id)
            return snapshot_stock(uow.inventory.upgrade(kingdom_id, unit_type))

        return self._run("upgrade_unit", work)

    def list_units(self, kingdom_id: int) -> list[UnitStockSnapshot]:
        def work(uow: UnitOfWork) -> list[UnitStockSnapshot]:
            self._kingdom(uow.session, kingdom_id)
            return [snapshot_stock(s) for s in uow.inventory.stocks(kingdom_id)]

        return self._read(work)

    # ------------------------------------------------------------------
    # Buildings
    # ------------------------------------------------------------------

    def construct_building(
        self, player_id: int, kingdom_id: int, building_type: str, x: int, y: int
    ) -> BuildingSnapshot:
        """Place a new level-1 building after paying its full cost."""

        def work(uow: UnitOfWork) -> BuildingSnapshot:
            self._owned(uow.session, player_id, kingdom_id)
            profile = self._building_profile(building_type)
            uow.ledger.spend(kingdom_id, profile.cost)
            building = Building(
                kingdom_id=kingdom_id,
                building_type=building_type,
                level=1,
                position_x=x,
                position_y=y,
            )
            uow.session.add(building)
            uow.session.flush()
            return snapshot_building(building)

        return self._run("construct_building", work)

    def upgrade_building(
        self, player_id: int, kingdom_id: int, building_id: int
    ) -> BuildingSnapshot:
        """Raise a building one level; the price is the base cost times the current level."""

        def work(uow: UnitOfWork) -> BuildingSnapshot:
            self._owned(uow.session, player_id, kingdom_id)
            building = uow.session.get(Building, building_id, populate_existing=True)
            if building is None or building.kingdom_id != kingdom_id:
                raise BuildingNotFound(
                    f"building {building_id} not found in kingdom {kingdom_id}",
                    {"building_id": building_id, "kingdom_id": kingdom_id},
                )
            observed_level = building.level
            profile = self._building_profile(building.building_type)
            uow.ledger.spend(
                kingdom_id, {rt: base * observed_level for rt, base in profile.cost.items()}
            )
            result = uow.session.execute(
                update(Building)
                .where(Building.id == building_id, Building.level == observed_level)
                .values(level=observed_level + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictRetryable(
                    "building level changed during upgrade",
                    {"building_id": building_id, "observed": observed_level},
                )
            return snapshot_building(uow.session.get(Building, building_id, populate_existing=True))

        return self._run("upgrade_building", work)

    def list_buildings(self, kingdom_id: int) -> list[BuildingSnapshot]:
        def work(uow: UnitOfWork) -> list[BuildingSnapshot]:
            self._kingdom(uow.session, kingdom_id)
            buildings = uow.session.scalars(
                select(Building).where(Building.kingdom_id == kingdom_id).order_by(Building.id)
            )
            return [snapshot_building(b) for b in buildings]

        return self._read(work)

    # ------------------------------------------------------------------
    # Battles
    # ------------------------------------------------------------------

    def attack(
        self,
        player_id: int,
        attacker_kingdom_id: int,
        target_kingdom_id: int,
        units: Iterable[DeclaredUnit],
    ) -> BattleReport:
        """Resolve an attack and record it, whatever the outcome.

        Losses and plunder are computed from quantities and balances read in
        this transaction. If a concurrent request changes them before the
        writes land, the intent is retried from scratch.

        Raises:
            KingdomNotFound: If either kingdom is missing
            NotAuthorized: If the player does not own the attacking kingdom
            InvalidInput: On a self-attack or when neither side has any power
            InvalidUnits: If the declared units exceed the attacker's inventory
        """
        declared = merge_declared_units(units)
        if not declared:
            raise InvalidUnits("an attack must declare at least one unit")

        def work(uow: UnitOfWork) -> BattleReport:
            self._owned(uow.session, player_id, attacker_kingdom_id)
            if attacker_kingdom_id == target_kingdom_id:
                raise InvalidInput(
                    "a kingdom cannot attack itself", {"kingdom_id": attacker_kingdom_id}
                )
            self._kingdom(uow.session, target_kingdom_id)

            inventory = uow.inventory.quantities(attacker_kingdom_id)
            short = {
                unit_type: {"declared": qty, "available": inventory.get(unit_type, 0)}
                for unit_type, qty in declared.items()
                if inventory.get(unit_type, 0) < qty
            }
            if short:
                raise InvalidUnits(
                    "declared units exceed the attacker's inventory",
                    {"kingdom_id": attacker_kingdom_id, "units": short},
                )

            defender_units = uow.inventory.quantities(target_kingdom_id)
            defender_balances = uow.ledger.balances(target_kingdom_id)
            outcome = resolve_combat(declared, defender_units, defender_balances, rules=self.rules)

            try:
                uow.inventory.apply_losses(attacker_kingdom_id, outcome.attacker_losses)
                uow.inventory.apply_losses(target_kingdom_id, outcome.defender_losses)
                for resource_type, amount in outcome.stolen_resources.items():
                    uow.ledger.transfer(
                        target_kingdom_id, attacker_kingdom_id, resource_type, amount
                    )
            except (InsufficientUnits, InsufficientResources) as exc:
                raise ConflictRetryable(
                    "battle participants changed while the attack was resolved",
                    {"attacker": attacker_kingdom_id, "defender": target_kingdom_id},
                ) from exc

            record = BattleRecord(
                attacker_kingdom_id=attacker_kingdom_id,
                defender_kingdom_id=target_kingdom_id,
                status="completed" if outcome.success else "failed",
                resources_stolen=dict(outcome.stolen_resources),
                units_lost={
                    "attacker": dict(outcome.attacker_losses),
                    "defender": dict(outcome.defender_losses),
                },
                attacker_power=outcome.attacker_power,
                defender_power=outcome.defender_power,
                created_at=self.clock(),
            )
            uow.session.add(record)
            uow.session.flush()
            return snapshot_battle(record)

        return self._run("attack", work)

    def battle_history(self, kingdom_id: int, limit: int | None = None) -> list[BattleReport]:
        """Battles the kingdom took part in on either side, newest first."""
        if limit is None:
            limit = self.rules.battle.history_limit

        def work(uow: UnitOfWork) -> list[BattleReport]:
            self._kingdom(uow.session, kingdom_id)
            records = uow.session.scalars(
                select(BattleRecord)
                .where(
                    or_(
                        BattleRecord.attacker_kingdom_id == kingdom_id,
                        BattleRecord.defender_kingdom_id == kingdom_id,
                    )
                )
                .order_by(BattleRecord.created_at.desc(), BattleRecord.id.desc())
                .limit(limit)
            )
            return [snapshot_battle(r) for r in records]

        return self._read(work)

    # ------------------------------------------------------------------
    # Market
    # ------------------------------------------------------------------

    def create_offer(
        self,
        player_id: int,
        kingdom_id: int,
        resource_type: str,
        quantity: int,
        price_type: str,
        price_amount: int,
    ) -> OfferSnapshot:
        def work(uow: UnitOfWork) -> OfferSnapshot:
            self._owned(uow.session, player_id, kingdom_id)
            offer = uow.market.create_offer(
                kingdom_id, resource_type, quantity, price_type, price_amount
            )
            return snapshot_offer(offer)

        return self._run("create_offer", work)

    def buy_offer(
        self, player_id: int, buyer_kingdom_id: int, offer_id: int, quantity: int
    ) -> Settlement:
        def work(uow: UnitOfWork) -> Settlement:
            self._owned(uow.session, player_id, buyer_kingdom_id)
            return uow.market.buy(offer_id, buyer_kingdom_id, quantity)

        return self._run("buy_offer", work)

    def cancel_offer(self, player_id: int, kingdom_id: int, offer_id: int) -> CancellationReceipt:
        def work(uow: UnitOfWork) -> CancellationReceipt:
            self._owned(uow.session, player_id, kingdom_id)
            return uow.market.cancel_offer(offer_id, kingdom_id)

        return self._run("cancel_offer", work)

    def list_offers(self, limit: int | None = None) -> list[OfferSnapshot]:
        return self._read(lambda uow: [snapshot_offer(o) for o in uow.market.list_offers(limit)])

    def npc_offers(self, kingdom_id: int, seed: str | None = None) -> list[NpcOffer]:
        """Synthetic offers scaled to the kingdom's level; nothing is persisted.

        ``seed`` forces a :class:`SeededRandomSource`; otherwise the configured
        factory (or an unseeded source) supplies the randomness.
        """

        def work(uow: UnitOfWork) -> list[NpcOffer]:
            kingdom = self._kingdom(uow.session, kingdom_id)
            if seed is not None:
                source: RandomSource = SeededRandomSource(seed)
            elif self.random_source_factory is not None:
                source = self.random_source_factory(kingdom_id)
            else:
                source = SystemRandomSource()
            return list(uow.market.npc_offers(kingdom.level, source))

        return self._read(work)

    # ------------------------------------------------------------------
    # Alliance transfers
    # ------------------------------------------------------------------

    def _allied(
        self,
        uow: UnitOfWork,
        player_id: int,
        alliance_id: int,
        sender_kingdom_id: int,
        target_kingdom_id: int,
    ) -> None:
        self._owned(uow.session, player_id, sender_kingdom_id)
        if sender_kingdom_id == target_kingdom_id:
            raise InvalidInput(
                "cannot send to the same kingdom", {"kingdom_id": sender_kingdom_id}
            )
        target = self._kingdom(uow.session, target_kingdom_id)
        if not uow.alliances.is_member(alliance_id, player_id):
            raise NotAMember(
                f"player {player_id} is not in alliance {alliance_id}",
                {"alliance_id": alliance_id, "player_id": player_id},
            )
        if not uow.alliances.is_member(alliance_id, target.player_id):
            raise NotAMember(
                f"target player {target.player_id} is not in alliance {alliance_id}",
                {"alliance_id": alliance_id, "player_id": target.player_id},
            )

    def send_resources(
        self,
        player_id: int,
        alliance_id: int,
        sender_kingdom_id: int,
        target_kingdom_id: int,
        resource_type: str,
        amount: int,
    ) -> TransferReceipt:
        def work(uow: UnitOfWork) -> TransferReceipt:
            self._allied(uow, player_id, alliance_id, sender_kingdom_id, target_kingdom_id)
            uow.ledger.validate_resource_type(resource_type)
            uow.ledger.transfer(sender_kingdom_id, target_kingdom_id, resource_type, amount)
            return TransferReceipt(
                from_kingdom_id=sender_kingdom_id,
                to_kingdom_id=target_kingdom_id,
                kind="resource",
                type=resource_type,
                amount=amount,
            )

        return self._run("send_resources", work)

    def send_units(
        self,
        player_id: int,
        alliance_id: int,
        sender_kingdom_id: int,
        target_kingdom_id: int,
        unit_type: str,
        quantity: int,
    ) -> TransferReceipt:
        def work(uow: UnitOfWork) -> TransferReceipt:
            self._allied(uow, player_id, alliance_id, sender_kingdom_id, target_kingdom_id)
            uow.inventory.transfer(sender_kingdom_id, target_kingdom_id, unit_type, quantity)
            return TransferReceipt(
                from_kingdom_id=sender_kingdom_id,
                to_kingdom_id=target_kingdom_id,
                kind="unit",
                type=unit_type,
                amount=quantity,
            )

        return self._run("send_units", work)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def total_resource(self, resource_type: str) -> int:
        """Sum of one resource across every ledger plus open escrow."""
        def work(uow: UnitOfWork) -> int:
            held = uow.session.scalar(
                select(func.coalesce(func.sum(ResourceBalance.amount), 0)).where(
                    ResourceBalance.resource_type == resource_type
                )
            )
            escrowed = uow.session.scalar(
                select(func.coalesce(func.sum(MarketOffer.quantity), 0)).where(
                    MarketOffer.resource_type == resource_type,
                    MarketOffer.seller_kingdom_id.is_not(None),
                )
            )
            return int(held) + int(escrowed)

        return self._read(work)
