"""Unit Inventory Service.

Per-kingdom unit stockpiles and the ``Idle -> Training -> Idle`` state
machine. Quantities are credited when training starts; the training flag
only records that the batch has not been settled yet.
"""

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kingdoms.domain.errors import (
    ConflictRetryable,
    InsufficientUnits,
    InvalidInput,
    InvalidUnitType,
    UnitNotFound,
)
from kingdoms.domain.models import UnitStockSnapshot
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig, UnitProfile
from kingdoms.models import UnitStock, ensure_utc, utc_now
from kingdoms.services.ledger_service import ResourceLedger


def snapshot_stock(stock: UnitStock) -> UnitStockSnapshot:
    return UnitStockSnapshot(
        kingdom_id=stock.kingdom_id,
        unit_type=stock.unit_type,
        quantity=stock.quantity,
        level=stock.level,
        training_in_progress=stock.training_in_progress,
        training_complete_at=ensure_utc(stock.training_complete_at),
    )


class UnitInventory:
    """Training, upgrades, transfers and losses over ``units`` rows."""

    def __init__(
        self,
        session: Session,
        ledger: ResourceLedger,
        rules: RulesConfig = DEFAULT_RULES,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.ledger = ledger
        self.rules = rules
        self.clock = clock

    def profile(self, unit_type: str) -> UnitProfile:
        try:
            return self.rules.military.units[unit_type]
        except KeyError:
            raise InvalidUnitType(
                f"unknown unit type: {unit_type}", {"unit_type": unit_type}
            ) from None

    def get(self, kingdom_id: int, unit_type: str) -> UnitStock | None:
        return self.session.scalars(
            select(UnitStock)
            .where(UnitStock.kingdom_id == kingdom_id, UnitStock.unit_type == unit_type)
            .execution_options(populate_existing=True)
        ).one_or_none()

    def stocks(self, kingdom_id: int) -> list[UnitStock]:
        return list(
            self.session.scalars(
                select(UnitStock)
                .where(UnitStock.kingdom_id == kingdom_id)
                .order_by(UnitStock.unit_type)
                .execution_options(populate_existing=True)
            )
        )

    def quantities(self, kingdom_id: int) -> dict[str, int]:
        """``{unit_type: quantity}`` for every non-empty stockpile."""
        return {s.unit_type: s.quantity for s in self.stocks(kingdom_id) if s.quantity}

    def training_cost(self, unit_type: str, quantity: int) -> dict[str, int]:
        profile = self.profile(unit_type)
        return {resource: per_unit * quantity for resource, per_unit in profile.cost.items()}

    def upgrade_cost(self, unit_type: str, level: int) -> dict[str, int]:
        profile = self.profile(unit_type)
        return {resource: base * level for resource, base in profile.upgrade_cost.items()}

    def train(
        self, kingdom_id: int, unit_type: str, quantity: int, *, now: datetime | None = None
    ) -> UnitStock:
        """Pay for and enlist ``quantity`` units.

        Training time scales linearly with the batch size and replaces any
        earlier pending completion time for this unit type.

        Raises:
            InvalidUnitType: If the unit type is not in the rules
            InvalidInput: If quantity is not positive
            InsufficientResources: If the kingdom cannot pay for the batch
        """
        profile = self.profile(unit_type)
        if quantity <= 0:
            raise InvalidInput("training quantity must be positive", {"quantity": quantity})

        self.ledger.spend(kingdom_id, self.training_cost(unit_type, quantity))

        complete_at = (now or self.clock()) + timedelta(seconds=profile.training_seconds * quantity)
        result = self.session.execute(
            update(UnitStock)
            .where(UnitStock.kingdom_id == kingdom_id, UnitStock.unit_type == unit_type)
            .values(
                quantity=UnitStock.quantity + quantity,
                training_in_progress=True,
                training_complete_at=complete_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._create(
                kingdom_id,
                unit_type,
                quantity,
                level=1,
                training_in_progress=True,
                training_complete_at=complete_at,
            )
        return self.get(kingdom_id, unit_type)

    def complete_training(
        self, kingdom_id: int, *, now: datetime | None = None
    ) -> list[UnitStock]:
        """Clear the training flag of every batch whose completion time has passed.

        Quantities do not change. Calling this again is a no-op.
        """
        now = now or self.clock()
        due = list(
            self.session.scalars(
                select(UnitStock.id).where(
                    UnitStock.kingdom_id == kingdom_id,
                    UnitStock.training_in_progress.is_(True),
                    UnitStock.training_complete_at <= now,
                )
            )
        )
        if not due:
            return []
        self.session.execute(
            update(UnitStock)
            .where(UnitStock.id.in_(due), UnitStock.training_in_progress.is_(True))
            .values(training_in_progress=False, training_complete_at=None)
            .execution_options(synchronize_session=False)
        )
        return list(
            self.session.scalars(
                select(UnitStock)
                .where(UnitStock.id.in_(due))
                .order_by(UnitStock.unit_type)
                .execution_options(populate_existing=True)
            )
        )

    def upgrade(self, kingdom_id: int, unit_type: str) -> UnitStock:
        """Raise the level of a unit type by one.

        The cost is priced from the level observed at the start; the level
        write is pinned to that observation.

        Raises:
            UnitNotFound: If the kingdom has no stockpile of this type
            InsufficientResources: If the kingdom cannot pay
            ConflictRetryable: If the level changed concurrently
        """
        self.profile(unit_type)
        stock = self.get(kingdom_id, unit_type)
        if stock is None:
            raise UnitNotFound(
                f"kingdom {kingdom_id} has no {unit_type}",
                {"kingdom_id": kingdom_id, "unit_type": unit_type},
            )
        observed_level = stock.level

        self.ledger.spend(kingdom_id, self.upgrade_cost(unit_type, observed_level))

        result = self.session.execute(
            update(UnitStock)
            .where(UnitStock.id == stock.id, UnitStock.level == observed_level)
            .values(level=observed_level + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictRetryable(
                "unit level changed during upgrade",
                {"kingdom_id": kingdom_id, "unit_type": unit_type, "observed": observed_level},
            )
        return self.get(kingdom_id, unit_type)

    def remove(self, kingdom_id: int, unit_type: str, quantity: int) -> None:
        """Conditionally decrement a stockpile.

        Raises:
            InsufficientUnits: If fewer than ``quantity`` units remain at write time
        """
        if quantity < 0:
            raise InvalidInput("quantity must be non-negative", {"quantity": quantity})
        if quantity == 0:
            return
        result = self.session.execute(
            update(UnitStock)
            .where(
                UnitStock.kingdom_id == kingdom_id,
                UnitStock.unit_type == unit_type,
                UnitStock.quantity >= quantity,
            )
            .values(quantity=UnitStock.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            stock = self.get(kingdom_id, unit_type)
            raise InsufficientUnits(
                f"kingdom {kingdom_id} does not have {quantity} {unit_type}",
                {
                    "kingdom_id": kingdom_id,
                    "unit_type": unit_type,
                    "required": quantity,
                    "available": stock.quantity if stock else 0,
                },
            )

    def apply_losses(self, kingdom_id: int, losses: Mapping[str, int]) -> None:
        for unit_type, lost in losses.items():
            self.remove(kingdom_id, unit_type, lost)

    def transfer(
        self, from_kingdom_id: int, to_kingdom_id: int, unit_type: str, quantity: int
    ) -> None:
        """Move units between kingdoms.

        A destination without a stockpile of this type receives a new row at
        the source's level; an existing destination keeps its own level.
        """
        self.profile(unit_type)
        if quantity <= 0:
            raise InvalidInput("transfer quantity must be positive", {"quantity": quantity})
        if from_kingdom_id == to_kingdom_id:
            raise InvalidInput(
                "cannot transfer to the same kingdom", {"kingdom_id": from_kingdom_id}
            )

        self.remove(from_kingdom_id, unit_type, quantity)
        source = self.get(from_kingdom_id, unit_type)

        result = self.session.execute(
            update(UnitStock)
            .where(UnitStock.kingdom_id == to_kingdom_id, UnitStock.unit_type == unit_type)
            .values(quantity=UnitStock.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._create(to_kingdom_id, unit_type, quantity, level=source.level)

    def _create(self, kingdom_id: int, unit_type: str, quantity: int, **fields) -> None:
        self.session.add(
            UnitStock(kingdom_id=kingdom_id, unit_type=unit_type, quantity=quantity, **fields)
        )
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ConflictRetryable(
                "unit row was created concurrently",
                {"kingdom_id": kingdom_id, "unit_type": unit_type},
            ) from exc
