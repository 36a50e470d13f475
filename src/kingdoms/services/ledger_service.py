"""Resource Ledger Service.

Per-kingdom resource balances. Every mutation is a single conditional
``UPDATE`` whose ``WHERE`` clause re-validates sufficiency at write time, so
two concurrent spends that each passed an earlier balance read can never
both commit if together they would overdraw the balance.
"""

from collections.abc import Callable, Mapping
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kingdoms.domain.errors import (
    ConflictRetryable,
    InsufficientResources,
    InvalidInput,
    InvalidResourceType,
)
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig
from kingdoms.models import ResourceBalance, utc_now


class ResourceLedger:
    """Atomic adjust, transfer and joint-spend primitives over ``resources`` rows."""

    def __init__(
        self,
        session: Session,
        rules: RulesConfig = DEFAULT_RULES,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.rules = rules
        self.clock = clock

    def validate_resource_type(self, resource_type: str) -> None:
        if resource_type not in self.rules.economy.resource_types:
            raise InvalidResourceType(
                f"unknown resource type: {resource_type}", {"resource_type": resource_type}
            )

    def get(self, kingdom_id: int, resource_type: str) -> int:
        """Current balance; a missing row reads as 0."""
        amount = self.session.scalar(
            select(ResourceBalance.amount).where(
                ResourceBalance.kingdom_id == kingdom_id,
                ResourceBalance.resource_type == resource_type,
            )
        )
        return amount or 0

    def balances(self, kingdom_id: int) -> dict[str, int]:
        """All balances of a kingdom keyed by resource type."""
        rows = self.session.execute(
            select(ResourceBalance.resource_type, ResourceBalance.amount)
            .where(ResourceBalance.kingdom_id == kingdom_id)
            .order_by(ResourceBalance.resource_type)
        )
        return {resource_type: amount for resource_type, amount in rows}

    def open_accounts(self, kingdom_id: int, opening: Mapping[str, int]) -> None:
        """Create the ledger rows of a new kingdom."""
        now = self.clock()
        for resource_type, amount in opening.items():
            self.validate_resource_type(resource_type)
            self.session.add(
                ResourceBalance(
                    kingdom_id=kingdom_id,
                    resource_type=resource_type,
                    amount=amount,
                    last_updated=now,
                )
            )
        self.session.flush()

    def adjust(self, kingdom_id: int, resource_type: str, delta: int) -> int:
        """Apply ``amount += delta`` as one conditional write.

        Args:
            kingdom_id: Kingdom whose balance changes
            resource_type: Resource to adjust
            delta: Signed change; negative values spend

        Returns:
            The balance after the adjustment

        Raises:
            InsufficientResources: If the result would be negative at write time
            ConflictRetryable: If a concurrent request created the same row first
        """
        self.validate_resource_type(resource_type)
        result = self.session.execute(
            update(ResourceBalance)
            .where(
                ResourceBalance.kingdom_id == kingdom_id,
                ResourceBalance.resource_type == resource_type,
                ResourceBalance.amount + delta >= 0,
            )
            .values(amount=ResourceBalance.amount + delta, last_updated=self.clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return self.get(kingdom_id, resource_type)

        current = self.session.scalar(
            select(ResourceBalance.amount).where(
                ResourceBalance.kingdom_id == kingdom_id,
                ResourceBalance.resource_type == resource_type,
            )
        )
        if current is not None or delta < 0:
            raise InsufficientResources(
                f"kingdom {kingdom_id} cannot cover {-delta} {resource_type}",
                {
                    "kingdom_id": kingdom_id,
                    "resource_type": resource_type,
                    "required": -delta,
                    "available": current or 0,
                },
            )
        self._create_row(kingdom_id, resource_type, delta)
        return delta

    def _create_row(self, kingdom_id: int, resource_type: str, amount: int) -> None:
        self.session.add(
            ResourceBalance(
                kingdom_id=kingdom_id,
                resource_type=resource_type,
                amount=amount,
                last_updated=self.clock(),
            )
        )
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ConflictRetryable(
                "resource row was created concurrently",
                {"kingdom_id": kingdom_id, "resource_type": resource_type},
            ) from exc

    def transfer(
        self, from_kingdom_id: int, to_kingdom_id: int, resource_type: str, amount: int
    ) -> None:
        """Move ``amount`` between two kingdoms inside the caller's transaction.

        The debit runs first; if it fails nothing has been written. If the
        credit fails the caller's transaction must roll back, which the
        transaction coordinator guarantees.
        """
        if amount <= 0:
            raise InvalidInput("transfer amount must be positive", {"amount": amount})
        if from_kingdom_id == to_kingdom_id:
            raise InvalidInput(
                "cannot transfer to the same kingdom", {"kingdom_id": from_kingdom_id}
            )
        self.adjust(from_kingdom_id, resource_type, -amount)
        self.adjust(to_kingdom_id, resource_type, amount)

    def shortfalls(self, kingdom_id: int, costs: Mapping[str, int]) -> dict[str, dict[str, int]]:
        """Resource types whose balance is below the required cost."""
        balances = self.balances(kingdom_id)
        return {
            resource_type: {"required": required, "available": balances.get(resource_type, 0)}
            for resource_type, required in costs.items()
            if balances.get(resource_type, 0) < required
        }

    def spend(self, kingdom_id: int, costs: Mapping[str, int]) -> None:
        """Deduct every cost, or none of them.

        Affordability is checked across all resource types before the first
        debit. Each debit is still conditional, so a concurrent spend that
        slips in between raises and rolls back the enclosing transaction.

        Raises:
            InsufficientResources: Listing every resource that falls short
        """
        for resource_type, required in costs.items():
            self.validate_resource_type(resource_type)
            if required < 0:
                raise InvalidInput(
                    "costs must be non-negative", {"resource_type": resource_type}
                )
        missing = self.shortfalls(kingdom_id, costs)
        if missing:
            raise InsufficientResources(
                f"kingdom {kingdom_id} cannot afford {dict(costs)}",
                {"kingdom_id": kingdom_id, "shortfalls": missing},
            )
        for resource_type, required in costs.items():
            if required:
                self.adjust(kingdom_id, resource_type, -required)
