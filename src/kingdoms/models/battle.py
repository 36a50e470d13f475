"""Battle record model.

Battle records form an append-only audit log of attacks. Rows are inserted
once by the transaction coordinator and never changed; ORM-level updates or
deletes raise :class:`~kingdoms.domain.errors.ImmutableRecordError`.
"""

from typing import Any

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from kingdoms.domain.errors import ImmutableRecordError

from .base import Base, CreatedAtMixin


class BattleRecord(Base, CreatedAtMixin):
    """Represents one resolved attack.

    Attributes:
        id: Primary key
        attacker_kingdom_id: Foreign key to the attacking kingdom
        defender_kingdom_id: Foreign key to the defending kingdom
        status: ``completed`` when the attacker won, ``failed`` otherwise
        resources_stolen: JSON mapping of resource type to amount taken
        units_lost: JSON ``{"attacker": {...}, "defender": {...}}`` per-type losses
        attacker_power: Attack power the attacker committed
        defender_power: Defense power of the defender's whole inventory
    """

    __tablename__ = "battles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    attacker_kingdom_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("kingdoms.id"), nullable=False
    )
    defender_kingdom_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("kingdoms.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String, nullable=False)
    resources_stolen: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    units_lost: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    attacker_power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    defender_power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("status IN ('completed', 'failed')", name="ck_battles_status"),
        Index("idx_battles_attacker", "attacker_kingdom_id", "created_at"),
        Index("idx_battles_defender", "defender_kingdom_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BattleRecord(id={self.id}, attacker={self.attacker_kingdom_id}, "
            f"defender={self.defender_kingdom_id}, status='{self.status}')>"
        )


@event.listens_for(BattleRecord, "before_update")
def _reject_battle_update(mapper, connection, target: BattleRecord):  # noqa: ARG001
    raise ImmutableRecordError("battle records are append-only", {"battle_id": target.id})


@event.listens_for(BattleRecord, "before_delete")
def _reject_battle_delete(mapper, connection, target: BattleRecord):  # noqa: ARG001
    raise ImmutableRecordError("battle records are append-only", {"battle_id": target.id})
