"""Unit inventory rows."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, at_least

if TYPE_CHECKING:
    from .kingdom import Kingdom


class UnitStock(Base):
    """Stockpile of one unit type in one kingdom.

    ``quantity`` already includes units still in training; the
    ``training_in_progress`` flag is advisory and cleared by a later
    completion request once ``training_complete_at`` has passed.

    Attributes:
        id: Primary key
        kingdom_id: Foreign key to the owning kingdom
        unit_type: spearman / archer / cavalry / shield_bearer
        quantity: Non-negative unit count
        level: Upgrade level, only ever increases
        training_in_progress: Whether a training batch is pending completion
        training_complete_at: When the pending batch finishes
    """

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kingdom_id: Mapped[int] = mapped_column(Integer, ForeignKey("kingdoms.id"), nullable=False)
    unit_type: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    training_in_progress: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    training_complete_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    kingdom: Mapped["Kingdom"] = relationship("Kingdom", back_populates="units")

    __table_args__ = (
        UniqueConstraint("kingdom_id", "unit_type", name="uq_units_kingdom_type"),
        at_least("units", "quantity"),
        at_least("units", "level", 1),
        Index("idx_units_training", "kingdom_id", "training_in_progress"),
    )

    def __repr__(self) -> str:
        return (
            f"<UnitStock(kingdom={self.kingdom_id}, type='{self.unit_type}', "
            f"quantity={self.quantity}, level={self.level})>"
        )
