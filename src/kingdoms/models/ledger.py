"""Resource ledger rows."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, at_least

if TYPE_CHECKING:
    from .kingdom import Kingdom


class ResourceBalance(Base):
    """Balance of one resource type held by one kingdom.

    The ``amount >= 0`` check backs up the conditional updates issued by the
    ledger service; the service never relies on it to detect shortfalls.

    Attributes:
        id: Primary key
        kingdom_id: Foreign key to the owning kingdom
        resource_type: gold / wood / stone / food
        amount: Non-negative balance
        last_updated: Time of the last adjustment
    """

    __tablename__ = "resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kingdom_id: Mapped[int] = mapped_column(Integer, ForeignKey("kingdoms.id"), nullable=False)
    resource_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    kingdom: Mapped["Kingdom"] = relationship("Kingdom", back_populates="resources")

    __table_args__ = (
        UniqueConstraint("kingdom_id", "resource_type", name="uq_resources_kingdom_type"),
        at_least("resources", "amount"),
    )

    def __repr__(self) -> str:
        return (
            f"<ResourceBalance(kingdom={self.kingdom_id}, type='{self.resource_type}', "
            f"amount={self.amount})>"
        )
