"""Kingdom and building models.

A kingdom is the unit of ownership in the game: it belongs to exactly one
player and owns one resource ledger, one unit inventory, and its buildings.
"""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, at_least

if TYPE_CHECKING:
    from .ledger import ResourceBalance
    from .unit import UnitStock


class Kingdom(Base, AuditMixin):
    """Represents a player's kingdom.

    Attributes:
        id: Primary key
        player_id: Owning player (unique; one kingdom per player)
        name: Display name
        level: Kingdom level, scales NPC market offers
    """

    __tablename__ = "kingdoms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    resources: Mapped[list["ResourceBalance"]] = relationship(
        "ResourceBalance", back_populates="kingdom", cascade="all, delete-orphan"
    )
    units: Mapped[list["UnitStock"]] = relationship(
        "UnitStock", back_populates="kingdom", cascade="all, delete-orphan"
    )
    buildings: Mapped[list["Building"]] = relationship(
        "Building", back_populates="kingdom", cascade="all, delete-orphan"
    )

    __table_args__ = (at_least("kingdoms", "level", 1),)

    def __repr__(self) -> str:
        return f"<Kingdom(id={self.id}, player={self.player_id}, name='{self.name}')>"


class Building(Base, AuditMixin):
    """A structure built inside a kingdom.

    Attributes:
        id: Primary key
        kingdom_id: Foreign key to the owning kingdom
        building_type: Catalogue key (town_hall, barracks, ...)
        level: Current level; upgrades cost the base price times this
        position_x: Map column inside the kingdom
        position_y: Map row inside the kingdom
    """

    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kingdom_id: Mapped[int] = mapped_column(Integer, ForeignKey("kingdoms.id"), nullable=False)
    building_type: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    position_x: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position_y: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    kingdom: Mapped["Kingdom"] = relationship("Kingdom", back_populates="buildings")

    __table_args__ = (
        at_least("buildings", "level", 1),
        Index("idx_buildings_kingdom_type", "kingdom_id", "building_type"),
    )

    def __repr__(self) -> str:
        return f"<Building(id={self.id}, type='{self.building_type}', level={self.level})>"
