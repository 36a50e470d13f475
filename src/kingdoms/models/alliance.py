"""Alliance membership models.

Membership bookkeeping (creating alliances, joining, leaving, promotions) is
owned by another service; the engine only reads these tables to authorize
transfers between allies.
"""

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, CreatedAtMixin


class Alliance(Base, CreatedAtMixin):
    """An alliance of players.

    Attributes:
        id: Primary key
        name: Unique alliance name
        leader_player_id: Player leading the alliance
    """

    __tablename__ = "alliances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    leader_player_id: Mapped[int] = mapped_column(Integer, nullable=False)

    members: Mapped[list["AllianceMember"]] = relationship(
        "AllianceMember", back_populates="alliance", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Alliance(id={self.id}, name='{self.name}')>"


class AllianceMember(Base, CreatedAtMixin):
    """Membership of one player in one alliance (a player joins at most one)."""

    __tablename__ = "alliance_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    alliance_id: Mapped[int] = mapped_column(Integer, ForeignKey("alliances.id"), nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="member")

    alliance: Mapped["Alliance"] = relationship("Alliance", back_populates="members")

    __table_args__ = (
        CheckConstraint("role IN ('leader', 'officer', 'member')", name="ck_alliance_members_role"),
    )

    def __repr__(self) -> str:
        return f"<AllianceMember(alliance={self.alliance_id}, player={self.player_id})>"
