"""Market offer rows."""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, at_least


class MarketOffer(Base, CreatedAtMixin):
    """A sell offer holding escrowed resources.

    The quantity was removed from the seller's ledger when the offer was
    created, so the row must only disappear through a sale or a refund.

    Attributes:
        id: Primary key
        seller_kingdom_id: Selling kingdom, NULL for NPC-originated offers
        resource_type: Resource being sold
        quantity: Escrowed quantity still for sale
        price_type: Resource the buyer pays with
        price_amount: Price per unit of ``resource_type``
    """

    __tablename__ = "market_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    seller_kingdom_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("kingdoms.id"), nullable=True
    )
    resource_type: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_type: Mapped[str] = mapped_column(String, nullable=False)
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        at_least("market_offers", "quantity"),
        at_least("market_offers", "price_amount", name="price"),
        Index("idx_market_offers_seller", "seller_kingdom_id"),
        Index("idx_market_offers_created", "created_at"),
    )

    @property
    def is_npc(self) -> bool:
        return self.seller_kingdom_id is None

    def __repr__(self) -> str:
        return (
            f"<MarketOffer(id={self.id}, seller={self.seller_kingdom_id}, "
            f"{self.quantity} {self.resource_type} @ {self.price_amount} {self.price_type})>"
        )
