"""Market Book Service.

Player sell offers backed by escrow. Creating an offer moves the offered
quantity out of the seller's ledger; a purchase moves goods to the buyer and
payment to the seller; a cancellation refunds what is left. The offer row's
``quantity`` is the escrow, so it only ever shrinks through conditional
updates.
"""

from collections.abc import Callable, Iterator
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from kingdoms.domain.errors import (
    ConflictRetryable,
    InsufficientOfferQuantity,
    InsufficientResources,
    InvalidInput,
    NotAuthorized,
    OfferNotFound,
)
from kingdoms.domain.market import NpcOffer, generate_npc_offers
from kingdoms.domain.models import CancellationReceipt, OfferSnapshot, Settlement
from kingdoms.domain.rules_config import DEFAULT_RULES, RulesConfig
from kingdoms.models import MarketOffer, ensure_utc, utc_now
from kingdoms.services.ledger_service import ResourceLedger
from kingdoms.utils.rng import RandomSource


def snapshot_offer(offer: MarketOffer) -> OfferSnapshot:
    return OfferSnapshot(
        id=offer.id,
        seller_kingdom_id=offer.seller_kingdom_id,
        resource_type=offer.resource_type,
        quantity=offer.quantity,
        price_type=offer.price_type,
        price_amount=offer.price_amount,
        created_at=ensure_utc(offer.created_at),
    )


class MarketBook:
    """Escrowed offers, partial fills and refunds."""

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

    def get(self, offer_id: int) -> MarketOffer | None:
        return self.session.scalars(
            select(MarketOffer)
            .where(MarketOffer.id == offer_id)
            .execution_options(populate_existing=True)
        ).one_or_none()

    def _require(self, offer_id: int) -> MarketOffer:
        offer = self.get(offer_id)
        if offer is None:
            raise OfferNotFound(f"offer {offer_id} not found", {"offer_id": offer_id})
        return offer

    def create_offer(
        self,
        seller_kingdom_id: int,
        resource_type: str,
        quantity: int,
        price_type: str,
        price_amount: int,
    ) -> MarketOffer:
        """Escrow ``quantity`` of ``resource_type`` and list it for sale.

        Raises:
            InvalidResourceType: If either resource type is unknown
            InvalidInput: If quantity is not positive, the price is negative or
                the price is paid in the resource being sold
            InsufficientResources: If the seller cannot cover the escrow
        """
        self.ledger.validate_resource_type(resource_type)
        self.ledger.validate_resource_type(price_type)
        if price_type == resource_type:
            raise InvalidInput(
                "an offer must ask for a different resource than it sells",
                {"resource_type": resource_type, "price_type": price_type},
            )
        if quantity <= 0:
            raise InvalidInput("offer quantity must be positive", {"quantity": quantity})
        if price_amount < 0:
            raise InvalidInput("offer price must be non-negative", {"price_amount": price_amount})

        self.ledger.adjust(seller_kingdom_id, resource_type, -quantity)

        offer = MarketOffer(
            seller_kingdom_id=seller_kingdom_id,
            resource_type=resource_type,
            quantity=quantity,
            price_type=price_type,
            price_amount=price_amount,
            created_at=self.clock(),
        )
        self.session.add(offer)
        self.session.flush()
        return offer

    def buy(self, offer_id: int, buyer_kingdom_id: int, quantity: int) -> Settlement:
        """Buy part or all of an offer.

        The offer decrement is conditional on enough quantity remaining at
        write time, so two buyers racing for the last units can never both
        succeed.

        Raises:
            InvalidInput: If quantity is not positive or the buyer is the seller
            OfferNotFound: If the offer does not exist
            InsufficientOfferQuantity: If the offer holds fewer than ``quantity``
            InsufficientResources: If the buyer cannot pay
        """
        if quantity <= 0:
            raise InvalidInput("purchase quantity must be positive", {"quantity": quantity})

        offer = self._require(offer_id)
        if offer.seller_kingdom_id == buyer_kingdom_id:
            raise InvalidInput("cannot buy your own offer", {"offer_id": offer_id})
        if offer.quantity < quantity:
            raise InsufficientOfferQuantity(
                f"offer {offer_id} has only {offer.quantity} left",
                {"offer_id": offer_id, "requested": quantity, "available": offer.quantity},
            )

        total_price = offer.price_amount * quantity
        available = self.ledger.get(buyer_kingdom_id, offer.price_type)
        if available < total_price:
            raise InsufficientResources(
                f"kingdom {buyer_kingdom_id} cannot pay {total_price} {offer.price_type}",
                {
                    "kingdom_id": buyer_kingdom_id,
                    "resource_type": offer.price_type,
                    "required": total_price,
                    "available": available,
                },
            )

        result = self.session.execute(
            update(MarketOffer)
            .where(MarketOffer.id == offer_id, MarketOffer.quantity >= quantity)
            .values(quantity=MarketOffer.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Sold to someone else since it was read; a sold-out offer is already deleted.
            available = self.session.scalar(
                select(MarketOffer.quantity).where(MarketOffer.id == offer_id)
            )
            raise InsufficientOfferQuantity(
                f"offer {offer_id} has only {available or 0} left",
                {"offer_id": offer_id, "requested": quantity, "available": available or 0},
            )

        if total_price:
            self.ledger.adjust(buyer_kingdom_id, offer.price_type, -total_price)
        self.ledger.adjust(buyer_kingdom_id, offer.resource_type, quantity)
        if offer.seller_kingdom_id is not None and total_price:
            self.ledger.adjust(offer.seller_kingdom_id, offer.price_type, total_price)

        remaining = self.session.scalar(
            select(MarketOffer.quantity).where(MarketOffer.id == offer_id)
        )
        if remaining == 0:
            self.session.execute(
                delete(MarketOffer)
                .where(MarketOffer.id == offer_id, MarketOffer.quantity == 0)
                .execution_options(synchronize_session=False)
            )

        return Settlement(
            offer_id=offer_id,
            buyer_kingdom_id=buyer_kingdom_id,
            seller_kingdom_id=offer.seller_kingdom_id,
            resource_type=offer.resource_type,
            quantity=quantity,
            price_type=offer.price_type,
            total_price=total_price,
            remaining_quantity=remaining,
        )

    def cancel_offer(self, offer_id: int, kingdom_id: int) -> CancellationReceipt:
        """Withdraw an offer and refund its remaining escrow to the seller.

        Raises:
            OfferNotFound: If the offer does not exist
            NotAuthorized: If ``kingdom_id`` is not the seller
            ConflictRetryable: If a purchase changed the quantity concurrently
        """
        offer = self._require(offer_id)
        if offer.seller_kingdom_id is None or offer.seller_kingdom_id != kingdom_id:
            raise NotAuthorized(
                f"kingdom {kingdom_id} does not own offer {offer_id}",
                {"offer_id": offer_id, "kingdom_id": kingdom_id},
            )
        observed = offer.quantity

        result = self.session.execute(
            delete(MarketOffer)
            .where(MarketOffer.id == offer_id, MarketOffer.quantity == observed)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictRetryable(
                "offer quantity changed during cancellation",
                {"offer_id": offer_id, "observed": observed},
            )
        if observed:
            self.ledger.adjust(kingdom_id, offer.resource_type, observed)
        self.session.expunge(offer)

        return CancellationReceipt(
            offer_id=offer_id,
            seller_kingdom_id=kingdom_id,
            resource_type=offer.resource_type,
            refunded=observed,
        )

    def list_offers(self, limit: int | None = None) -> list[MarketOffer]:
        """Open offers, newest first."""
        stmt = (
            select(MarketOffer)
            .where(MarketOffer.quantity > 0)
            .order_by(MarketOffer.created_at.desc(), MarketOffer.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def npc_offers(self, kingdom_level: int, random_source: RandomSource) -> Iterator[NpcOffer]:
        return generate_npc_offers(kingdom_level, random_source, rules=self.rules)
