from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OfferCreate(BaseModel):
    resource_type: str = Field(..., description="Resource being sold")
    quantity: int = Field(..., description="Quantity escrowed from the seller")
    price_type: str = Field(..., description="Resource the buyer pays with")
    price_amount: int = Field(..., description="Price per unit")


class OfferRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Primary key")
    seller_kingdom_id: int | None = Field(None, description="NULL for NPC offers")
    seller_type: str
    resource_type: str
    quantity: int
    price_type: str
    price_amount: int
    created_at: datetime | None = None


class OfferBuy(BaseModel):
    kingdom_id: int = Field(..., description="Buying kingdom")
    quantity: int = Field(..., description="Quantity to buy")


class SettlementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    offer_id: int
    buyer_kingdom_id: int
    seller_kingdom_id: int | None
    resource_type: str
    quantity: int
    price_type: str
    total_price: int
    remaining_quantity: int


class CancellationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    offer_id: int
    seller_kingdom_id: int
    resource_type: str
    refunded: int


class NpcOfferRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    resource_type: str
    quantity: int
    price_type: str
    price_amount: int
    seller_type: str = "NPC"
