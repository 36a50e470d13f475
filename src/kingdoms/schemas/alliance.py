from pydantic import BaseModel, ConfigDict, Field


class ResourceSend(BaseModel):
    sender_kingdom_id: int
    target_kingdom_id: int
    resource_type: str
    amount: int = Field(..., description="Amount moved from sender to target")


class UnitSend(BaseModel):
    sender_kingdom_id: int
    target_kingdom_id: int
    unit_type: str
    quantity: int


class TransferRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_kingdom_id: int
    to_kingdom_id: int
    kind: str = Field(..., description="resource or unit")
    type: str
    amount: int
