from pydantic import BaseModel, ConfigDict, Field


class KingdomCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Display name of the kingdom")


class KingdomRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Primary key")
    player_id: int = Field(..., description="Owning player")
    name: str
    level: int = Field(..., ge=1, description="Kingdom level (scales NPC offers)")
    resources: dict[str, int] = Field(
        default_factory=dict, description="Resource balances keyed by type"
    )
