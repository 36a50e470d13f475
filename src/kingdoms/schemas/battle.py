from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeclaredUnitIn(BaseModel):
    unit_type: str
    quantity: int


class AttackCreate(BaseModel):
    target_kingdom_id: int = Field(..., description="Kingdom being attacked")
    units: list[DeclaredUnitIn] = Field(..., description="Units committed to the attack")


class BattleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Primary key")
    attacker_kingdom_id: int
    defender_kingdom_id: int
    status: str = Field(..., description="completed (attacker won) or failed")
    success: bool
    attacker_power: int
    defender_power: int
    attacker_losses: dict[str, int]
    defender_losses: dict[str, int]
    resources_stolen: dict[str, int]
    created_at: datetime | None = None
