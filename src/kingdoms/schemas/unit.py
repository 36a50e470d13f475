from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UnitTrain(BaseModel):
    unit_type: str = Field(..., description="spearman / archer / cavalry / shield_bearer")
    quantity: int = Field(..., description="Number of units to train")


class UnitRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kingdom_id: int
    unit_type: str
    quantity: int = Field(..., ge=0)
    level: int = Field(..., ge=1)
    training_in_progress: bool
    training_complete_at: datetime | None = Field(
        None, description="When the pending training batch finishes"
    )
