from pydantic import BaseModel, ConfigDict, Field


class BuildingCreate(BaseModel):
    building_type: str = Field(..., description="town_hall / barracks / hospital / market / school")
    position_x: int = Field(default=0, description="Map column inside the kingdom")
    position_y: int = Field(default=0, description="Map row inside the kingdom")


class BuildingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Primary key")
    kingdom_id: int
    building_type: str
    level: int = Field(..., ge=1)
    position_x: int
    position_y: int
