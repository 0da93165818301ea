from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional

from tischbuchung.models.table import TableStatus


class TableInfo(BaseModel):
    id: UUID
    code: str
    capacity: int
    model_config = {"from_attributes": True}

class TableCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    capacity: int = Field(ge=1, le=100)
    sector: Optional[str] = None

class TableUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    capacity: Optional[int] = Field(default=None, ge=1, le=100)
    sector: Optional[str] = None

class TableCapacityUpdate(BaseModel):
    capacity: int = Field(ge=1, le=100)

class TableStatusUpdate(BaseModel):
    status: TableStatus

class TableResponse(BaseModel):
    id: UUID
    venue_id: UUID
    code: str
    capacity: int
    sector: Optional[str]
    status: TableStatus

    model_config = {"from_attributes": True}
