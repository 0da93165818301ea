from uuid import UUID
from datetime import datetime
from pydantic import AwareDatetime, BaseModel, Field, field_validator
from typing import Optional

from tischbuchung.models.reservation import ReservationStatus
from tischbuchung.schemas.table import TableInfo


def _unique_ids(v):
    if v is None:
        return v
    # Doppelte Tisch-IDs zusammenfassen, Reihenfolge beibehalten
    return list(dict.fromkeys(v))


class ReservationCreate(BaseModel):
    customer_name: str = Field(min_length=1, max_length=100)
    customer_contact: str = Field(min_length=1, max_length=100)
    customer_document: str = Field(min_length=1, max_length=50)
    start_time: AwareDatetime
    end_time: AwareDatetime
    party_size: int = Field(ge=1)
    table_ids: list[UUID] = Field(min_length=1)
    forced: bool = False
    notes: Optional[str] = None

    @field_validator('table_ids')
    @classmethod
    def table_ids_unique(cls, v):
        return _unique_ids(v)


class ReservationUpdate(BaseModel):
    """Alle Felder optional: nicht gesetzte Felder behalten ihren Wert."""
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    customer_contact: Optional[str] = Field(default=None, min_length=1, max_length=100)
    customer_document: Optional[str] = Field(default=None, min_length=1, max_length=50)
    start_time: Optional[AwareDatetime] = None
    end_time: Optional[AwareDatetime] = None
    party_size: Optional[int] = Field(default=None, ge=1)
    table_ids: Optional[list[UUID]] = Field(default=None, min_length=1)
    notes: Optional[str] = None

    @field_validator('table_ids')
    @classmethod
    def table_ids_unique(cls, v):
        return _unique_ids(v)


class ReservationResponse(BaseModel):
    id: UUID
    venue_id: UUID
    tables: list[TableInfo]
    customer_name: str
    customer_contact: str
    customer_document: str
    start_time: datetime
    end_time: datetime
    party_size: int
    status: ReservationStatus
    forced: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None


class ReservationCreated(BaseModel):
    message: str
    reservation_id: UUID


class GanttSlot(BaseModel):
    """Eine Reservierung im Tagesplan eines Tisches"""
    reservation_id: UUID
    customer_name: str
    customer_document: str
    start_time: datetime
    end_time: datetime
    party_size: int
    status: ReservationStatus


class TableGanttResponse(BaseModel):
    """Tisch + alle Reservierungen, die den Tag berühren"""
    table_id: UUID
    code: str
    capacity: int
    reservations: list[GanttSlot]
