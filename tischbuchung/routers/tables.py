from uuid import UUID

from fastapi import APIRouter, Depends, Query

from tischbuchung.dependencies import get_table_service
from tischbuchung.schemas.table import (
    TableCreate,
    TableUpdate,
    TableCapacityUpdate,
    TableStatusUpdate,
    TableResponse,
)
from tischbuchung.services.table_service import TableService
from tischbuchung.utils.security import get_current_email

router = APIRouter(prefix="/venues/{venue_id}/tables", tags=["tables"])


@router.get("/", response_model=list[TableResponse])
def get_tables(
    venue_id: UUID,
    include_inactive: bool = Query(default=False),
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    return service.list_tables(email, venue_id, include_inactive)


@router.get("/{table_id}", response_model=TableResponse)
def get_table(
    venue_id: UUID,
    table_id: UUID,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    return service.get_table(email, venue_id, table_id)


@router.post("/", response_model=TableResponse)
def create_table(
    venue_id: UUID,
    table_data: TableCreate,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    table_id = service.create_table(email, venue_id, table_data)
    return service.get_table(email, venue_id, table_id)


@router.patch("/{table_id}", response_model=TableResponse)
def update_table(
    venue_id: UUID,
    table_id: UUID,
    table_update: TableUpdate,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    return service.update_table(email, venue_id, table_id, table_update)


@router.patch("/{table_id}/capacity", response_model=TableResponse)
def update_table_capacity(
    venue_id: UUID,
    table_id: UUID,
    capacity_update: TableCapacityUpdate,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    return service.update_capacity(email, venue_id, table_id, capacity_update.capacity)


# Manueller Statuswechsel (RESERVED vergibt nur der Scheduler)
@router.patch("/{table_id}/status", response_model=TableResponse)
def update_table_status(
    venue_id: UUID,
    table_id: UUID,
    status_update: TableStatusUpdate,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    return service.update_status(email, venue_id, table_id, status_update.status)


@router.delete("/{table_id}")
def delete_table(
    venue_id: UUID,
    table_id: UUID,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    service.delete_table(email, venue_id, table_id)
    return {"message": "Tisch gelöscht"}


@router.post("/{table_id}/reactivate", response_model=TableResponse)
def reactivate_table(
    venue_id: UUID,
    table_id: UUID,
    email: str = Depends(get_current_email),
    service: TableService = Depends(get_table_service)
):
    return service.reactivate_table(email, venue_id, table_id)
