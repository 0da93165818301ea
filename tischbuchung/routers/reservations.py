from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import AwareDatetime

from tischbuchung.dependencies import get_reservation_service
from tischbuchung.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationResponse,
    ReservationCreated,
    TableGanttResponse,
)
from tischbuchung.services.reservation_service import ReservationService
from tischbuchung.utils.security import get_current_email

router = APIRouter(prefix="/venues/{venue_id}/reservations", tags=["reservations"])


@router.post("/", response_model=ReservationCreated)
def create_reservation(
    venue_id: UUID,
    reservation_data: ReservationCreate,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    reservation_id = service.create_reservation(email, venue_id, reservation_data)
    return ReservationCreated(message="Reservierung angelegt", reservation_id=reservation_id)


@router.get("/", response_model=list[ReservationResponse])
def get_reservations(
    venue_id: UUID,
    start: Optional[AwareDatetime] = Query(default=None),
    end: Optional[AwareDatetime] = Query(default=None),
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    return service.list_reservations(email, venue_id, start, end)


@router.get("/upcoming", response_model=list[ReservationResponse])
def get_upcoming_reservations(
    venue_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    return service.list_upcoming(email, venue_id)


@router.get("/past", response_model=list[ReservationResponse])
def get_past_reservations(
    venue_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    return service.list_past(email, venue_id)


@router.get("/gantt", response_model=list[TableGanttResponse])
def get_gantt(
    venue_id: UUID,
    day: date = Query(...),
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    """
    Tagesplan pro Tisch (z.B. für ein Gantt-Diagramm).
    Enthält auch Reservierungen, die am Vortag beginnen oder am Folgetag enden.
    """
    return service.get_gantt(email, venue_id, day)


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    venue_id: UUID,
    reservation_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    return service.get_reservation(email, venue_id, reservation_id)


@router.patch("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(
    venue_id: UUID,
    reservation_id: UUID,
    reservation_update: ReservationUpdate,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    service.update_reservation(email, venue_id, reservation_id, reservation_update)
    return service.get_reservation(email, venue_id, reservation_id)


@router.post("/{reservation_id}/start")
def start_reservation(
    venue_id: UUID,
    reservation_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    service.start_reservation(email, venue_id, reservation_id)
    return {"message": "Reservierung begonnen - Gäste sitzen"}


@router.post("/{reservation_id}/complete")
def complete_reservation(
    venue_id: UUID,
    reservation_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    service.complete_reservation(email, venue_id, reservation_id)
    return {"message": "Reservierung abgeschlossen - Tische frei"}


@router.post("/{reservation_id}/cancel")
def cancel_reservation(
    venue_id: UUID,
    reservation_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    service.cancel_reservation(email, venue_id, reservation_id)
    return {"message": "Reservierung storniert"}


@router.post("/{reservation_id}/no-show")
def mark_no_show(
    venue_id: UUID,
    reservation_id: UUID,
    email: str = Depends(get_current_email),
    service: ReservationService = Depends(get_reservation_service)
):
    service.mark_no_show(email, venue_id, reservation_id)
    return {"message": "Reservierung als No-Show markiert"}
