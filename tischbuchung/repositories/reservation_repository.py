from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from tischbuchung.models.reservation import (
    Reservation,
    ReservationTable,
    ReservationStatus,
    ACTIVE_STATUSES,
)


class ReservationRepository:
    """Abfragen auf Reservierungen. Commit/Rollback macht der aufrufende Service."""

    def __init__(self, db: Session):
        self.db = db

    def _for_table(self, table_id: UUID):
        return self.db.query(Reservation).join(
            ReservationTable, ReservationTable.reservation_id == Reservation.id
        ).filter(ReservationTable.table_id == table_id)

    def get(self, reservation_id: UUID) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()

    def find_overlapping_for_table(
        self,
        table_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> list[Reservation]:
        """
        Aktive Reservierungen (PENDING, IN_PROGRESS) des Tisches, die das
        Fenster [window_start, window_end) schneiden.
        """
        query = self._for_table(table_id).filter(
            Reservation.status.in_(ACTIVE_STATUSES),
            Reservation.start_time < window_end,
            Reservation.end_time > window_start,
        )
        if exclude_reservation_id:
            query = query.filter(Reservation.id != exclude_reservation_id)
        return query.order_by(Reservation.start_time).all()

    def find_upcoming_for_table(
        self,
        table_id: UUID,
        after: datetime,
        before: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> list[Reservation]:
        """PENDING-Reservierungen des Tisches mit after < start < before."""
        query = self._for_table(table_id).filter(
            Reservation.status == ReservationStatus.PENDING,
            Reservation.start_time > after,
            Reservation.start_time < before,
        )
        if exclude_reservation_id:
            query = query.filter(Reservation.id != exclude_reservation_id)
        return query.order_by(Reservation.start_time).all()

    def find_active_for_table(self, table_id: UUID) -> list[Reservation]:
        """Alle PENDING/IN_PROGRESS-Reservierungen des Tisches, unabhängig vom Zeitpunkt."""
        return self._for_table(table_id).filter(
            Reservation.status.in_(ACTIVE_STATUSES)
        ).order_by(Reservation.start_time).all()

    def find_by_venue_and_range(self, venue_id: UUID, range_start: datetime, range_end: datetime) -> list[Reservation]:
        """Alle Reservierungen, die den Zeitraum berühren, neueste zuerst."""
        return self.db.query(Reservation).filter(
            Reservation.venue_id == venue_id,
            Reservation.start_time < range_end,
            Reservation.end_time > range_start,
        ).order_by(Reservation.start_time.desc()).all()

    def list_by_venue(self, venue_id: UUID) -> list[Reservation]:
        return self.db.query(Reservation).filter(
            Reservation.venue_id == venue_id
        ).order_by(Reservation.start_time.desc()).all()

    def find_expired_pending(self, now: datetime) -> list[Reservation]:
        return self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.PENDING,
            Reservation.end_time < now,
        ).order_by(Reservation.end_time).all()

    def add(self, reservation: Reservation) -> Reservation:
        self.db.add(reservation)
        self.db.flush()
        return reservation

    def delete(self, reservation: Reservation) -> None:
        self.db.delete(reservation)
        self.db.flush()
