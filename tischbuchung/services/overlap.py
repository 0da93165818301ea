"""
Überschneidungsprüfung für Tische.

Das angefragte Intervall wird vorne um 20 Minuten (Vorbereitung) und hinten
um 5 Minuten (Abräumen) erweitert und gegen alle PENDING/IN_PROGRESS
Reservierungen desselben Tisches geschnitten. Stornierte, abgeschlossene und
No-Show-Reservierungen blockieren nie.
"""
from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from tischbuchung.exceptions import ConflictError
from tischbuchung.models.reservation import Reservation
from tischbuchung.models.table import VenueTable
from tischbuchung.repositories.reservation_repository import ReservationRepository

FRONT_BUFFER = timedelta(minutes=20)
BACK_BUFFER = timedelta(minutes=5)


def buffered_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    return start - FRONT_BUFFER, end + BACK_BUFFER


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # halboffen: [a_start, a_end) und [b_start, b_end)
    return a_start < b_end and b_start < a_end


class OverlapChecker:

    def __init__(self, reservations: ReservationRepository):
        self.reservations = reservations

    def find_conflicts(
        self,
        table_id: UUID,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> list[Reservation]:
        window_start, window_end = buffered_window(start, end)
        return self.reservations.find_overlapping_for_table(
            table_id, window_start, window_end, exclude_reservation_id
        )

    def ensure_available(
        self,
        tables: Iterable[VenueTable],
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> None:
        """
        Alle Tische oder keiner: beim ersten Konflikt wird abgebrochen.
        Der Aufrufer muss die Tische vorher gesperrt haben.
        """
        for table in tables:
            conflicts = self.find_conflicts(table.id, start, end, exclude_reservation_id)
            if conflicts:
                other = conflicts[0]
                raise ConflictError(
                    f"Tisch {table.code} hat bereits eine Reservierung in diesem Zeitraum "
                    f"(Reservierung {other.id}, {other.start_time.isoformat()} - {other.end_time.isoformat()}). "
                    f"Zwischen Reservierungen sind 20 Minuten davor und 5 Minuten danach frei zu halten."
                )
