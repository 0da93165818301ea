"""
Abgleich der Tischstatus mit anstehenden Reservierungen.

Ein Tisch wird RESERVED, sobald eine PENDING-Reservierung auf ihm in weniger
als 45 Minuten beginnt (und noch nicht begonnen hat). Dieselbe Routine
`reconcile_table` läuft
- periodisch über alle freien Tische (`tick`) und
- sofort nach Anlegen/Ändern einer Reservierung oder einem manuellen
  Statuswechsel (`reconcile_reservation`, `reconcile_table_by_id`).

Der Scheduler setzt RESERVED nie selbst zurück auf FREE. Das passiert nur
über Storno, No-Show oder Bearbeitung im ReservationService.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tischbuchung.models.reservation import Reservation, ReservationStatus
from tischbuchung.models.table import VenueTable, TableStatus
from tischbuchung.repositories.reservation_repository import ReservationRepository
from tischbuchung.repositories.table_repository import TableRepository

logger = logging.getLogger("tischbuchung.services.scheduler")

RESERVATION_LOCK = timedelta(minutes=45)


def starts_within_lock_window(start: datetime, now: datetime) -> bool:
    return now < start < now + RESERVATION_LOCK


@dataclass
class TickResult:
    checked: int = 0
    reserved: int = 0
    failed: int = 0


class ReservationScheduler:

    def __init__(self, db: Session, tables: TableRepository, reservations: ReservationRepository):
        self.db = db
        self.tables = tables
        self.reservations = reservations

    def has_upcoming_reservation(self, table_id: UUID, now: datetime, exclude_reservation_id: UUID | None = None) -> bool:
        return bool(self.reservations.find_upcoming_for_table(
            table_id, now, now + RESERVATION_LOCK, exclude_reservation_id
        ))

    def reconcile_table(self, table: VenueTable, now: datetime) -> bool:
        """
        FREE → RESERVED, wenn eine Reservierung im Sperrfenster liegt.
        Gibt True zurück, wenn der Status geändert wurde. Idempotent:
        RESERVED, OCCUPIED und INACTIVE bleiben unangetastet.
        """
        if table.status != TableStatus.FREE:
            return False
        # Ungespeicherte Änderungen (neue Zeiten, neue Tische) müssen in der Abfrage sichtbar sein
        self.db.flush()
        upcoming = self.reservations.find_upcoming_for_table(table.id, now, now + RESERVATION_LOCK)
        if not upcoming:
            return False
        reservation = upcoming[0]
        minutes = int((reservation.start_time - now).total_seconds() // 60)
        table.status = TableStatus.RESERVED
        logger.info(
            f"Tisch {table.code} → RESERVED für Reservierung {reservation.id} (Beginn in {minutes} Minuten)"
        )
        return True

    def reconcile_table_by_id(self, table_id: UUID, now: datetime) -> bool:
        table = self.tables.get_for_update(table_id)
        if not table:
            return False
        return self.reconcile_table(table, now)

    def reconcile_reservation(self, reservation: Reservation, now: datetime) -> list[str]:
        """
        Gezielter Abgleich direkt nach Anlegen/Ändern: wichtig für Reservierungen,
        die mit weniger als 45 (oder 20) Minuten Vorlauf gebucht werden.
        Gibt die Codes der Tische zurück, die auf RESERVED gesetzt wurden.
        """
        if reservation.status != ReservationStatus.PENDING:
            return []
        if not starts_within_lock_window(reservation.start_time, now):
            return []
        changed = []
        for table in self.tables.lock_many(reservation.table_ids):
            if self.reconcile_table(table, now):
                changed.append(table.code)
        return changed

    def tick(self, now: datetime) -> TickResult:
        """
        Globaler Durchlauf über alle freien Tische aller Lokale.
        Jeder Tisch in einer eigenen kurzen Transaktion, keine Sperre über den ganzen Scan.
        """
        result = TickResult()
        for table_id in self.tables.list_ids_by_status(TableStatus.FREE):
            result.checked += 1
            try:
                if self.reconcile_table_by_id(table_id, now):
                    result.reserved += 1
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                result.failed += 1
                logger.exception(f"Abgleich für Tisch {table_id} fehlgeschlagen")
        if result.reserved or result.failed:
            logger.info(
                f"Scheduler-Tick: {result.checked} Tische geprüft, "
                f"{result.reserved} reserviert, {result.failed} Fehler"
            )
        return result
