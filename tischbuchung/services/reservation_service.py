import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tischbuchung.exceptions import NotFoundError, ValidationError
from tischbuchung.models.reservation import Reservation, ReservationStatus
from tischbuchung.models.table import VenueTable, TableStatus
from tischbuchung.models.user import User
from tischbuchung.repositories.reservation_repository import ReservationRepository
from tischbuchung.repositories.table_repository import TableRepository
from tischbuchung.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationResponse,
    GanttSlot,
    TableGanttResponse,
)
from tischbuchung.schemas.table import TableInfo
from tischbuchung.services.authorization import MembershipAuthorizer
from tischbuchung.services.clock import Clock
from tischbuchung.services.overlap import OverlapChecker
from tischbuchung.services.scheduler import ReservationScheduler, RESERVATION_LOCK
from tischbuchung.services.transaction import transactional

logger = logging.getLogger("tischbuchung.services.reservation_service")

MAX_RESERVATION_DURATION = timedelta(hours=12)
# Check-in frühestens 15 Minuten vor Beginn
CHECK_IN_EARLY = timedelta(minutes=15)


def _fmt(instant: datetime) -> str:
    return instant.isoformat(timespec="seconds")


def validate_time_bounds(start: datetime, end: datetime, now: datetime) -> None:
    if start < now:
        raise ValidationError(
            f"Der Beginn ({_fmt(start)}) darf nicht in der Vergangenheit liegen (jetzt: {_fmt(now)})"
        )
    if start >= end:
        raise ValidationError(
            f"Der Beginn ({_fmt(start)}) muss vor dem Ende ({_fmt(end)}) liegen"
        )
    if end - start > MAX_RESERVATION_DURATION:
        raise ValidationError("Eine Reservierung darf höchstens 12 Stunden dauern")


def validate_capacity(tables: list[VenueTable], party_size: int, forced: bool) -> None:
    total_capacity = sum(t.capacity for t in tables)
    if forced or party_size <= total_capacity:
        return
    codes = ", ".join(sorted(t.code for t in tables))
    raise ValidationError(
        f"Die Tische [{codes}] haben zusammen {total_capacity} Plätze, benötigt werden {party_size} "
        f"(es fehlen {party_size - total_capacity}). Mit 'forced' kann trotzdem reserviert werden."
    )


@dataclass
class ExpiryResult:
    expired: int = 0
    failed: int = 0


class ReservationService:
    """
    Anlegen, Ändern und Statuswechsel von Reservierungen.

    Jede schreibende Operation:
    1. prüft die Mitgliedschaft des Aufrufers,
    2. liest genau einmal die aktuelle Zeit,
    3. sperrt die betroffenen Tische (FOR UPDATE, aufsteigende ID),
    4. prüft und schreibt in einer Transaktion,
    5. stößt den Scheduler gezielt für die betroffenen Tische an.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock,
        tables: TableRepository,
        reservations: ReservationRepository,
        authorizer: MembershipAuthorizer,
        overlap: OverlapChecker,
        scheduler: ReservationScheduler,
        venue_tz: Optional[tzinfo] = None,
    ):
        self.db = db
        self.clock = clock
        self.tables = tables
        self.reservations = reservations
        self.authorizer = authorizer
        self.overlap = overlap
        self.scheduler = scheduler
        self.venue_tz = venue_tz

    # ============ HILFSFUNKTIONEN ============

    def _get_reservation(self, venue_id: UUID, reservation_id: UUID) -> Reservation:
        reservation = self.reservations.get(reservation_id)
        if not reservation or reservation.venue_id != venue_id:
            raise NotFoundError(f"Reservierung {reservation_id} nicht gefunden")
        return reservation

    def _lock_tables(self, venue_id: UUID, table_ids: Iterable[UUID]) -> list[VenueTable]:
        """Sperrt alle angefragten Tische. Fehlende, fremde oder gelöschte Tische → NotFound."""
        wanted = set(table_ids)
        locked = self.tables.lock_many(wanted)
        found = {t.id: t for t in locked}
        for table_id in sorted(wanted):
            table = found.get(table_id)
            if not table or table.status == TableStatus.INACTIVE:
                raise NotFoundError(f"Tisch {table_id} nicht gefunden")
            if table.venue_id != venue_id:
                raise NotFoundError(f"Tisch {table.code} gehört nicht zu diesem Lokal")
        return locked

    def _free_tables(self, table_ids: Iterable[UUID], from_statuses: tuple, now: datetime) -> None:
        """
        Setzt Tische zurück auf FREE und gleicht sie danach erneut ab (nächste Reservierung).
        Gelöschte Tische (INACTIVE) bleiben gelöscht.
        """
        for table in self.tables.lock_many(table_ids):
            if table.status == TableStatus.INACTIVE:
                continue
            if table.status in from_statuses:
                logger.info(f"Tisch {table.code}: {table.status.value} → FREE")
                table.status = TableStatus.FREE
                self.scheduler.reconcile_table(table, now)

    def _to_response(self, reservation: Reservation) -> ReservationResponse:
        tables = self.tables.get_many(reservation.table_ids)
        created_by = None
        if reservation.created_by_id:
            user = self.db.query(User).filter(User.id == reservation.created_by_id).first()
            if user:
                created_by = user.name.strip() or user.email
        return ReservationResponse(
            id=reservation.id,
            venue_id=reservation.venue_id,
            tables=[TableInfo.model_validate(t) for t in tables],
            customer_name=reservation.customer_name,
            customer_contact=reservation.customer_contact,
            customer_document=reservation.customer_document,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            party_size=reservation.party_size,
            status=reservation.status,
            forced=reservation.forced,
            created_by=created_by,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
            notes=reservation.notes,
        )

    # ============ SCHREIBENDE OPERATIONEN ============

    @transactional
    def create_reservation(self, user_email: str, venue_id: UUID, request: ReservationCreate) -> UUID:
        membership = self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()

        validate_time_bounds(request.start_time, request.end_time, now)
        tables = self._lock_tables(venue_id, request.table_ids)
        validate_capacity(tables, request.party_size, request.forced)
        self.overlap.ensure_available(tables, request.start_time, request.end_time)

        reservation = Reservation(
            venue_id=venue_id,
            customer_name=request.customer_name,
            customer_contact=request.customer_contact,
            customer_document=request.customer_document,
            start_time=request.start_time,
            end_time=request.end_time,
            party_size=request.party_size,
            status=ReservationStatus.PENDING,
            forced=request.forced,
            created_by_id=membership.user_id,
            notes=request.notes,
            created_at=now,
        )
        reservation.assign_tables(t.id for t in tables)
        self.reservations.add(reservation)
        logger.info(
            f"Reservierung {reservation.id} angelegt: {request.party_size} Personen, "
            f"{_fmt(request.start_time)} - {_fmt(request.end_time)}, Tische {[t.code for t in tables]}"
        )

        self.scheduler.reconcile_reservation(reservation, now)
        return reservation.id

    @transactional
    def update_reservation(self, user_email: str, venue_id: UUID, reservation_id: UUID, request: ReservationUpdate) -> UUID:
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()

        reservation = self._get_reservation(venue_id, reservation_id)
        if reservation.status != ReservationStatus.PENDING:
            raise ValidationError(
                f"Reservierung {reservation.id} ist {reservation.status.value}: nur PENDING-Reservierungen können geändert werden"
            )

        old_table_ids = set(reservation.table_ids)
        new_table_ids = set(request.table_ids) if request.table_ids else old_table_ids
        tables_changed = new_table_ids != old_table_ids
        dates_given = request.start_time is not None or request.end_time is not None
        new_start = request.start_time or reservation.start_time
        new_end = request.end_time or reservation.end_time
        new_party_size = request.party_size or reservation.party_size

        # alte und neue Tische gemeinsam sperren, in fester Reihenfolge
        locked = {t.id: t for t in self.tables.lock_many(old_table_ids | new_table_ids)}
        final_tables = self._lock_tables(venue_id, new_table_ids)

        if dates_given or request.table_ids:
            validate_time_bounds(new_start, new_end, now)
            self.overlap.ensure_available(final_tables, new_start, new_end, exclude_reservation_id=reservation.id)
        if tables_changed or request.party_size is not None:
            validate_capacity(final_tables, new_party_size, reservation.forced)

        # Tische, die nur wegen dieser Reservierung RESERVED sind und nicht mehr dazugehören
        # (entfernt oder Beginn hinter das Sperrfenster verschoben), werden wieder frei.
        # Hat die Reservierung schon begonnen (Gast verspätet), bleibt der Tisch reserviert.
        moved_out = new_start >= now + RESERVATION_LOCK
        for table_id in sorted(old_table_ids):
            table = locked.get(table_id)
            if not table or table.status != TableStatus.RESERVED:
                continue
            if table_id in new_table_ids and not moved_out:
                continue
            if self.scheduler.has_upcoming_reservation(table_id, now, exclude_reservation_id=reservation.id):
                continue
            logger.info(f"Tisch {table.code} nach Änderung von Reservierung {reservation.id} freigegeben")
            table.status = TableStatus.FREE

        if tables_changed:
            # neue Tische werden NICHT direkt RESERVED, das macht der Scheduler
            reservation.assign_tables(new_table_ids)
        if dates_given:
            reservation.start_time = new_start
            reservation.end_time = new_end
        if request.customer_name is not None:
            reservation.customer_name = request.customer_name
        if request.customer_contact is not None:
            reservation.customer_contact = request.customer_contact
        if request.customer_document is not None:
            reservation.customer_document = request.customer_document
        if request.party_size is not None:
            reservation.party_size = request.party_size
        if request.notes is not None:
            reservation.notes = request.notes
        reservation.updated_at = now

        self.scheduler.reconcile_reservation(reservation, now)
        # freigegebene Tische können durch eine andere Reservierung sofort wieder dran sein
        for table_id in sorted(old_table_ids - new_table_ids):
            self.scheduler.reconcile_table_by_id(table_id, now)
        return reservation.id

    @transactional
    def start_reservation(self, user_email: str, venue_id: UUID, reservation_id: UUID) -> None:
        """Check-in: PENDING → IN_PROGRESS, alle Tische OCCUPIED."""
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()

        reservation = self._get_reservation(venue_id, reservation_id)
        if reservation.status != ReservationStatus.PENDING:
            raise ValidationError(
                f"Reservierung {reservation.id} ist {reservation.status.value}: nur PENDING-Reservierungen können beginnen"
            )
        earliest = reservation.start_time - CHECK_IN_EARLY
        if now < earliest:
            raise ValidationError(
                f"Check-in frühestens 15 Minuten vor Beginn möglich. Erlaubt ab: {_fmt(earliest)}"
            )
        if now > reservation.end_time:
            raise ValidationError(
                f"Check-in nach dem Ende der Reservierung nicht mehr möglich. Ende war: {_fmt(reservation.end_time)}"
            )

        reservation.status = ReservationStatus.IN_PROGRESS
        reservation.updated_at = now
        for table in self.tables.lock_many(reservation.table_ids):
            if table.status == TableStatus.INACTIVE:
                logger.warning(f"Tisch {table.code} ist gelöscht und wird beim Check-in übersprungen")
                continue
            table.status = TableStatus.OCCUPIED
        logger.info(f"Reservierung {reservation.id} begonnen")

    @transactional
    def complete_reservation(self, user_email: str, venue_id: UUID, reservation_id: UUID) -> None:
        """Checkout: IN_PROGRESS → COMPLETED, alle Tische FREE."""
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()

        reservation = self._get_reservation(venue_id, reservation_id)
        if reservation.status != ReservationStatus.IN_PROGRESS:
            raise ValidationError(
                f"Reservierung {reservation.id} ist {reservation.status.value}: nur laufende Reservierungen können abgeschlossen werden"
            )

        reservation.status = ReservationStatus.COMPLETED
        reservation.updated_at = now
        self._free_tables(reservation.table_ids, (TableStatus.RESERVED, TableStatus.OCCUPIED), now)
        logger.info(f"Reservierung {reservation.id} abgeschlossen")

    @transactional
    def cancel_reservation(self, user_email: str, venue_id: UUID, reservation_id: UUID) -> None:
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()

        reservation = self._get_reservation(venue_id, reservation_id)
        if reservation.status == ReservationStatus.COMPLETED:
            raise ValidationError(f"Reservierung {reservation.id} ist abgeschlossen und kann nicht storniert werden")
        if reservation.status in (ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW):
            raise ValidationError(
                f"Reservierung {reservation.id} ist bereits {reservation.status.value}"
            )
        if now > reservation.end_time:
            raise ValidationError(
                f"Stornierung nach dem Ende der Reservierung nicht möglich (after finalization time). "
                f"Ende war: {_fmt(reservation.end_time)}"
            )

        reservation.status = ReservationStatus.CANCELLED
        reservation.updated_at = now
        self._free_tables(reservation.table_ids, (TableStatus.RESERVED, TableStatus.OCCUPIED), now)
        logger.info(f"Reservierung {reservation.id} storniert")

    @transactional
    def mark_no_show(self, user_email: str, venue_id: UUID, reservation_id: UUID) -> None:
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()

        reservation = self._get_reservation(venue_id, reservation_id)
        if reservation.status != ReservationStatus.PENDING:
            raise ValidationError(
                f"Reservierung {reservation.id} ist {reservation.status.value}: nur PENDING-Reservierungen können No-Show werden"
            )
        if now < reservation.start_time:
            raise ValidationError(
                f"No-Show erst ab Beginn der Reservierung möglich. Beginn: {_fmt(reservation.start_time)}"
            )
        if now > reservation.end_time:
            raise ValidationError(
                f"No-Show nach dem Ende der Reservierung nicht mehr möglich. Ende war: {_fmt(reservation.end_time)}"
            )

        self._apply_no_show(reservation, now)

    def _apply_no_show(self, reservation: Reservation, now: datetime) -> None:
        reservation.status = ReservationStatus.NO_SHOW
        reservation.updated_at = now
        self._free_tables(reservation.table_ids, (TableStatus.RESERVED,), now)
        logger.info(f"Reservierung {reservation.id} als NO_SHOW markiert")

    def expire_overdue(self) -> ExpiryResult:
        """
        Systemjob (ohne Benutzer): PENDING-Reservierungen, deren Ende vorbei ist,
        werden NO_SHOW, ihre RESERVED-Tische frei. Laufende (IN_PROGRESS)
        Reservierungen bleiben offen, bis sie jemand abschließt.
        Jede Reservierung in einer eigenen Transaktion, ein Fehler bricht den Lauf nicht ab.
        """
        now = self.clock.now()
        result = ExpiryResult()
        for reservation in self.reservations.find_expired_pending(now):
            reservation_id = reservation.id
            try:
                logger.warning(f"Reservierung {reservation_id} abgelaufen ohne Check-in → NO_SHOW")
                self._apply_no_show(reservation, now)
                self.db.commit()
                result.expired += 1
            except SQLAlchemyError:
                self.db.rollback()
                result.failed += 1
                logger.exception(f"NO_SHOW für Reservierung {reservation_id} fehlgeschlagen")
        return result

    # ============ ABFRAGEN ============

    def get_reservation(self, user_email: str, venue_id: UUID, reservation_id: UUID) -> ReservationResponse:
        self.authorizer.ensure_active_member(user_email, venue_id)
        return self._to_response(self._get_reservation(venue_id, reservation_id))

    def list_reservations(
        self,
        user_email: str,
        venue_id: UUID,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
    ) -> list[ReservationResponse]:
        self.authorizer.ensure_active_member(user_email, venue_id)
        if range_start and range_end:
            if range_start >= range_end:
                raise ValidationError("Der Zeitraum muss vor seinem Ende beginnen")
            reservations = self.reservations.find_by_venue_and_range(venue_id, range_start, range_end)
        else:
            reservations = self.reservations.list_by_venue(venue_id)
        return [self._to_response(r) for r in reservations]

    def list_upcoming(self, user_email: str, venue_id: UUID) -> list[ReservationResponse]:
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()
        reservations = [r for r in self.reservations.list_by_venue(venue_id) if r.start_time >= now]
        reservations.sort(key=lambda r: r.start_time)
        return [self._to_response(r) for r in reservations]

    def list_past(self, user_email: str, venue_id: UUID) -> list[ReservationResponse]:
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()
        return [self._to_response(r) for r in self.reservations.list_by_venue(venue_id) if r.start_time < now]

    def get_gantt(self, user_email: str, venue_id: UUID, day: date) -> list[TableGanttResponse]:
        """
        Tagesplan: alle Tische des Lokals (nach Code) mit allen Reservierungen,
        die den Tag berühren, auch solchen, die am Vortag beginnen oder am
        Folgetag enden. Der Tag gilt in der Zeitzone des Lokals.
        """
        self.authorizer.ensure_active_member(user_email, venue_id)
        tz = self.venue_tz or self.clock.now().tzinfo
        day_start = datetime.combine(day, time.min, tzinfo=tz)
        day_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)

        tables = self.tables.list_by_venue(venue_id)
        reservations = self.reservations.find_by_venue_and_range(venue_id, day_start, day_end)

        result = []
        for table in tables:
            slots = [
                GanttSlot(
                    reservation_id=r.id,
                    customer_name=r.customer_name,
                    customer_document=r.customer_document,
                    start_time=r.start_time,
                    end_time=r.end_time,
                    party_size=r.party_size,
                    status=r.status,
                )
                for r in reservations
                if table.id in r.table_ids
            ]
            slots.sort(key=lambda s: s.start_time)
            result.append(TableGanttResponse(
                table_id=table.id,
                code=table.code,
                capacity=table.capacity,
                reservations=slots,
            ))
        return result
