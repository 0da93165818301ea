import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from tischbuchung.exceptions import NotFoundError, ValidationError
from tischbuchung.models.table import VenueTable, TableStatus
from tischbuchung.repositories.reservation_repository import ReservationRepository
from tischbuchung.repositories.table_repository import TableRepository
from tischbuchung.schemas.table import TableCreate, TableUpdate
from tischbuchung.services.authorization import MembershipAuthorizer
from tischbuchung.services.clock import Clock
from tischbuchung.services.scheduler import ReservationScheduler
from tischbuchung.services.table_state import check_manual_transition, STATUS_LABELS
from tischbuchung.services.transaction import transactional

logger = logging.getLogger("tischbuchung.services.table_service")


class TableService:
    """Tische anlegen, bearbeiten, löschen und manuell Status wechseln."""

    def __init__(
        self,
        db: Session,
        clock: Clock,
        tables: TableRepository,
        reservations: ReservationRepository,
        authorizer: MembershipAuthorizer,
        scheduler: ReservationScheduler,
    ):
        self.db = db
        self.clock = clock
        self.tables = tables
        self.reservations = reservations
        self.authorizer = authorizer
        self.scheduler = scheduler

    def _get_table(
        self, venue_id: UUID, table_id: UUID, for_update: bool = False, include_inactive: bool = False
    ) -> VenueTable:
        if for_update:
            table = self.tables.get_for_update(table_id)
        else:
            table = self.tables.get(table_id)
        if not table or (table.status == TableStatus.INACTIVE and not include_inactive):
            raise NotFoundError(f"Tisch {table_id} nicht gefunden")
        if table.venue_id != venue_id:
            raise NotFoundError(f"Tisch {table.code} gehört nicht zu diesem Lokal")
        return table

    # Bearbeiten nur bei freiem Tisch ohne Reservierung in den nächsten 45 Minuten
    def _ensure_editable(self, table: VenueTable, action: str, now: datetime) -> None:
        if table.status != TableStatus.FREE:
            raise ValidationError(
                f"Tisch {table.code} ist {STATUS_LABELS[table.status]}: {action} nur bei freien Tischen möglich"
            )
        if self.scheduler.has_upcoming_reservation(table.id, now):
            raise ValidationError(
                f"Tisch {table.code}: {action} nicht möglich, in weniger als 45 Minuten beginnt eine Reservierung"
            )

    @transactional
    def create_table(self, user_email: str, venue_id: UUID, request: TableCreate) -> UUID:
        self.authorizer.ensure_owner(user_email, venue_id)
        if self.tables.exists_code(venue_id, request.code):
            raise ValidationError(f"Es gibt bereits einen Tisch mit dem Code {request.code}")

        table = VenueTable(
            venue_id=venue_id,
            code=request.code,
            capacity=request.capacity,
            sector=request.sector,
            status=TableStatus.FREE,
        )
        self.tables.add(table)
        logger.info(f"Tisch {table.code} angelegt ({table.capacity} Plätze)")
        return table.id

    def list_tables(self, user_email: str, venue_id: UUID, include_inactive: bool = False) -> list[VenueTable]:
        self.authorizer.ensure_active_member(user_email, venue_id)
        return self.tables.list_by_venue(venue_id, include_inactive=include_inactive)

    def get_table(self, user_email: str, venue_id: UUID, table_id: UUID) -> VenueTable:
        self.authorizer.ensure_active_member(user_email, venue_id)
        return self._get_table(venue_id, table_id)

    @transactional
    def update_table(self, user_email: str, venue_id: UUID, table_id: UUID, request: TableUpdate) -> VenueTable:
        self.authorizer.ensure_owner(user_email, venue_id)
        table = self._get_table(venue_id, table_id, for_update=True)
        self._ensure_editable(table, "Bearbeiten", self.clock.now())

        if request.code is not None and request.code != table.code:
            if self.tables.exists_code(venue_id, request.code, exclude_id=table.id):
                raise ValidationError(f"Es gibt bereits einen Tisch mit dem Code {request.code}")
            table.code = request.code
        if request.capacity is not None:
            table.capacity = request.capacity
        if request.sector is not None:
            table.sector = request.sector
        return table

    @transactional
    def update_capacity(self, user_email: str, venue_id: UUID, table_id: UUID, capacity: int) -> VenueTable:
        # Inhaber und Mitarbeiter dürfen die Kapazität anpassen
        self.authorizer.ensure_active_member(user_email, venue_id)
        table = self._get_table(venue_id, table_id, for_update=True)
        self._ensure_editable(table, "Kapazität ändern", self.clock.now())
        table.capacity = capacity
        return table

    @transactional
    def update_status(self, user_email: str, venue_id: UUID, table_id: UUID, new_status: TableStatus) -> VenueTable:
        """
        Manueller Statuswechsel durch das Personal. Läuft unter Zeilensperre,
        damit ein gleichzeitiger Scheduler-Tick den Tisch nicht zwischen Prüfung
        und Schreiben auf RESERVED setzt.
        """
        self.authorizer.ensure_active_member(user_email, venue_id)
        now = self.clock.now()
        table = self._get_table(venue_id, table_id, for_update=True)

        check_manual_transition(table.status, new_status)
        if new_status == TableStatus.OCCUPIED and self.scheduler.has_upcoming_reservation(table.id, now):
            raise ValidationError(
                f"Tisch {table.code} kann nicht manuell belegt werden: "
                f"in weniger als 45 Minuten beginnt eine Reservierung"
            )

        logger.info(f"Tisch {table.code}: {table.status.value} → {new_status.value} (manuell)")
        table.status = new_status
        self.scheduler.reconcile_table(table, now)
        return table

    @transactional
    def delete_table(self, user_email: str, venue_id: UUID, table_id: UUID) -> None:
        self.authorizer.ensure_owner(user_email, venue_id)
        table = self._get_table(venue_id, table_id, for_update=True)
        self._ensure_editable(table, "Löschen", self.clock.now())
        # auch Reservierungen weit in der Zukunft halten den Tisch fest
        active = self.reservations.find_active_for_table(table.id)
        if active:
            raise ValidationError(
                f"Tisch {table.code} kann nicht gelöscht werden: {len(active)} offene Reservierung(en), "
                f"nächste {active[0].id} am {active[0].start_time.isoformat(timespec='minutes')}"
            )
        self.tables.delete(table)
        logger.info(f"Tisch {table.code} gelöscht")

    @transactional
    def reactivate_table(self, user_email: str, venue_id: UUID, table_id: UUID) -> VenueTable:
        """Gelöschten (INACTIVE) Tisch wieder in Betrieb nehmen."""
        self.authorizer.ensure_owner(user_email, venue_id)
        now = self.clock.now()
        table = self._get_table(venue_id, table_id, for_update=True, include_inactive=True)
        if table.status != TableStatus.INACTIVE:
            raise ValidationError(f"Tisch {table.code} ist nicht gelöscht")
        if self.tables.exists_code(venue_id, table.code, exclude_id=table.id):
            raise ValidationError(
                f"Tisch {table.code} kann nicht reaktiviert werden: der Code ist bereits vergeben"
            )

        table.status = TableStatus.FREE
        logger.info(f"Tisch {table.code} reaktiviert")
        self.scheduler.reconcile_table(table, now)
        return table
