"""
Tests für den TableService.

Testet:
- Anlegen/Bearbeiten/Löschen/Reaktivieren (nur Inhaber, nur freie Tische ohne offene Reservierung)
- Kapazität ändern (auch Mitarbeiter)
- Manueller Statuswechsel inkl. 45-Minuten-Sperre
"""
import pytest
from datetime import timedelta

from tischbuchung.exceptions import (
    AuthorizationError,
    NotFoundError,
    ReservedBySchedulerOnly,
    ValidationError,
)
from tischbuchung.models import TableStatus, VenueTable
from tischbuchung.schemas.table import TableCreate, TableUpdate
from tests.conftest import NOW


OWNER = "inhaber@test.com"
EMPLOYEE = "service@test.com"


@pytest.fixture
def upcoming(reservation_service, make_request, employee_user, table_t1):
    """Reservierung auf T1 um 18:30, T1 ist damit RESERVED"""
    return reservation_service.create_reservation(
        EMPLOYEE, table_t1.venue_id, make_request([table_t1], start_in=30)
    )


class TestCreateTable:

    def test_create(self, db, table_service, owner_user, venue):
        table_id = table_service.create_table(OWNER, venue.id, TableCreate(code="T9", capacity=6, sector="Terrasse"))
        table = db.query(VenueTable).filter(VenueTable.id == table_id).first()
        assert table.status == TableStatus.FREE
        assert table.sector == "Terrasse"

    def test_employee_forbidden(self, table_service, employee_user, venue):
        with pytest.raises(AuthorizationError):
            table_service.create_table(EMPLOYEE, venue.id, TableCreate(code="T9", capacity=6))

    def test_duplicate_code(self, table_service, owner_user, venue, table_t1):
        with pytest.raises(ValidationError) as exc:
            table_service.create_table(OWNER, venue.id, TableCreate(code="T1", capacity=2))
        assert "T1" in exc.value.message

    def test_same_code_other_venue(self, table_service, owner_user, venue, foreign_table):
        table_service.create_table(OWNER, venue.id, TableCreate(code="X1", capacity=2))

    def test_list_ordered_by_code(self, table_service, employee_user, venue, table_t2, table_t1):
        tables = table_service.list_tables(EMPLOYEE, venue.id)
        assert [t.code for t in tables] == ["T1", "T2"]


class TestUpdateTable:

    def test_update(self, table_service, owner_user, venue, table_t1):
        table = table_service.update_table(OWNER, venue.id, table_t1.id, TableUpdate(code="A1", sector="Bar"))
        assert table.code == "A1"
        assert table.sector == "Bar"
        assert table.capacity == 4

    def test_rename_to_existing_code(self, table_service, owner_user, venue, table_t1, table_t2):
        with pytest.raises(ValidationError):
            table_service.update_table(OWNER, venue.id, table_t1.id, TableUpdate(code="T2"))

    def test_not_free(self, db, table_service, owner_user, venue, table_t1):
        table_t1.status = TableStatus.OCCUPIED
        db.commit()
        with pytest.raises(ValidationError) as exc:
            table_service.update_table(OWNER, venue.id, table_t1.id, TableUpdate(capacity=8))
        assert "Belegt" in exc.value.message

    def test_upcoming_reservation_blocks(self, db, table_service, owner_user, venue, table_t1, upcoming):
        """T1 ist RESERVED, wird aber auch dann nicht bearbeitbar, wenn er FREE wäre"""
        table_t1.status = TableStatus.FREE
        db.commit()
        with pytest.raises(ValidationError) as exc:
            table_service.update_table(OWNER, venue.id, table_t1.id, TableUpdate(capacity=8))
        assert "45 Minuten" in exc.value.message

    def test_employee_can_change_capacity(self, table_service, employee_user, venue, table_t1):
        table = table_service.update_capacity(EMPLOYEE, venue.id, table_t1.id, 6)
        assert table.capacity == 6

    def test_foreign_table(self, table_service, owner_user, venue, foreign_table):
        with pytest.raises(NotFoundError):
            table_service.update_table(OWNER, venue.id, foreign_table.id, TableUpdate(capacity=8))


class TestDeleteTable:

    def test_soft_delete(self, db, table_service, owner_user, venue, table_t1):
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        assert table_t1.status == TableStatus.INACTIVE
        assert db.query(VenueTable).count() == 1

        with pytest.raises(NotFoundError):
            table_service.get_table(OWNER, venue.id, table_t1.id)
        assert table_service.list_tables(OWNER, venue.id) == []

    def test_code_reusable_after_delete(self, table_service, owner_user, venue, table_t1):
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        table_service.create_table(OWNER, venue.id, TableCreate(code="T1", capacity=4))

    def test_reserved_table(self, table_service, owner_user, venue, table_t1, upcoming):
        with pytest.raises(ValidationError):
            table_service.delete_table(OWNER, venue.id, table_t1.id)

    def test_future_reservation_blocks_delete(self, table_service, reservation_service, make_request, owner_user, employee_user, venue, table_t1):
        """Reservierung in drei Stunden: Tisch ist noch FREE, darf aber nicht gelöscht werden"""
        reservation_id = reservation_service.create_reservation(
            EMPLOYEE, venue.id, make_request([table_t1], start_in=180)
        )
        with pytest.raises(ValidationError) as exc:
            table_service.delete_table(OWNER, venue.id, table_t1.id)
        assert "T1" in exc.value.message
        assert str(reservation_id) in exc.value.message
        assert table_t1.status == TableStatus.FREE

    def test_delete_after_cancel(self, table_service, reservation_service, make_request, owner_user, employee_user, venue, table_t1):
        reservation_id = reservation_service.create_reservation(
            EMPLOYEE, venue.id, make_request([table_t1], start_in=180)
        )
        reservation_service.cancel_reservation(EMPLOYEE, venue.id, reservation_id)
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        assert table_t1.status == TableStatus.INACTIVE


class TestInactiveTableInReservation:
    """Gelöschter Tisch, der noch an einer Reservierung hängt (Altdaten)"""

    def test_check_in_and_checkout_keep_table_inactive(
        self, db, clock, table_service, reservation_service, make_request, employee_user, venue, table_t1, table_t2
    ):
        reservation_id = reservation_service.create_reservation(
            EMPLOYEE, venue.id, make_request([table_t1, table_t2], start_in=180)
        )
        table_t1.status = TableStatus.INACTIVE
        db.commit()

        clock.set(NOW + timedelta(hours=3))
        reservation_service.start_reservation(EMPLOYEE, venue.id, reservation_id)
        assert table_t1.status == TableStatus.INACTIVE
        assert table_t2.status == TableStatus.OCCUPIED

        reservation_service.complete_reservation(EMPLOYEE, venue.id, reservation_id)
        assert table_t1.status == TableStatus.INACTIVE
        assert table_t2.status == TableStatus.FREE
        assert [t.code for t in table_service.list_tables(EMPLOYEE, venue.id)] == ["T2"]

    def test_cancel_keeps_table_inactive(self, db, reservation_service, make_request, employee_user, venue, table_t1):
        reservation_id = reservation_service.create_reservation(
            EMPLOYEE, venue.id, make_request([table_t1], start_in=10)
        )
        table_t1.status = TableStatus.INACTIVE
        db.commit()
        reservation_service.cancel_reservation(EMPLOYEE, venue.id, reservation_id)
        assert table_t1.status == TableStatus.INACTIVE


class TestReactivateTable:

    def test_reactivate(self, table_service, owner_user, venue, table_t1):
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        table = table_service.reactivate_table(OWNER, venue.id, table_t1.id)
        assert table.status == TableStatus.FREE
        assert [t.code for t in table_service.list_tables(OWNER, venue.id)] == ["T1"]

    def test_listed_with_include_inactive(self, table_service, owner_user, venue, table_t1, table_t2):
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        assert [t.code for t in table_service.list_tables(OWNER, venue.id)] == ["T2"]
        assert [t.code for t in table_service.list_tables(OWNER, venue.id, include_inactive=True)] == ["T1", "T2"]

    def test_code_taken_again(self, table_service, owner_user, venue, table_t1):
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        table_service.create_table(OWNER, venue.id, TableCreate(code="T1", capacity=2))
        with pytest.raises(ValidationError) as exc:
            table_service.reactivate_table(OWNER, venue.id, table_t1.id)
        assert "bereits vergeben" in exc.value.message
        assert table_t1.status == TableStatus.INACTIVE

    def test_active_table(self, table_service, owner_user, venue, table_t1):
        with pytest.raises(ValidationError):
            table_service.reactivate_table(OWNER, venue.id, table_t1.id)

    def test_employee_forbidden(self, table_service, owner_user, employee_user, venue, table_t1):
        table_service.delete_table(OWNER, venue.id, table_t1.id)
        with pytest.raises(AuthorizationError):
            table_service.reactivate_table(EMPLOYEE, venue.id, table_t1.id)

    def test_foreign_table(self, db, table_service, owner_user, venue, foreign_table):
        foreign_table.status = TableStatus.INACTIVE
        db.commit()
        with pytest.raises(NotFoundError):
            table_service.reactivate_table(OWNER, venue.id, foreign_table.id)


class TestUpdateStatus:

    def test_walk_in(self, table_service, employee_user, venue, table_t1):
        table = table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.OCCUPIED)
        assert table.status == TableStatus.OCCUPIED

    def test_reserved_rejected(self, table_service, employee_user, venue, table_t1):
        with pytest.raises(ReservedBySchedulerOnly):
            table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.RESERVED)
        assert table_t1.status == TableStatus.FREE

    def test_same_status(self, table_service, employee_user, venue, table_t1):
        with pytest.raises(ValidationError) as exc:
            table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.FREE)
        assert "bereits" in exc.value.message

    def test_occupied_blocked_by_upcoming_reservation(self, table_service, employee_user, venue, table_t1, upcoming):
        """Walk-in an einen Tisch, der in 30 Minuten reserviert ist → abgelehnt"""
        with pytest.raises(ValidationError) as exc:
            table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.OCCUPIED)
        assert "45 Minuten" in exc.value.message
        assert table_t1.status == TableStatus.RESERVED

    def test_reserved_to_free_is_reconciled_again(self, table_service, employee_user, venue, table_t1, upcoming):
        """RESERVED → FREE manuell, die Reservierung steht aber noch → Scheduler setzt sofort wieder RESERVED"""
        table = table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.FREE)
        assert table.status == TableStatus.RESERVED

    def test_free_after_walk_in_reconciles(self, clock, table_service, reservation_service, make_request, employee_user, venue, table_t1):
        """Walk-in zwei Stunden vorher erlaubt. Beim Freigeben 30 Minuten vorher → sofort RESERVED"""
        reservation_service.create_reservation(
            EMPLOYEE, venue.id, make_request([table_t1], start_in=120)
        )
        table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.OCCUPIED)

        clock.set(NOW + timedelta(minutes=90))
        table = table_service.update_status(EMPLOYEE, venue.id, table_t1.id, TableStatus.FREE)
        assert table.status == TableStatus.RESERVED

    def test_outsider(self, table_service, outsider_user, venue, table_t1):
        with pytest.raises(AuthorizationError):
            table_service.update_status("fremd@test.com", venue.id, table_t1.id, TableStatus.OCCUPIED)
