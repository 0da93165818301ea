"""
Baut die Services mit ihren Kollaborateuren zusammen.
Keine globalen Singletons: jede Session bekommt eigene Repositories.
"""
from zoneinfo import ZoneInfo

from fastapi import Depends
from sqlalchemy.orm import Session

from tischbuchung.config import settings
from tischbuchung.database import get_db
from tischbuchung.repositories.reservation_repository import ReservationRepository
from tischbuchung.repositories.table_repository import TableRepository
from tischbuchung.services.authorization import MembershipAuthorizer
from tischbuchung.services.clock import Clock, SystemClock
from tischbuchung.services.overlap import OverlapChecker
from tischbuchung.services.reservation_service import ReservationService
from tischbuchung.services.scheduler import ReservationScheduler
from tischbuchung.services.table_service import TableService


def build_scheduler(db: Session) -> ReservationScheduler:
    return ReservationScheduler(db, TableRepository(db), ReservationRepository(db))


def build_reservation_service(db: Session, clock: Clock) -> ReservationService:
    tables = TableRepository(db)
    reservations = ReservationRepository(db)
    return ReservationService(
        db=db,
        clock=clock,
        tables=tables,
        reservations=reservations,
        authorizer=MembershipAuthorizer(db),
        overlap=OverlapChecker(reservations),
        scheduler=ReservationScheduler(db, tables, reservations),
        venue_tz=ZoneInfo(settings.venue_timezone),
    )


def build_table_service(db: Session, clock: Clock) -> TableService:
    tables = TableRepository(db)
    reservations = ReservationRepository(db)
    return TableService(
        db=db,
        clock=clock,
        tables=tables,
        reservations=reservations,
        authorizer=MembershipAuthorizer(db),
        scheduler=ReservationScheduler(db, tables, reservations),
    )


def get_clock() -> Clock:
    return SystemClock()


def get_reservation_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ReservationService:
    return build_reservation_service(db, clock)


def get_table_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> TableService:
    return build_table_service(db, clock)
