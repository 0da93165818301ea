from typing import Optional, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from tischbuchung.models.table import VenueTable, TableStatus


class TableRepository:
    """Zugriff auf Tische eines Lokals. Commit/Rollback macht der aufrufende Service."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, table_id: UUID) -> Optional[VenueTable]:
        return self.db.query(VenueTable).filter(VenueTable.id == table_id).first()

    def get_for_update(self, table_id: UUID) -> Optional[VenueTable]:
        return self.db.query(VenueTable).filter(
            VenueTable.id == table_id
        ).with_for_update().first()

    def lock_many(self, table_ids: Iterable[UUID]) -> list[VenueTable]:
        """
        Sperrt die Zeilen (SELECT ... FOR UPDATE) immer in aufsteigender ID-Reihenfolge,
        damit sich zwei gleichzeitige Buchungen nicht gegenseitig blockieren.
        """
        ids = sorted(set(table_ids))
        if not ids:
            return []
        return self.db.query(VenueTable).filter(
            VenueTable.id.in_(ids)
        ).order_by(VenueTable.id).with_for_update().all()

    def get_many(self, table_ids: Iterable[UUID]) -> list[VenueTable]:
        ids = list(set(table_ids))
        if not ids:
            return []
        return self.db.query(VenueTable).filter(
            VenueTable.id.in_(ids)
        ).order_by(VenueTable.code).all()

    def list_by_venue(self, venue_id: UUID, include_inactive: bool = False) -> list[VenueTable]:
        query = self.db.query(VenueTable).filter(VenueTable.venue_id == venue_id)
        if not include_inactive:
            query = query.filter(VenueTable.status != TableStatus.INACTIVE)
        return query.order_by(VenueTable.code).all()

    def list_ids_by_status(self, status: TableStatus) -> list[UUID]:
        rows = self.db.query(VenueTable.id).filter(
            VenueTable.status == status
        ).order_by(VenueTable.id).all()
        return [row.id for row in rows]

    def exists_code(self, venue_id: UUID, code: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(VenueTable.id).filter(
            VenueTable.venue_id == venue_id,
            VenueTable.code == code,
            VenueTable.status != TableStatus.INACTIVE,
        )
        if exclude_id:
            query = query.filter(VenueTable.id != exclude_id)
        return query.first() is not None

    def add(self, table: VenueTable) -> VenueTable:
        self.db.add(table)
        self.db.flush()
        return table

    def delete(self, table: VenueTable) -> None:
        # Soft Delete: alte Reservierungen verweisen weiter auf den Tisch
        table.status = TableStatus.INACTIVE
        self.db.flush()
