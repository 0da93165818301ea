import uuid
import enum

from sqlalchemy import Column, String, Integer, Text, Boolean, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship

from tischbuchung.database import Base
from tischbuchung.models.types import UTCDateTime, utcnow


class ReservationStatus(enum.Enum):
    PENDING = "PENDING"             # aktiv, Gast noch nicht da
    IN_PROGRESS = "IN_PROGRESS"     # Gast sitzt
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Reservierungen in diesen Status blockieren ihre Tische
ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.IN_PROGRESS)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid, ForeignKey("venues.id"), nullable=False, index=True)
    customer_name = Column(String(100), nullable=False)
    customer_contact = Column(String(100), nullable=False)
    customer_document = Column(String(50), nullable=False)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    party_size = Column(Integer, nullable=False)
    status = Column(Enum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING)
    forced = Column(Boolean, nullable=False, default=False)
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True)

    # Nur IDs, keine Tisch-Objekte: die Tische lädt das TableRepository
    table_links = relationship(
        "ReservationTable",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReservationTable.table_id",
    )

    @property
    def table_ids(self) -> list[uuid.UUID]:
        return [link.table_id for link in self.table_links]

    def assign_tables(self, table_ids) -> None:
        wanted = set(table_ids)
        self.table_links = [link for link in self.table_links if link.table_id in wanted]
        present = {link.table_id for link in self.table_links}
        for table_id in sorted(wanted - present):
            self.table_links.append(ReservationTable(table_id=table_id))


class ReservationTable(Base):
    __tablename__ = "reservation_tables"

    reservation_id = Column(Uuid, ForeignKey("reservations.id"), primary_key=True)
    table_id = Column(Uuid, ForeignKey("tables.id"), primary_key=True, index=True)
