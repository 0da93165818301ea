from sqlalchemy import Column, String, Integer, ForeignKey, Enum, Uuid
import uuid
import enum

from tischbuchung.database import Base


class TableStatus(enum.Enum):
    FREE = "FREE"
    RESERVED = "RESERVED"
    OCCUPIED = "OCCUPIED"
    INACTIVE = "INACTIVE"       # Soft Delete


class VenueTable(Base):
    """
    Ein physischer Tisch eines Lokals.
    Der Code ist pro Lokal eindeutig (geprüft im TableService, inaktive Tische ausgenommen).
    """
    __tablename__ = "tables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid, ForeignKey("venues.id"), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    capacity = Column(Integer, nullable=False)
    sector = Column(String(100), nullable=True)
    status = Column(Enum(TableStatus), nullable=False, default=TableStatus.FREE)
