from sqlalchemy import Column, String, ForeignKey, Enum, Uuid, UniqueConstraint
import uuid
import enum

from tischbuchung.database import Base


class MembershipRole(enum.Enum):
    OWNER = "OWNER"
    EMPLOYEE = "EMPLOYEE"


class MembershipStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    INACTIVE = "INACTIVE"


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)


class Membership(Base):
    """Zugehörigkeit eines Users zu einem Lokal (Rolle + Status)."""
    __tablename__ = "memberships"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venue_id = Column(Uuid, ForeignKey("venues.id"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    role = Column(Enum(MembershipRole), nullable=False, default=MembershipRole.EMPLOYEE)
    status = Column(Enum(MembershipStatus), nullable=False, default=MembershipStatus.ACTIVE)

    __table_args__ = (
        UniqueConstraint('venue_id', 'user_id', name='uq_venue_user'),
    )
