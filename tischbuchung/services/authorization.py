from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from tischbuchung.exceptions import AuthorizationError, NotFoundError
from tischbuchung.models.user import User
from tischbuchung.models.venue import Venue, Membership, MembershipRole, MembershipStatus


class MembershipAuthorizer:
    """
    Identität (E-Mail → User) und Mitgliedschaftsprüfung für ein Lokal.
    Wird vor jedem Aufruf der Reservierungs-Engine ausgeführt.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> User:
        user = self.db.query(User).filter(func.lower(User.email) == email.lower()).first()
        if not user:
            raise NotFoundError(f"Benutzer nicht gefunden: {email}")
        return user

    def ensure_active_member(self, email: str, venue_id: UUID) -> Membership:
        user = self.get_user_by_email(email)
        venue = self.db.query(Venue).filter(Venue.id == venue_id).first()
        if not venue:
            raise NotFoundError(f"Lokal nicht gefunden: {venue_id}")
        membership = self.db.query(Membership).filter(
            Membership.venue_id == venue_id,
            Membership.user_id == user.id
        ).first()
        if not membership:
            raise AuthorizationError(f"Kein Zugriff auf das Lokal {venue.name}")
        if membership.status != MembershipStatus.ACTIVE:
            raise AuthorizationError(f"Mitgliedschaft im Lokal {venue.name} ist nicht aktiv")
        return membership

    def ensure_owner(self, email: str, venue_id: UUID) -> Membership:
        membership = self.ensure_active_member(email, venue_id)
        if membership.role != MembershipRole.OWNER:
            raise AuthorizationError("Nur Inhaber dürfen diese Aktion ausführen")
        return membership
