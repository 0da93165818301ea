from tischbuchung.models.user import User
from tischbuchung.models.venue import Venue, Membership, MembershipRole, MembershipStatus
from tischbuchung.models.table import VenueTable, TableStatus
from tischbuchung.models.reservation import Reservation, ReservationTable, ReservationStatus
