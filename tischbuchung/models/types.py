from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Speichert Zeitpunkte als naive UTC-Werte und liefert sie immer
    timezone-aware (UTC) zurück.

    SQLite kennt keine Zeitzonen, PostgreSQL schon. So verhalten sich
    Tests (SQLite) und Produktion (PostgreSQL) gleich.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Zeitpunkt ohne Zeitzone: {value.isoformat()}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
