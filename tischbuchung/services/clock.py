from datetime import datetime, timedelta, timezone


class Clock:
    """Liefert die aktuelle Zeit (UTC, timezone-aware)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class SystemClock(Clock):
    pass


class FixedClock(Clock):
    """Steht still, bis sie verstellt wird. Für Tests und Skripte mit festem Stichtag."""

    def __init__(self, instant: datetime):
        self.set(instant)

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock braucht einen Zeitpunkt mit Zeitzone")
        self._instant = instant.astimezone(timezone.utc)

    def advance(self, delta: timedelta) -> None:
        self._instant = self._instant + delta

    def now(self) -> datetime:
        return self._instant
