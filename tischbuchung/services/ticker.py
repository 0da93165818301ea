import logging
import threading
import time

from tischbuchung.dependencies import build_reservation_service, build_scheduler
from tischbuchung.services.clock import Clock

logger = logging.getLogger("tischbuchung.services.ticker")


def run_reconciliation(session_factory, clock: Clock, expire: bool = False) -> dict:
    """
    Ein Durchlauf: Tische abgleichen und optional abgelaufene Reservierungen
    als NO_SHOW markieren. Eigene Session pro Durchlauf.
    """
    db = session_factory()
    try:
        result = build_scheduler(db).tick(clock.now())
        expired = failed = 0
        if expire:
            expiry = build_reservation_service(db, clock).expire_overdue()
            expired, failed = expiry.expired, expiry.failed
        return {
            "checked": result.checked,
            "reserved": result.reserved,
            "failed": result.failed + failed,
            "expired": expired,
        }
    finally:
        db.close()


class ReconciliationTicker:
    """
    Startet den Abgleich in festen Abständen in einem Hintergrund-Thread.
    Fehler eines Durchlaufs werden geloggt, der nächste Durchlauf findet trotzdem statt.
    """

    def __init__(self, session_factory, clock: Clock, interval_seconds: int = 60, expiry_interval_seconds: int = 3600):
        self.session_factory = session_factory
        self.clock = clock
        self.interval_seconds = interval_seconds
        self.expiry_interval_seconds = expiry_interval_seconds
        self._stop = threading.Event()
        self._thread = None
        self._last_expiry = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="reconciliation-ticker", daemon=True)
        self._thread.start()
        logger.info(f"Scheduler gestartet (alle {self.interval_seconds}s)")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Scheduler gestoppt")

    def run_once(self) -> dict:
        now = time.monotonic()
        expire = self._last_expiry is None or now - self._last_expiry >= self.expiry_interval_seconds
        result = run_reconciliation(self.session_factory, self.clock, expire=expire)
        if expire:
            self._last_expiry = now
        return result

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Scheduler-Durchlauf fehlgeschlagen")
            self._stop.wait(self.interval_seconds)
