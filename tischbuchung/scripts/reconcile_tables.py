import sys
import traceback

from tischbuchung.database import SessionLocal
from tischbuchung.services.clock import SystemClock
from tischbuchung.services.ticker import run_reconciliation
from tischbuchung.utils.logging_config import setup_logging

logger = setup_logging()


def main() -> int:
    """
    Einmaliger Abgleich der Tischstatus (Cronjob), inklusive NO_SHOW für
    abgelaufene Reservierungen.
    Gibt Exit-Code zurück: 0 = Erfolg, 1 = Fehler
    """
    logger.info("Tisch-Abgleich gestartet (Cronjob)")

    try:
        result = run_reconciliation(SessionLocal, SystemClock(), expire=True)

        if result["failed"] == 0:
            logger.info(
                f"Abgleich erfolgreich: {result['checked']} Tische geprüft, "
                f"{result['reserved']} reserviert, {result['expired']} als NO_SHOW markiert"
            )
            return 0
        else:
            logger.error(f"Abgleich mit {result['failed']} Fehlern beendet")
            return 1

    except Exception as e:
        logger.error(f"Abgleich fehlgeschlagen: {e}")
        logger.error(traceback.format_exc())
        return 1
    finally:
        logger.info("Tisch-Abgleich beendet")


if __name__ == "__main__":
    sys.exit(main())
