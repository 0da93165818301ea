import logging
from functools import wraps

from tischbuchung.exceptions import DomainError

logger = logging.getLogger("tischbuchung.services.transaction")


def transactional(func):
    """
    Commit nach erfolgreichem Service-Aufruf, Rollback bei jedem Fehler.
    Damit werden auch die Zeilensperren (FOR UPDATE) sofort wieder freigegeben.
    Erwartet ein Attribut `db` (Session) auf der Service-Instanz.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            result = func(self, *args, **kwargs)
            self.db.commit()
            return result
        except DomainError as e:
            self.db.rollback()
            logger.info(f"{func.__name__} abgelehnt: {e.message}")
            raise
        except Exception:
            self.db.rollback()
            raise
    return wrapper
