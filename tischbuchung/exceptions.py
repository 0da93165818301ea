"""
Fachliche Fehler der Reservierungs-Engine.

Jeder Fehler trägt eine lesbare Meldung (Tischcode, Reservierungs-ID,
Zeitgrenze) und den HTTP-Statuscode, auf den die API ihn abbildet.
Fehler der Datenbank selbst (SQLAlchemyError) gehören nicht hierher und
werden unverändert weitergereicht.
"""


class DomainError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(DomainError):
    """Benutzer, Lokal, Tisch oder Reservierung existiert nicht (oder gehört nicht zum Lokal)."""

    def __init__(self, message: str):
        super().__init__(message, 404)


class ValidationError(DomainError):
    """Ungültige Eingabe oder Regelverstoß (Zeitgrenzen, Kapazität, Statuswechsel)."""

    def __init__(self, message: str):
        super().__init__(message, 400)


class ReservedBySchedulerOnly(ValidationError):
    """Manueller Wechsel nach RESERVED: diesen Status vergibt nur der Scheduler."""


class ConflictError(DomainError):
    """Überschneidung mit einer aktiven Reservierung auf einem angefragten Tisch."""

    def __init__(self, message: str):
        super().__init__(message, 409)


class AuthorizationError(DomainError):
    """Keine aktive Mitgliedschaft oder fehlende Rolle."""

    def __init__(self, message: str):
        super().__init__(message, 403)
