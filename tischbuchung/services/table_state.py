"""
Zustandsautomat für Tische.

Manuelle Wechsel (Personal) laufen über die Übergangstabelle unten.
FREE → RESERVED setzt ausschließlich der Scheduler, nie ein Aufrufer von außen.
"""
from typing import NamedTuple, Optional

from tischbuchung.exceptions import ValidationError, ReservedBySchedulerOnly
from tischbuchung.models.table import TableStatus


STATUS_LABELS = {
    TableStatus.FREE: "Frei",
    TableStatus.RESERVED: "Reserviert",
    TableStatus.OCCUPIED: "Belegt",
    TableStatus.INACTIVE: "Inaktiv",
}


class Transition(NamedTuple):
    allowed: bool
    reason: Optional[str] = None


_ALLOWED = {
    (TableStatus.FREE, TableStatus.OCCUPIED): "Gast ohne Reservierung setzt sich",
    (TableStatus.OCCUPIED, TableStatus.FREE): "Gast ist gegangen",
    (TableStatus.RESERVED, TableStatus.OCCUPIED): "Gast mit Reservierung ist angekommen",
    (TableStatus.RESERVED, TableStatus.FREE): "Reservierung storniert, No-Show oder verlegt",
}


def _rule(current: TableStatus, target: TableStatus) -> Transition:
    if (current, target) in _ALLOWED:
        return Transition(True, _ALLOWED[(current, target)])
    if target == TableStatus.RESERVED:
        return Transition(
            False,
            "Ein Tisch kann nicht manuell auf Reserviert gesetzt werden. "
            "Diesen Status vergibt der Scheduler 45 Minuten vor Beginn einer Reservierung.",
        )
    if current == target:
        return Transition(False, f"Der Tisch ist bereits im Status {STATUS_LABELS[target]}")
    return Transition(
        False,
        f"Ungültiger Statuswechsel: von {STATUS_LABELS[current]} nach {STATUS_LABELS[target]} nicht möglich",
    )


# Vollständige Tabelle (von × nach)
TRANSITIONS: dict[tuple[TableStatus, TableStatus], Transition] = {
    (current, target): _rule(current, target)
    for current in TableStatus
    for target in TableStatus
}


def check_manual_transition(current: TableStatus, target: TableStatus) -> None:
    transition = TRANSITIONS[(current, target)]
    if transition.allowed:
        return
    if target == TableStatus.RESERVED:
        raise ReservedBySchedulerOnly(transition.reason)
    raise ValidationError(transition.reason)
