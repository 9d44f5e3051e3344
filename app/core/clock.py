"""
Horloge injectable.

Toutes les règles dépendant du temps (statut des documents, fin d'essai,
fenêtres de visites, mois de facturation) lisent l'heure via un `Clock`
plutôt que via `datetime.now()` directement, pour pouvoir figer le temps
dans les tests.

Usage:
    service = ComplianceService(db, tenant_id, clock=FixedClock(datetime(2025, 1, 1, tzinfo=timezone.utc)))
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


class Clock:
    """Interface : retourne l'instant courant (UTC, timezone-aware)."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Horloge système."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Horloge figée (tests, recalculs rejoués)."""

    def __init__(self, current: datetime):
        self.current = to_utc(current)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        """Avance l'horloge (mêmes arguments que timedelta)."""
        self.current = self.current + timedelta(**kwargs)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise une date en UTC timezone-aware.

    SQLite renvoie des datetimes naïfs : on les considère comme UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """
    Bornes [début, fin) du mois calendaire contenant `now` (UTC).
    """
    now = to_utc(now)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def years_ago(today: date, years: int) -> date:
    """
    Même jour `years` années plus tôt (29 février → 28 février).
    """
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """Dépendance FastAPI (surchargée dans les tests)."""
    return _system_clock
