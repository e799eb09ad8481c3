# taskpulse/utils/clock.py
'''
Clock sources for the scheduling engine.

Everything that needs "now" takes a clock instead of calling datetime.now()
directly, so tests can pin the wall clock to a fixed instant.
All instants are naive local datetimes (one local wall clock).
'''
from datetime import date, datetime, timedelta


class SystemClock:
    """Reads the local wall clock."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)

    def today(self) -> date:
        return self.now().date()


class FixedClock(SystemClock):
    """
    A clock that only moves when told to.
    - set(dt) jumps to an absolute instant.
    - advance(**kwargs) moves forward by a timedelta built from kwargs.
    """

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def __repr__(self):
        return f"FixedClock({self._now.isoformat()})"
