"""Simulated calendar — month/year dates and the real-time to sim-time clock.

The simulation runs two in-fiction months per real week: every Monday and
every Thursday after the campaign start advances the calendar by one
month, and Sunday is frozen.  Deadlines throughout the engine are
expressed as :class:`SimDate` values.

Example
-------
>>> from commons_divisions.clock.sim_date import SimDate
>>> SimDate(10, 1997).plus_months(3)
SimDate(month=1, year=1998)
>>> SimDate(11, 1997) >= SimDate(10, 1997)
True
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import total_ordering

MONTHS: tuple[str, ...] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_MONDAY = 0
_THURSDAY = 3
_DEFAULT_YEAR = 1997


@total_ordering
@dataclass(frozen=True)
class SimDate:
    """A simulated calendar month.

    Dates compare chronologically, so that ``a >= b`` reads as
    "*a* is on or after *b*".

    Attributes
    ----------
    month:
        Month number, 1-12.
    year:
        Simulated year.
    """

    month: int
    year: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month!r}")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SimDate):
            return NotImplemented
        return self.ordinal < other.ordinal

    @property
    def ordinal(self) -> int:
        """Months since year 0, used for arithmetic."""
        return self.year * 12 + (self.month - 1)

    @classmethod
    def from_ordinal(cls, ordinal: int) -> "SimDate":
        return cls(month=(ordinal % 12) + 1, year=ordinal // 12)

    def plus_months(self, months: int) -> "SimDate":
        """Return the date *months* simulated months after this one."""
        return SimDate.from_ordinal(self.ordinal + months)

    def months_until(self, other: "SimDate") -> int:
        """Signed number of months from this date to *other*."""
        return other.ordinal - self.ordinal

    @property
    def label(self) -> str:
        """Human-readable form, e.g. ``"October 1997"``."""
        return f"{MONTHS[self.month - 1]} {self.year}"

    def to_dict(self) -> dict[str, int]:
        return {"month": self.month, "year": self.year}

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "SimDate | None":
        """Parse a ``{"month": m, "year": y}`` mapping.

        Returns ``None`` for missing or incomplete mappings rather than
        raising, so stale documents never block deadline checks.
        """
        if not data:
            return None
        month = data.get("month")
        year = data.get("year")
        if not month or not year:
            return None
        return cls(month=int(month), year=int(year))  # type: ignore[arg-type]


def _count_weekday(start: date, end: date, weekday: int) -> int:
    """Count occurrences of *weekday* in the half-open range ``(start, end]``."""
    total_days = (end - start).days
    if total_days <= 0:
        return 0
    count = total_days // 7
    for offset in range(1, total_days % 7 + 1):
        if (start + timedelta(days=offset)).weekday() == weekday:
            count += 1
    return count


def _parse_instant(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


class SimClock:
    """Maps real-world instants to simulated months.

    Parameters
    ----------
    game_state:
        The ``game_state`` section of the shared document.  Recognised
        keys: ``startRealDate``, ``startSimMonth``, ``startSimYear``,
        ``started``, ``isPaused``, ``pausedAtRealDate``.
    """

    def __init__(self, game_state: dict[str, object] | None) -> None:
        self._state: dict[str, object] = dict(game_state or {})

    def _start_month(self) -> SimDate:
        try:
            month = int(self._state.get("startSimMonth", 1))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            month = 1
        try:
            year = int(self._state.get("startSimYear", _DEFAULT_YEAR))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            year = _DEFAULT_YEAR
        return SimDate(month=min(12, max(1, month)), year=year)

    def sim_date(self, now: datetime | None = None) -> SimDate:
        """Return the simulated month at real instant *now* (default: current UTC time)."""
        start_sim = self._start_month()
        start_real = _parse_instant(self._state.get("startRealDate"))
        if start_real is None or self._state.get("started") is False:
            return start_sim

        effective_now = now or datetime.now(tz=timezone.utc)
        if self._state.get("isPaused"):
            paused_at = _parse_instant(self._state.get("pausedAtRealDate"))
            if paused_at is not None:
                effective_now = paused_at
        if effective_now.tzinfo is None:
            effective_now = effective_now.replace(tzinfo=timezone.utc)

        start_day = start_real.date()
        end_day = effective_now.date()
        if end_day >= start_day:
            elapsed = _count_weekday(start_day, end_day, _MONDAY) + _count_weekday(
                start_day, end_day, _THURSDAY
            )
        else:
            elapsed = -(
                _count_weekday(end_day, start_day, _MONDAY)
                + _count_weekday(end_day, start_day, _THURSDAY)
            )
        return start_sim.plus_months(elapsed)

    def deadline_in(self, months: int, now: datetime | None = None) -> SimDate:
        """Return the simulated month *months* after the current one."""
        return self.sim_date(now).plus_months(months)
