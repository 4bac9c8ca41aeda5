"""Deadline scheduler for divisions and procedural stages.

DeadlineScheduler answers one question for the rest of the engine: has a
stored deadline passed?  Deadlines are normally simulated months; a
division may additionally carry a real-time ``closes_at`` instant.

Example
-------
>>> from commons_divisions.clock.sim_date import SimDate
>>> scheduler = DeadlineScheduler()
>>> scheduler.is_passed(SimDate(10, 1997), SimDate(11, 1997))
True
>>> scheduler.months_remaining(SimDate(12, 1997), SimDate(11, 1997))
1
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from commons_divisions.clock.sim_date import SimDate

logger = logging.getLogger(__name__)


class DeadlineScheduler:
    """Compares simulated and real-time deadlines against the current time.

    Parameters
    ----------
    real_time_hours:
        Default length of a real-time division window.  ``None`` means
        divisions close on simulated deadlines only.
    """

    def __init__(self, real_time_hours: float | None = None) -> None:
        self._real_time_delta = (
            timedelta(hours=real_time_hours) if real_time_hours is not None else None
        )

    # ------------------------------------------------------------------
    # Simulated deadlines
    # ------------------------------------------------------------------

    def is_passed(self, deadline: SimDate | None, sim_now: SimDate) -> bool:
        """Return ``True`` when the simulated *deadline* has been reached.

        A missing deadline never passes.
        """
        if deadline is None:
            return False
        return sim_now >= deadline

    def deadline_in(self, sim_now: SimDate, months: int) -> SimDate:
        """Return the deadline *months* simulated months after *sim_now*."""
        return sim_now.plus_months(months)

    def months_remaining(self, deadline: SimDate | None, sim_now: SimDate) -> int:
        """Simulated months left until *deadline* (minimum 0)."""
        if deadline is None:
            return 0
        return max(0, sim_now.months_until(deadline))

    # ------------------------------------------------------------------
    # Real-time deadlines
    # ------------------------------------------------------------------

    def is_real_time_passed(self, closes_at: datetime | None, now: datetime | None = None) -> bool:
        """Return ``True`` when a real-time closing instant has been reached."""
        if closes_at is None:
            return False
        effective_now = now or datetime.now(tz=timezone.utc)
        return effective_now >= closes_at

    def real_time_deadline(self, opened_at: datetime) -> datetime | None:
        """Return the real-time closing instant for a division opened at *opened_at*."""
        if self._real_time_delta is None:
            return None
        return opened_at + self._real_time_delta

    def any_passed(
        self,
        sim_deadline: SimDate | None,
        real_deadline: datetime | None,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> bool:
        """Return ``True`` when either deadline has been reached."""
        passed = self.is_passed(sim_deadline, sim_now) or self.is_real_time_passed(
            real_deadline, now
        )
        if passed:
            logger.debug(
                "deadline reached sim_deadline=%s real_deadline=%s sim_now=%s",
                sim_deadline,
                real_deadline,
                sim_now,
            )
        return passed

    @property
    def real_time_hours(self) -> float | None:
        """The configured real-time window in hours, or ``None``."""
        if self._real_time_delta is None:
            return None
        return self._real_time_delta.total_seconds() / 3600
