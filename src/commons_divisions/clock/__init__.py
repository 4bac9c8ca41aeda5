"""Clock package — simulated calendar and deadline checks.

Public API
----------
- ``SimDate`` — a simulated month/year pair
- ``SimClock`` — maps real instants to simulated months
- ``DeadlineScheduler`` — decides whether a deadline has passed
"""
from __future__ import annotations

from commons_divisions.clock.scheduler import DeadlineScheduler
from commons_divisions.clock.sim_date import MONTHS, SimClock, SimDate

__all__ = [
    "DeadlineScheduler",
    "MONTHS",
    "SimClock",
    "SimDate",
]
