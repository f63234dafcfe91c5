"""Fixed hour-grid projections of a basal schedule.

Charts and hour-based editors want one value per hour. These are derived
on demand from the change points and never stored.
"""

from decimal import Decimal

from basal_tracker.core.schedule.constants import HOURS_PER_DAY, MINUTES_PER_HOUR
from basal_tracker.core.schedule.schedule import BasalSchedule


def hourly_units(schedule: BasalSchedule) -> list[int]:
    """Units in effect at the start of each hour 0..23."""
    return [schedule.units_at(hour * MINUTES_PER_HOUR) for hour in range(HOURS_PER_DAY)]


def hourly_rates(schedule: BasalSchedule) -> list[Decimal]:
    """Rate (U/h) in effect at the start of each hour 0..23."""
    return [schedule.rate_at(hour * MINUTES_PER_HOUR) for hour in range(HOURS_PER_DAY)]
