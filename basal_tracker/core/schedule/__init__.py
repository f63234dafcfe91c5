"""Basal schedule model.

A day of basal insulin delivery as a sorted list of change points on a
30 or 60 minute grid. Rates are quantized to integer units of a
configurable accuracy step and every edit re-establishes the schedule
invariants before it becomes visible.

IMPORTANT: This model is a planning aid -- it does NOT program a pump
and does not replace clinical judgment. Basal changes must be reviewed
with a healthcare provider before they are entered on a device.
"""

from basal_tracker.core.schedule.enums import ProfileOrigin
from basal_tracker.core.schedule.errors import (
    InvalidOffset,
    InvalidRate,
    MalformedSchedule,
    NotFound,
    OutOfRange,
    ScheduleError,
)
from basal_tracker.core.schedule.models import (
    ChangePoint,
    ScheduleDiff,
    ScheduleSnapshot,
)
from basal_tracker.core.schedule.quantizer import to_rate, to_units
from basal_tracker.core.schedule.schedule import BasalSchedule

__all__ = [
    "BasalSchedule",
    "ChangePoint",
    "InvalidOffset",
    "InvalidRate",
    "MalformedSchedule",
    "NotFound",
    "OutOfRange",
    "ProfileOrigin",
    "ScheduleDiff",
    "ScheduleError",
    "ScheduleSnapshot",
    "to_rate",
    "to_units",
]
