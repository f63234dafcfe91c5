"""Basal schedule errors.

Every error raised by the schedule model derives from ScheduleError.
All of them except MalformedSchedule describe bad caller input and leave
the schedule untouched.
"""


class ScheduleError(Exception):
    """Base exception for basal schedule errors."""

    pass


class InvalidRate(ScheduleError):
    """Rate is negative, or quantizes to a negative unit count."""

    pass


class InvalidOffset(ScheduleError):
    """Offset is off-grid or outside the day."""

    pass


class NotFound(ScheduleError):
    """No change point exists at the targeted offset."""

    pass


class OutOfRange(ScheduleError):
    """Query time is outside [0, 1440)."""

    pass


class MalformedSchedule(ScheduleError):
    """Schedule invariants were violated internally.

    Raised only when normalization of an edit-built sequence fails or a
    lookup finds no covering point. Indicates a defect, never user error.
    """

    pass
