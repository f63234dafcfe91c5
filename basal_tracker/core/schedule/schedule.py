"""Basal schedule entity.

A BasalSchedule is a day of piecewise-constant basal delivery stored as
a sorted tuple of change points. After every mutation the points satisfy:

1. Non-empty, strictly increasing offsets, first offset 0, last < 1440.
2. Every offset is on the grid and every unit count is >= 0.
3. No two adjacent points carry the same units.
4. No two points share an offset (the later-supplied one wins).

Edits never mutate the live tuple. They build a candidate sequence from
a snapshot, normalize it, and only then swap it in, so a failed edit
leaves the schedule exactly as it was.

The model is synchronous and does no locking. Callers serialize edits
to one instance themselves.
"""

import uuid
from bisect import bisect_right
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Self

from basal_tracker.core.schedule.constants import (
    ALLOWED_GRIDS,
    DEFAULT_DUPLICATE_SUFFIX,
    DEFAULT_GRID_MINUTES,
    HOURS_PER_DAY,
    MINUTES_PER_DAY,
    MINUTES_PER_HOUR,
)
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
from basal_tracker.core.schedule.quantizer import (
    RateLike,
    check_accuracy,
    to_rate,
    to_units,
)
from basal_tracker.logging_config import get_logger

logger = get_logger(__name__)

PointLike = ChangePoint | tuple[int, int] | Mapping[str, Any]


def _coerce_point(raw: PointLike) -> ChangePoint:
    if isinstance(raw, ChangePoint):
        return raw
    if isinstance(raw, Mapping):
        return ChangePoint(**raw)
    offset, units = raw
    return ChangePoint(offset=offset, units=units)


def _append_point(out: list[ChangePoint], offset: int, units: int) -> None:
    """Append keeping offsets unique and adjacent units distinct.

    ``out`` must already be sorted with every offset <= ``offset``.
    """
    if out and out[-1].offset == offset:
        out.pop()
    if out and out[-1].units == units:
        return
    out.append(ChangePoint(offset=offset, units=units))


def _units_in(points: tuple[ChangePoint, ...], minute: int) -> int:
    """Units of the latest point with offset <= minute (floor lookup)."""
    offsets = [p.offset for p in points]
    idx = bisect_right(offsets, minute) - 1
    if idx < 0:
        raise MalformedSchedule(f"No change point covers minute {minute}")
    return points[idx].units


class BasalSchedule:
    """A patient's 24-hour basal rate schedule.

    Rates are ``units * accuracy`` U/h. ``accuracy`` is kept as a Decimal
    so that rate lookups, daily totals and diffs are exact.
    """

    def __init__(
        self,
        points: Iterable[PointLike],
        *,
        name: str,
        accuracy: RateLike,
        grid_minutes: int = DEFAULT_GRID_MINUTES,
        id: uuid.UUID | None = None,
        origin: ProfileOrigin = ProfileOrigin.user_modified,
        base_profile_id: uuid.UUID | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        if grid_minutes not in ALLOWED_GRIDS:
            raise InvalidOffset(
                f"Grid must be one of {ALLOWED_GRIDS} minutes, got {grid_minutes}"
            )
        self._grid = grid_minutes
        self._accuracy = check_accuracy(accuracy)
        self.name = name
        self._id = id
        self.origin = ProfileOrigin(origin) if origin is not None else ProfileOrigin.user_modified
        self.base_profile_id = base_profile_id
        self._metadata: dict[str, str] = dict(metadata or {})
        self._points: tuple[ChangePoint, ...] = ()
        self._offsets: tuple[int, ...] = ()
        self._swap(self._normalize(points))

    # ---------- Construction ----------

    @classmethod
    def empty(
        cls,
        name: str,
        accuracy: RateLike,
        grid_minutes: int = DEFAULT_GRID_MINUTES,
    ) -> Self:
        """A new unsaved schedule delivering nothing all day."""
        return cls(
            [ChangePoint(offset=0, units=0)],
            name=name,
            accuracy=accuracy,
            grid_minutes=grid_minutes,
        )

    @classmethod
    def from_snapshot(cls, snapshot: ScheduleSnapshot) -> Self:
        """Rebuild a schedule from a persisted snapshot, normalizing it."""
        return cls(
            snapshot.points,
            name=snapshot.name,
            accuracy=snapshot.accuracy,
            grid_minutes=snapshot.grid_minutes,
            id=snapshot.id,
            origin=snapshot.origin,
            base_profile_id=snapshot.base_profile_id,
            metadata=snapshot.metadata,
        )

    def to_snapshot(self) -> ScheduleSnapshot:
        return ScheduleSnapshot(
            id=self._id,
            name=self.name,
            accuracy=self._accuracy,
            grid_minutes=self._grid,
            origin=self.origin,
            base_profile_id=self.base_profile_id,
            metadata=dict(self._metadata),
            points=self._points,
        )

    def duplicate(self, name_suffix: str = DEFAULT_DUPLICATE_SUFFIX) -> Self:
        """Unsaved copy derived from this schedule.

        The copy is always ``user_modified`` and points back at this
        schedule through ``base_profile_id``.
        """
        return type(self)(
            self._points,
            name=self.name + (name_suffix or DEFAULT_DUPLICATE_SUFFIX),
            accuracy=self._accuracy,
            grid_minutes=self._grid,
            origin=ProfileOrigin.user_modified,
            base_profile_id=self._id,
            metadata=self._metadata,
        )

    # ---------- Accessors ----------

    @property
    def id(self) -> uuid.UUID | None:
        return self._id

    def mark_saved(self, profile_id: uuid.UUID) -> None:
        """Record the id assigned by persistence on first save."""
        self._id = profile_id

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not value or not value.strip():
            raise ValueError("Schedule name must not be empty")
        self._name = value

    @property
    def accuracy(self) -> Decimal:
        return self._accuracy

    @property
    def grid_minutes(self) -> int:
        return self._grid

    @property
    def metadata(self) -> dict[str, str]:
        return dict(self._metadata)

    @property
    def points(self) -> tuple[ChangePoint, ...]:
        return self._points

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return (
            f"<BasalSchedule(id={self._id}, name={self._name!r}, "
            f"accuracy={self._accuracy}, grid={self._grid}, "
            f"points={len(self._points)})>"
        )

    # ---------- Normalization ----------

    def _check_offset(self, offset: int) -> None:
        if not 0 <= offset < MINUTES_PER_DAY:
            raise InvalidOffset(f"Offset {offset} outside [0, {MINUTES_PER_DAY})")
        if offset % self._grid:
            raise InvalidOffset(f"Offset {offset} is not aligned to {self._grid} min grid")

    def _check_boundary(self, minute: int) -> None:
        """Validate a window end, which may be midnight (1440)."""
        if not 0 < minute <= MINUTES_PER_DAY:
            raise InvalidOffset(f"Boundary {minute} outside (0, {MINUTES_PER_DAY}]")
        if minute % self._grid:
            raise InvalidOffset(f"Boundary {minute} is not aligned to {self._grid} min grid")

    def _normalize(self, points: Iterable[PointLike]) -> tuple[ChangePoint, ...]:
        """Validate, sort, deduplicate and merge change points."""
        by_offset: dict[int, int] = {}
        for raw in points:
            point = _coerce_point(raw)
            self._check_offset(point.offset)
            if point.units < 0:
                raise InvalidRate(
                    f"Units at offset {point.offset} cannot be negative: {point.units}"
                )
            # Later-supplied points replace earlier ones at the same offset
            by_offset[point.offset] = point.units

        if 0 not in by_offset:
            raise InvalidOffset("Schedule must have a change point at midnight (offset 0)")

        merged: list[ChangePoint] = []
        for offset in sorted(by_offset):
            _append_point(merged, offset, by_offset[offset])
        return tuple(merged)

    def _rebuild(self, candidate: Iterable[PointLike]) -> tuple[ChangePoint, ...]:
        """Normalize an edit-built sequence.

        Arguments are validated before a candidate is built, so a failure
        here means the edit algorithm produced an invalid day.
        """
        try:
            return self._normalize(candidate)
        except MalformedSchedule:
            raise
        except ScheduleError as e:
            raise MalformedSchedule(f"Edit produced an invalid schedule: {e}") from e

    def _swap(self, points: tuple[ChangePoint, ...]) -> None:
        self._points = points
        self._offsets = tuple(p.offset for p in points)

    def _index_of(self, offset: int) -> int:
        idx = bisect_right(self._offsets, offset) - 1
        if idx < 0 or self._offsets[idx] != offset:
            raise NotFound(f"No change point at offset {offset}")
        return idx

    # ---------- Queries ----------

    def rate_at(self, minute: int) -> Decimal:
        """Rate (U/h) in effect at ``minute``. Never interpolates."""
        if not 0 <= minute < MINUTES_PER_DAY:
            raise OutOfRange(f"Minute {minute} outside [0, {MINUTES_PER_DAY})")
        idx = bisect_right(self._offsets, minute) - 1
        if idx < 0:
            raise MalformedSchedule(f"No change point covers minute {minute}")
        return to_rate(self._points[idx].units, self._accuracy)

    def units_at(self, minute: int) -> int:
        if not 0 <= minute < MINUTES_PER_DAY:
            raise OutOfRange(f"Minute {minute} outside [0, {MINUTES_PER_DAY})")
        return _units_in(self._points, minute)

    def samples(self, step_minutes: int) -> list[Decimal]:
        """Evenly spaced rate samples across the day."""
        if step_minutes <= 0 or MINUTES_PER_DAY % step_minutes:
            raise InvalidOffset(
                f"Sample step {step_minutes} must evenly divide {MINUTES_PER_DAY}"
            )
        return [self.rate_at(t) for t in range(0, MINUTES_PER_DAY, step_minutes)]

    def segment_end(self, start: int) -> int:
        """End (exclusive) of the segment beginning at ``start``."""
        idx = self._index_of(start)
        if idx + 1 < len(self._points):
            return self._points[idx + 1].offset
        return MINUTES_PER_DAY

    def total_daily_dose(self) -> Decimal:
        """Exact insulin delivered over the day, in units.

        Unit-minutes are summed as integers and scaled once, so the result
        does not depend on segment count or order.
        """
        unit_minutes = 0
        for idx, point in enumerate(self._points):
            end = (
                self._points[idx + 1].offset
                if idx + 1 < len(self._points)
                else MINUTES_PER_DAY
            )
            unit_minutes += point.units * (end - point.offset)
        return unit_minutes * self._accuracy / MINUTES_PER_HOUR

    def diff(self, other: "BasalSchedule") -> ScheduleDiff:
        """Compare two schedules sample by sample.

        Both are sampled on the coarser of the two grids. The total is the
        sum of absolute per-sample differences, not a time integral.
        """
        step = max(self._grid, other.grid_minutes)
        differences = [
            abs(mine - theirs)
            for mine, theirs in zip(self.samples(step), other.samples(step), strict=True)
        ]
        return ScheduleDiff(
            total_difference=sum(differences, Decimal(0)),
            max_difference=max(differences),
            step_minutes=step,
        )

    # ---------- Edits ----------

    def set_rate(self, start: int, new_rate: RateLike) -> None:
        """Set the rate of the segment beginning at ``start``.

        Raises:
            NotFound: No change point at ``start``.
            InvalidRate: Negative rate.
        """
        idx = self._index_of(start)
        units = to_units(new_rate, self._accuracy)
        candidate = list(self._points)
        candidate[idx] = ChangePoint(offset=start, units=units)
        self._swap(self._rebuild(candidate))
        logger.debug("Set basal segment rate", start=start, units=units)

    def set_segment_end(self, start: int, new_end: int) -> None:
        """Move the end of the segment beginning at ``start`` to ``new_end``.

        Shortening hands ``[new_end, old_end)`` to the following segment,
        or to a zero-rate filler when the segment ran to midnight.
        Lengthening swallows time from the following segment(s).
        """
        idx = self._index_of(start)
        self._check_boundary(new_end)
        if new_end <= start:
            raise InvalidOffset(f"Segment end {new_end} must be after start {start}")

        candidate = self._resized(self._points, start, new_end, self._points[idx].units)
        self._swap(candidate)
        logger.debug("Moved basal segment end", start=start, new_end=new_end)

    def apply_segment_edit(self, start: int, new_rate: RateLike, new_end: int) -> None:
        """Set a segment's rate and end together; both apply or neither does."""
        self._index_of(start)
        self._check_boundary(new_end)
        if new_end <= start:
            raise InvalidOffset(f"Segment end {new_end} must be after start {start}")
        units = to_units(new_rate, self._accuracy)

        candidate = self._resized(self._points, start, new_end, units)
        self._swap(candidate)
        logger.debug(
            "Applied basal segment edit", start=start, new_end=new_end, units=units
        )

    def insert_change_point(self, offset: int, new_rate: RateLike) -> None:
        """Split the segment covering ``offset`` so a new rate starts there."""
        self._check_offset(offset)
        units = to_units(new_rate, self._accuracy)
        idx = bisect_right(self._offsets, offset)
        end = self._offsets[idx] if idx < len(self._offsets) else MINUTES_PER_DAY
        self._swap(self._rewritten(self._points, offset, end, units))
        logger.debug("Inserted basal change point", offset=offset, units=units)

    def adjust_step(self, hour_index: int, increase: bool) -> None:
        """Nudge the rate for one hour by a single step.

        A window holding several rates is first flattened to its highest
        (increase) or lowest (decrease) rate. A uniform window moves by
        exactly one unit.
        """
        if not 0 <= hour_index < HOURS_PER_DAY:
            raise OutOfRange(f"Hour {hour_index} outside [0, {HOURS_PER_DAY})")
        start = hour_index * MINUTES_PER_HOUR
        end = start + MINUTES_PER_HOUR

        window_units = [_units_in(self._points, start)]
        window_units.extend(p.units for p in self._points if start < p.offset < end)
        max_units = max(window_units)
        min_units = min(window_units)

        if max_units != min_units:
            target = max_units if increase else min_units
        else:
            target = max_units + 1 if increase else max_units - 1
        if target < 0:
            raise InvalidRate(f"Rate for hour {hour_index} would become negative")

        self._swap(self._rewritten(self._points, start, end, target))
        logger.debug(
            "Adjusted basal hour",
            hour=hour_index,
            increase=increase,
            target_units=target,
        )

    def apply_hourly_rates(self, rates: Iterable[RateLike]) -> None:
        """Replace the whole day with 24 hourly rates."""
        rates = list(rates)
        if len(rates) != HOURS_PER_DAY:
            raise InvalidRate(f"Exactly {HOURS_PER_DAY} hourly rates required, got {len(rates)}")
        candidate = [
            ChangePoint(offset=hour * MINUTES_PER_HOUR, units=to_units(rate, self._accuracy))
            for hour, rate in enumerate(rates)
        ]
        self._swap(self._rebuild(candidate))

    def rewrite_range(self, start: int, end: int, target_units: int) -> None:
        """Set ``[start, end)`` to ``target_units``, keeping the rest of the day."""
        self._check_offset(start)
        self._check_boundary(end)
        if end <= start:
            raise InvalidOffset(f"Range end {end} must be after start {start}")
        if target_units < 0:
            raise InvalidRate(f"Target units cannot be negative: {target_units}")
        self._swap(self._rewritten(self._points, start, end, target_units))
        logger.debug(
            "Rewrote basal range", start=start, end=end, target_units=target_units
        )

    # ---------- Edit algorithms (pure, operate on snapshots) ----------

    def _resized(
        self,
        points: tuple[ChangePoint, ...],
        start: int,
        new_end: int,
        units: int,
    ) -> tuple[ChangePoint, ...]:
        """Segment at ``start`` carries ``units`` and ends at ``new_end``."""
        offsets = [p.offset for p in points]
        idx = offsets.index(start)
        old_end = offsets[idx + 1] if idx + 1 < len(offsets) else MINUTES_PER_DAY

        candidate = self._rewritten(points, start, new_end, units)
        if new_end < old_end:
            # The following segment (or a zero filler at midnight) takes over
            following = _units_in(points, old_end) if old_end < MINUTES_PER_DAY else 0
            candidate = self._rewritten(candidate, new_end, old_end, following)
        return candidate

    def _rewritten(
        self,
        points: tuple[ChangePoint, ...],
        start: int,
        end: int,
        target_units: int,
    ) -> tuple[ChangePoint, ...]:
        """Range-rewrite ``[start, end)`` over a read-only snapshot."""
        snapshot = tuple(points)
        units_at_end = None if end == MINUTES_PER_DAY else _units_in(snapshot, end)

        out: list[ChangePoint] = []
        for point in snapshot:
            if point.offset < start:
                _append_point(out, point.offset, point.units)

        out.append(ChangePoint(offset=start, units=target_units))

        has_end_point = any(p.offset == end for p in snapshot)
        if units_at_end is not None and not has_end_point and units_at_end != target_units:
            out.append(ChangePoint(offset=end, units=units_at_end))

        for point in snapshot:
            if point.offset >= end:
                _append_point(out, point.offset, point.units)

        return self._rebuild(out)
