"""Basal profiles router.

CRUD for saved basal profiles, read-only schedule queries, and the
schedule edit operations. Every edit loads the profile, applies the edit
and saves it in one request, returning the updated profile.
"""

import uuid
from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from basal_tracker.core.schedule import (
    BasalSchedule,
    MalformedSchedule,
    NotFound,
    ScheduleError,
)
from basal_tracker.database import get_db
from basal_tracker.logging_config import get_logger
from basal_tracker.schemas.basal_profile import (
    AdjustStepRequest,
    BasalProfileCreate,
    BasalProfileResponse,
    ChangePointCreate,
    DuplicateRequest,
    HourlyRatesUpdate,
    HourlyResponse,
    ProfileDiffResponse,
    RateAtResponse,
    RateUpdate,
    SamplesResponse,
    SegmentEdit,
    SegmentEndUpdate,
    TotalDailyDoseResponse,
)
from basal_tracker.services.basal_profile import (
    ProfileNotFoundError,
    compare_profiles,
    create_empty_profile,
    delete_profile,
    duplicate_profile,
    edit_profile,
    get_schedule,
    list_profiles,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/basal-profiles", tags=["Basal profiles"])


def _profile_not_found(e: ProfileNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Basal profile not found",
    )


def _schedule_error(e: ScheduleError, **context: str) -> HTTPException:
    """Translate a schedule error into an HTTP error.

    MalformedSchedule is a defect in the schedule model, so it is logged
    and reported as a server error rather than a validation failure.
    """
    if isinstance(e, MalformedSchedule):
        logger.error(
            "Basal schedule invariant violated",
            error=str(e),
            **context,
        )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal schedule error",
        )
    if isinstance(e, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(e),
    )


async def _load(profile_id: uuid.UUID, db: AsyncSession) -> BasalSchedule:
    try:
        return await get_schedule(profile_id, db)
    except ProfileNotFoundError as e:
        raise _profile_not_found(e) from e
    except ScheduleError as e:
        raise _schedule_error(e, profile_id=str(profile_id)) from e


async def _edit(
    profile_id: uuid.UUID,
    db: AsyncSession,
    edit: Callable[[BasalSchedule], None],
    operation: str,
) -> BasalProfileResponse:
    try:
        schedule = await edit_profile(profile_id, db, edit, operation=operation)
    except ProfileNotFoundError as e:
        raise _profile_not_found(e) from e
    except ScheduleError as e:
        raise _schedule_error(e, profile_id=str(profile_id)) from e
    return BasalProfileResponse.from_schedule(schedule)


# ── Profile list endpoints ──


@router.get("", response_model=list[BasalProfileResponse])
async def get_basal_profiles(
    q: str | None = Query(default=None, max_length=100, description="Name search."),
    db: AsyncSession = Depends(get_db),
) -> list[BasalProfileResponse]:
    """List saved profiles, newest first, optionally filtered by name."""
    schedules = await list_profiles(db, query=q)
    return [BasalProfileResponse.from_schedule(s) for s in schedules]


@router.post(
    "",
    response_model=BasalProfileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_basal_profile(
    body: BasalProfileCreate,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Create an empty profile (zero rate all day)."""
    try:
        schedule = await create_empty_profile(
            db,
            name=body.name,
            accuracy=body.accuracy,
            grid_minutes=body.grid_minutes,
        )
    except ScheduleError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from e
    return BasalProfileResponse.from_schedule(schedule)


@router.get("/compare", response_model=ProfileDiffResponse)
async def compare_basal_profiles(
    left: uuid.UUID,
    right: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ProfileDiffResponse:
    """Compare two profiles sample by sample on their coarser grid."""
    try:
        diff = await compare_profiles(left, right, db)
    except ProfileNotFoundError as e:
        raise _profile_not_found(e) from e
    except ScheduleError as e:
        raise _schedule_error(e, left_id=str(left), right_id=str(right)) from e
    return ProfileDiffResponse.from_diff(left, right, diff)


# ── Single profile endpoints ──


@router.get("/{profile_id}", response_model=BasalProfileResponse)
async def get_basal_profile(
    profile_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    return BasalProfileResponse.from_schedule(await _load(profile_id, db))


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_basal_profile(
    profile_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await delete_profile(profile_id, db)
    except ProfileNotFoundError as e:
        raise _profile_not_found(e) from e


@router.post(
    "/{profile_id}/duplicate",
    response_model=BasalProfileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_basal_profile(
    profile_id: uuid.UUID,
    body: DuplicateRequest,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Save a copy of a profile linked back to it via base_profile_id."""
    try:
        schedule = await duplicate_profile(profile_id, db, name_suffix=body.name_suffix)
    except ProfileNotFoundError as e:
        raise _profile_not_found(e) from e
    return BasalProfileResponse.from_schedule(schedule)


# ── Query endpoints ──


@router.get("/{profile_id}/rate", response_model=RateAtResponse)
async def get_rate_at(
    profile_id: uuid.UUID,
    minute: int = Query(description="Minutes since midnight."),
    db: AsyncSession = Depends(get_db),
) -> RateAtResponse:
    schedule = await _load(profile_id, db)
    try:
        rate = schedule.rate_at(minute)
    except ScheduleError as e:
        raise _schedule_error(e, profile_id=str(profile_id)) from e
    return RateAtResponse(minute=minute, rate=rate)


@router.get("/{profile_id}/samples", response_model=SamplesResponse)
async def get_samples(
    profile_id: uuid.UUID,
    step: int = Query(default=60, gt=0, description="Sample step in minutes."),
    db: AsyncSession = Depends(get_db),
) -> SamplesResponse:
    schedule = await _load(profile_id, db)
    try:
        rates = schedule.samples(step)
    except ScheduleError as e:
        raise _schedule_error(e, profile_id=str(profile_id)) from e
    return SamplesResponse(step_minutes=step, rates=rates)


@router.get("/{profile_id}/total-daily-dose", response_model=TotalDailyDoseResponse)
async def get_total_daily_dose(
    profile_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> TotalDailyDoseResponse:
    schedule = await _load(profile_id, db)
    return TotalDailyDoseResponse(total_daily_dose=schedule.total_daily_dose())


@router.get("/{profile_id}/hourly", response_model=HourlyResponse)
async def get_hourly(
    profile_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> HourlyResponse:
    """Fixed 24-hour view for charts and hour-based editors."""
    return HourlyResponse.from_schedule(await _load(profile_id, db))


# ── Edit endpoints ──


@router.put("/{profile_id}/points/{offset}/rate", response_model=BasalProfileResponse)
async def put_segment_rate(
    profile_id: uuid.UUID,
    offset: int,
    body: RateUpdate,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Set the rate of the segment starting at ``offset``."""
    return await _edit(
        profile_id, db, lambda s: s.set_rate(offset, body.rate), "set_rate"
    )


@router.put("/{profile_id}/points/{offset}/end", response_model=BasalProfileResponse)
async def put_segment_end(
    profile_id: uuid.UUID,
    offset: int,
    body: SegmentEndUpdate,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Move the end of the segment starting at ``offset``."""
    return await _edit(
        profile_id,
        db,
        lambda s: s.set_segment_end(offset, body.end),
        "set_segment_end",
    )


@router.put("/{profile_id}/segments/{offset}", response_model=BasalProfileResponse)
async def put_segment(
    profile_id: uuid.UUID,
    offset: int,
    body: SegmentEdit,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Set a segment's rate and end in one atomic edit."""
    return await _edit(
        profile_id,
        db,
        lambda s: s.apply_segment_edit(offset, body.rate, body.end),
        "apply_segment_edit",
    )


@router.post("/{profile_id}/points", response_model=BasalProfileResponse)
async def post_change_point(
    profile_id: uuid.UUID,
    body: ChangePointCreate,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Start a new rate at ``offset``, splitting the covering segment."""
    return await _edit(
        profile_id,
        db,
        lambda s: s.insert_change_point(body.offset, body.rate),
        "insert_change_point",
    )


@router.post("/{profile_id}/hours/{hour}/adjust", response_model=BasalProfileResponse)
async def post_adjust_hour(
    profile_id: uuid.UUID,
    hour: int,
    body: AdjustStepRequest,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Nudge one hour up or down by a single step."""
    return await _edit(
        profile_id,
        db,
        lambda s: s.adjust_step(hour, body.increase),
        "adjust_step",
    )


@router.put("/{profile_id}/hourly", response_model=BasalProfileResponse)
async def put_hourly_rates(
    profile_id: uuid.UUID,
    body: HourlyRatesUpdate,
    db: AsyncSession = Depends(get_db),
) -> BasalProfileResponse:
    """Replace the whole day with 24 hourly rates."""
    return await _edit(
        profile_id,
        db,
        lambda s: s.apply_hourly_rates(body.rates),
        "apply_hourly_rates",
    )
