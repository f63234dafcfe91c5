"""Basal profile service.

Persistence for basal schedules: map rows to BasalSchedule and back,
list/search/duplicate/delete saved profiles, and run edits as a single
load -> edit -> save operation. Concurrent editors of the same profile
are last-write-wins; nothing here detects lost updates.
"""

import uuid
from collections.abc import Callable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from basal_tracker.config import settings
from basal_tracker.core.schedule import (
    BasalSchedule,
    ChangePoint,
    ProfileOrigin,
    ScheduleDiff,
    ScheduleError,
)
from basal_tracker.logging_config import get_logger
from basal_tracker.models.basal_profile import BasalChangePoint, BasalProfile

logger = get_logger(__name__)


class BasalProfileServiceError(Exception):
    """Base exception for basal profile service errors."""

    pass


class ProfileNotFoundError(BasalProfileServiceError):
    """No saved profile has the requested id."""

    def __init__(self, profile_id: uuid.UUID):
        super().__init__(f"Basal profile {profile_id} not found")
        self.profile_id = profile_id


# ── Mapping ──


def to_domain(row: BasalProfile) -> BasalSchedule:
    """Rebuild a schedule from its row. Normalization runs on load."""
    return BasalSchedule(
        [
            ChangePoint(offset=cp.offset_minutes, units=cp.units)
            for cp in row.change_points
        ],
        name=row.name,
        accuracy=row.accuracy,
        grid_minutes=row.grid_minutes,
        id=row.id,
        origin=ProfileOrigin(row.origin),
        base_profile_id=row.base_profile_id,
        metadata=row.profile_metadata,
    )


def apply_to_entity(schedule: BasalSchedule, row: BasalProfile) -> None:
    """Copy a schedule's state onto its row.

    Change point rows are reused by offset so the unique
    (profile_id, offset_minutes) constraint holds during flush.
    """
    row.name = schedule.name
    row.accuracy = schedule.accuracy
    row.grid_minutes = schedule.grid_minutes
    row.origin = schedule.origin.value
    row.base_profile_id = schedule.base_profile_id
    row.profile_metadata = schedule.metadata

    existing = {cp.offset_minutes: cp for cp in row.change_points}
    synced: list[BasalChangePoint] = []
    for point in schedule.points:
        cp = existing.pop(point.offset, None)
        if cp is None:
            cp = BasalChangePoint(offset_minutes=point.offset, units=point.units)
        else:
            cp.units = point.units
        synced.append(cp)
    row.change_points = synced


# ── Queries ──


async def get_profile(profile_id: uuid.UUID, db: AsyncSession) -> BasalProfile:
    """Load a profile row.

    Raises:
        ProfileNotFoundError: If no profile has this id.
    """
    result = await db.execute(select(BasalProfile).where(BasalProfile.id == profile_id))
    row = result.scalar_one_or_none()
    if row is None:
        raise ProfileNotFoundError(profile_id)
    return row


async def get_schedule(profile_id: uuid.UUID, db: AsyncSession) -> BasalSchedule:
    """Load a saved profile as a BasalSchedule."""
    return to_domain(await get_profile(profile_id, db))


async def list_profiles(
    db: AsyncSession,
    query: str | None = None,
) -> list[BasalSchedule]:
    """Saved profiles, newest first, optionally filtered by name.

    Args:
        db: Database session.
        query: Case-insensitive substring to match against profile names.
    """
    stmt = select(BasalProfile).order_by(BasalProfile.created_at.desc())
    if query:
        stmt = stmt.where(BasalProfile.name.icontains(query.strip(), autoescape=True))
    result = await db.execute(stmt)
    return [to_domain(row) for row in result.scalars().all()]


async def search_profiles(query: str, db: AsyncSession) -> list[BasalSchedule]:
    return await list_profiles(db, query=query)


async def compare_profiles(
    left_id: uuid.UUID,
    right_id: uuid.UUID,
    db: AsyncSession,
) -> ScheduleDiff:
    left = await get_schedule(left_id, db)
    right = await get_schedule(right_id, db)
    return left.diff(right)


# ── Mutations ──


async def save_schedule(schedule: BasalSchedule, db: AsyncSession) -> uuid.UUID:
    """Insert or update a schedule and return its id.

    A schedule without an id is inserted and given one. A schedule with
    an id overwrites that profile.
    """
    if schedule.id is None:
        row = BasalProfile(id=uuid.uuid4(), change_points=[])
        db.add(row)
        created = True
    else:
        row = await get_profile(schedule.id, db)
        created = False

    apply_to_entity(schedule, row)
    await db.commit()
    schedule.mark_saved(row.id)

    logger.info(
        "Created basal profile" if created else "Saved basal profile",
        profile_id=str(row.id),
        points=len(schedule.points),
    )
    return row.id


async def create_empty_profile(
    db: AsyncSession,
    *,
    name: str | None = None,
    accuracy: Decimal | None = None,
    grid_minutes: int | None = None,
) -> BasalSchedule:
    """Create and save a profile delivering zero all day."""
    schedule = BasalSchedule.empty(
        name=name or settings.default_profile_name,
        accuracy=accuracy if accuracy is not None else settings.default_accuracy,
        grid_minutes=grid_minutes or settings.default_grid_minutes,
    )
    await save_schedule(schedule, db)
    return schedule


async def duplicate_profile(
    profile_id: uuid.UUID,
    db: AsyncSession,
    name_suffix: str | None = None,
) -> BasalSchedule:
    """Save a copy of a profile that points back at the original."""
    original = await get_schedule(profile_id, db)
    duplicate = original.duplicate(name_suffix or settings.duplicate_name_suffix)
    await save_schedule(duplicate, db)

    logger.info(
        "Duplicated basal profile",
        source_id=str(profile_id),
        profile_id=str(duplicate.id),
    )
    return duplicate


async def delete_profile(profile_id: uuid.UUID, db: AsyncSession) -> None:
    row = await get_profile(profile_id, db)
    await db.delete(row)
    await db.commit()
    logger.info("Deleted basal profile", profile_id=str(profile_id))


async def edit_profile(
    profile_id: uuid.UUID,
    db: AsyncSession,
    edit: Callable[[BasalSchedule], None],
    *,
    operation: str,
) -> BasalSchedule:
    """Load a profile, apply one edit, and save it.

    Nothing is written when the edit raises.

    Args:
        profile_id: Profile to edit.
        db: Database session.
        edit: Callable mutating the schedule through its edit operations.
        operation: Edit name for logging.

    Raises:
        ProfileNotFoundError: If no profile has this id.
        ScheduleError: If the edit is rejected.
    """
    row = await get_profile(profile_id, db)
    schedule = to_domain(row)

    try:
        edit(schedule)
    except ScheduleError as e:
        logger.warning(
            "Basal profile edit rejected",
            profile_id=str(profile_id),
            operation=operation,
            error=str(e),
        )
        raise

    apply_to_entity(schedule, row)
    await db.commit()

    logger.info(
        "Edited basal profile",
        profile_id=str(profile_id),
        operation=operation,
        points=len(schedule.points),
    )
    return schedule

