"""Basal schedule Pydantic models.

Pure value models exchanged with the schedule entity. No database
dependencies, no SQLAlchemy. Grid alignment is not checked here because
it depends on the owning schedule; BasalSchedule validates on load.
"""

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from basal_tracker.core.schedule.enums import ProfileOrigin


class ChangePoint(BaseModel):
    """A point where the basal rate changes.

    The rate ``units * accuracy`` holds from ``offset`` until the next
    change point, or until midnight for the last one.
    """

    model_config = ConfigDict(frozen=True)

    offset: int = Field(description="Minutes since midnight.")
    units: int = Field(description="Quantized rate in accuracy steps.")


class ScheduleSnapshot(BaseModel):
    """Flat snapshot of a schedule, as handed to persistence.

    ``id`` is None until the schedule has been saved.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID | None = None
    name: str = Field(min_length=1)
    accuracy: Decimal = Field(gt=0)
    grid_minutes: int
    origin: ProfileOrigin = ProfileOrigin.user_modified
    base_profile_id: uuid.UUID | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    points: tuple[ChangePoint, ...]


class ScheduleDiff(BaseModel):
    """Pointwise comparison of two schedules sampled on a common grid."""

    model_config = ConfigDict(frozen=True)

    total_difference: Decimal = Field(ge=0)
    max_difference: Decimal = Field(ge=0)
    step_minutes: int = Field(gt=0)
