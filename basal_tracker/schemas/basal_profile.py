"""Basal profile schemas."""

import uuid
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer, field_validator

from basal_tracker.core.schedule import BasalSchedule, ProfileOrigin, ScheduleDiff
from basal_tracker.core.schedule.constants import (
    ACCURACY_DECIMAL_PLACES,
    HOURS_PER_DAY,
    MAX_BASAL_RATE,
    MINUTES_PER_DAY,
)
from basal_tracker.core.schedule.projection import hourly_rates, hourly_units

# Exact inside the model, plain JSON numbers on the wire
RateValue = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]

# Client-supplied rate in U/h
BasalRate = Annotated[
    Decimal,
    Field(ge=0, le=MAX_BASAL_RATE, description="Basal rate in U/h."),
]


class ChangePointResponse(BaseModel):
    """A change point with its derived rate."""

    offset: int
    units: int
    rate: RateValue


class BasalProfileResponse(BaseModel):
    """Response schema for a basal profile."""

    id: uuid.UUID | None
    name: str
    accuracy: RateValue
    grid_minutes: int
    origin: ProfileOrigin
    base_profile_id: uuid.UUID | None
    metadata: dict[str, str]
    points: list[ChangePointResponse]
    total_daily_dose: RateValue

    @classmethod
    def from_schedule(cls, schedule: BasalSchedule) -> "BasalProfileResponse":
        return cls(
            id=schedule.id,
            name=schedule.name,
            accuracy=schedule.accuracy,
            grid_minutes=schedule.grid_minutes,
            origin=schedule.origin,
            base_profile_id=schedule.base_profile_id,
            metadata=schedule.metadata,
            points=[
                ChangePointResponse(
                    offset=p.offset,
                    units=p.units,
                    rate=p.units * schedule.accuracy,
                )
                for p in schedule.points
            ],
            total_daily_dose=schedule.total_daily_dose(),
        )


class BasalProfileCreate(BaseModel):
    """Request schema for creating an empty profile.

    Omitted fields fall back to the configured defaults.
    """

    name: str | None = Field(default=None, max_length=100)
    accuracy: Decimal | None = Field(
        default=None,
        gt=0,
        le=1,
        max_digits=10,
        decimal_places=ACCURACY_DECIMAL_PLACES,
        description="Quantization step in U/h. Range: (0, 1], at most 4 decimals.",
    )
    grid_minutes: int | None = Field(
        default=None,
        description="Change point grid in minutes (30 or 60).",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        """Strip whitespace; a name that is only whitespace is rejected."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Profile name must not be blank")
        return v


class DuplicateRequest(BaseModel):
    """Request schema for duplicating a profile."""

    name_suffix: str | None = Field(default=None, max_length=50)


class RateUpdate(BaseModel):
    """New rate for an existing segment."""

    rate: BasalRate


class SegmentEndUpdate(BaseModel):
    """New end (exclusive) for an existing segment."""

    end: int = Field(gt=0, le=MINUTES_PER_DAY, description="Minutes since midnight.")


class SegmentEdit(BaseModel):
    """Rate and end for an existing segment, applied together."""

    rate: BasalRate
    end: int = Field(gt=0, le=MINUTES_PER_DAY, description="Minutes since midnight.")


class ChangePointCreate(BaseModel):
    """A new change point splitting the segment that covers ``offset``."""

    offset: int = Field(ge=0, lt=MINUTES_PER_DAY)
    rate: BasalRate


class AdjustStepRequest(BaseModel):
    """One-step nudge for an hour."""

    increase: bool


class HourlyRatesUpdate(BaseModel):
    """Full day as 24 hourly rates."""

    rates: list[BasalRate] = Field(min_length=HOURS_PER_DAY, max_length=HOURS_PER_DAY)


class RateAtResponse(BaseModel):
    minute: int
    rate: RateValue


class SamplesResponse(BaseModel):
    step_minutes: int
    rates: list[RateValue]


class TotalDailyDoseResponse(BaseModel):
    total_daily_dose: RateValue


class HourlyResponse(BaseModel):
    """Fixed 24-slot view of a profile."""

    units: list[int]
    rates: list[RateValue]

    @classmethod
    def from_schedule(cls, schedule: BasalSchedule) -> "HourlyResponse":
        return cls(units=hourly_units(schedule), rates=hourly_rates(schedule))


class ProfileDiffResponse(BaseModel):
    """Sample-by-sample comparison of two profiles."""

    left_id: uuid.UUID
    right_id: uuid.UUID
    step_minutes: int
    total_difference: RateValue
    max_difference: RateValue

    @classmethod
    def from_diff(
        cls, left_id: uuid.UUID, right_id: uuid.UUID, diff: ScheduleDiff
    ) -> "ProfileDiffResponse":
        return cls(
            left_id=left_id,
            right_id=right_id,
            step_minutes=diff.step_minutes,
            total_difference=diff.total_difference,
            max_difference=diff.max_difference,
        )
