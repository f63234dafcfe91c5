"""Basal profile persistence models.

A profile row holds the scalar fields of a schedule. Its change points
live in a child table ordered by offset, replaced wholesale on save.
"""

import uuid
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from basal_tracker.core.schedule.constants import ACCURACY_DECIMAL_PLACES
from basal_tracker.core.schedule.enums import ProfileOrigin
from basal_tracker.models.base import Base, TimestampMixin


class BasalProfile(Base, TimestampMixin):
    """A saved basal schedule.

    ``base_profile_id`` is a back-reference to the profile this one was
    derived from. Deleting the base only clears the reference.
    """

    __tablename__ = "basal_profiles"

    __table_args__ = (
        CheckConstraint("accuracy > 0", name="ck_basal_profile_accuracy_positive"),
        CheckConstraint(
            "grid_minutes IN (30, 60)", name="ck_basal_profile_grid_minutes"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # Quantization step in U/h
    accuracy: Mapped[Decimal] = mapped_column(
        Numeric(10, ACCURACY_DECIMAL_PLACES, asdecimal=True),
        nullable=False,
    )

    grid_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
    )

    origin: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProfileOrigin.user_modified.value,
    )

    base_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("basal_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    profile_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )

    change_points: Mapped[list["BasalChangePoint"]] = relationship(
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="BasalChangePoint.offset_minutes",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<BasalProfile(id={self.id}, name={self.name!r}, "
            f"accuracy={self.accuracy}, points={len(self.change_points or [])})>"
        )


class BasalChangePoint(Base):
    """One (offset, units) change point of a saved profile."""

    __tablename__ = "basal_change_points"

    __table_args__ = (
        UniqueConstraint(
            "profile_id", "offset_minutes", name="uq_basal_change_point_offset"
        ),
        CheckConstraint(
            "offset_minutes >= 0 AND offset_minutes < 1440",
            name="ck_basal_change_point_offset_range",
        ),
        CheckConstraint("units >= 0", name="ck_basal_change_point_units"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("basal_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    offset_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    units: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    profile: Mapped[BasalProfile] = relationship(back_populates="change_points")

    def __repr__(self) -> str:
        return (
            f"<BasalChangePoint(profile_id={self.profile_id}, "
            f"offset={self.offset_minutes}, units={self.units})>"
        )
