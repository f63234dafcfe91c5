# Database Models
from basal_tracker.models.base import Base, TimestampMixin
from basal_tracker.models.basal_profile import BasalChangePoint, BasalProfile

__all__ = [
    "BasalChangePoint",
    "BasalProfile",
    "Base",
    "TimestampMixin",
]
