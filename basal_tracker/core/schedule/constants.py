"""Basal schedule day-model constants.

A schedule always covers exactly one day. Offsets are minutes since
midnight and every change point must sit on the schedule's grid.
"""

from decimal import Decimal
from typing import Final

MINUTES_PER_DAY: Final[int] = 1440
MINUTES_PER_HOUR: Final[int] = 60
HOURS_PER_DAY: Final[int] = 24

# Grid sizes (minutes) observed on pumps we model. 30 min is the finest
# granularity most pumps accept for basal change points.
ALLOWED_GRIDS: Final[tuple[int, ...]] = (30, 60)
DEFAULT_GRID_MINUTES: Final[int] = 30

DEFAULT_DUPLICATE_SUFFIX: Final[str] = " (copy)"

# Highest basal rate (U/h) accepted from clients. Pumps cap well below this.
MAX_BASAL_RATE: Final[Decimal] = Decimal("35")

# Accuracy is stored as Numeric(10, 4)
ACCURACY_DECIMAL_PLACES: Final[int] = 4
