"""Conversion between continuous basal rates and stored integer units.

A rate (U/h) is stored as ``units * accuracy``. All arithmetic uses
Decimal so that accumulated daily totals are exact.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from basal_tracker.core.schedule.errors import InvalidRate

RateLike = Decimal | int | float | str


def as_decimal(value: RateLike) -> Decimal:
    """Coerce a rate-like value to Decimal.

    Floats go through ``str`` so ``0.05`` becomes ``Decimal("0.05")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidRate(f"Rate must be numeric, got {value!r}")
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidRate(f"Rate must be numeric, got {value!r}") from e

    if not result.is_finite():
        raise InvalidRate(f"Rate must be finite, got {value!r}")
    return result


def check_accuracy(accuracy: RateLike) -> Decimal:
    """Return accuracy as Decimal, rejecting non-positive steps."""
    step = as_decimal(accuracy)
    if step <= 0:
        raise InvalidRate(f"Accuracy must be > 0, got {step}")
    return step


def to_units(rate: RateLike, accuracy: RateLike) -> int:
    """Quantize a rate to whole units, rounding half up.

    Raises:
        InvalidRate: If the rate is negative or accuracy is not positive.
    """
    value = as_decimal(rate)
    step = check_accuracy(accuracy)
    if value < 0:
        raise InvalidRate(f"Rate cannot be negative: {value}")
    return int((value / step).to_integral_value(rounding=ROUND_HALF_UP))


def to_rate(units: int, accuracy: RateLike) -> Decimal:
    """Exact rate (U/h) for a unit count."""
    return units * check_accuracy(accuracy)
