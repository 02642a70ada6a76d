"""Range guards used by the ``@validates`` hooks on the models.

They raise the domain ``ValidationError`` so a bad value assigned by any
engine surfaces as a field-level 422 rather than a server error.
"""

from decimal import Decimal

from restaurant_pos.core.exceptions import ValidationError


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def non_negative(key: str, value):
    if value is not None and _as_decimal(value) < 0:
        raise ValidationError(f"{key} cannot be negative", field=key)
    return value


def positive(key: str, value):
    if value is not None and _as_decimal(value) <= 0:
        raise ValidationError(f"{key} must be greater than zero", field=key)
    return value


def within(key: str, value, low: int, high: int):
    """Inclusive ``low <= value <= high`` for capacities, party sizes and durations."""
    if value is not None and not low <= value <= high:
        raise ValidationError(f"{key} must be between {low} and {high}", field=key)
    return value
