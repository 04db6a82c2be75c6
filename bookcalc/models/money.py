from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..errors import InvalidConfigError


ZERO = Decimal("0")


def to_money(value: Any, field: str, allow_negative: bool = False) -> Decimal:
    """
    Normalise a numeric config value to Decimal.

    Only real numbers are accepted. Strings, booleans and None are rejected
    so malformed configuration fails before a calculation starts.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidConfigError(
            f"{field} must be a number, got {type(value).__name__}",
            {"field": field},
        )
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidConfigError(f"{field} is not a valid number", {"field": field})
    if not amount.is_finite():
        raise InvalidConfigError(f"{field} must be finite", {"field": field})
    if amount < 0 and not allow_negative:
        raise InvalidConfigError(f"{field} must not be negative", {"field": field})
    return amount


def to_optional_money(value: Any, field: str, allow_negative: bool = False) -> Optional[Decimal]:
    if value is None:
        return None
    return to_money(value, field, allow_negative)


def to_count(value: Any, field: str, minimum: int = 0) -> int:
    """Validate an integer count (durations, person counts, ranges)"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigError(
            f"{field} must be an integer, got {type(value).__name__}",
            {"field": field},
        )
    if value < minimum:
        raise InvalidConfigError(f"{field} must be at least {minimum}", {"field": field})
    return value
