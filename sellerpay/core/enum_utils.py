"""
Enum Utilities for VARCHAR-based Status Fields

Status columns are VARCHAR, never database ENUMs:
    • SQLAlchemy: String(20) with Mapped[str]
    • Python: str Enum for validation and comparisons
    • Values stored in UPPERCASE

    status: Mapped[str] = mapped_column(String(20), default=PayoutStatus.HOLD.value)
    if status_in(payout.status, PayoutStatus.PENDING, PayoutStatus.PROCESSING): ...
"""

from enum import Enum
from typing import Any, List, Optional, Type, TypeVar


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(PayoutStatus.HOLD)
        'HOLD'
        >>> get_enum_value("HOLD")
        'HOLD'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """Convert a database string to an enum member, or None if unknown."""
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


def enum_values(*members: Enum) -> List[str]:
    """String values of the given members, for IN (...) filters."""
    return [m.value for m in members]


def enum_comment(enum_class: Type[Enum]) -> str:
    """
    Comma-separated list of valid values, for VARCHAR column comments.

    Examples:
        >>> enum_comment(PayoutStatus)
        'HOLD, PENDING, PROCESSING, COMPLETED, FAILED'
    """
    return ", ".join(e.value for e in enum_class)


def status_in(db_value: str, *members: Enum) -> bool:
    """Check if a database value matches any of the given enum members."""
    if db_value is None:
        return False
    return db_value in {m.value for m in members}
