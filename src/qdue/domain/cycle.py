"""Calendar and cycle arithmetic shared by providers and recurrence rules.

All cycle positions are computed with a floored modulo so that dates before
a reference date still land inside ``[0, cycle_days)``.
"""

from datetime import date, timedelta
from typing import Iterator


def days_between(start: date, end: date) -> int:
    """Signed number of days from ``start`` to ``end``."""
    return (end - start).days


def floored_mod(value: int, modulus: int) -> int:
    """Return ``value`` modulo ``modulus`` normalized into ``[0, modulus)``.

    Args:
        value: Any integer, possibly negative.
        modulus: Positive cycle length.

    Raises:
        ValueError: If ``modulus`` is not positive.
    """
    if modulus <= 0:
        raise ValueError(f"Cycle length must be positive, got {modulus}")
    # Python's % already floors toward negative infinity
    return value % modulus


def cycle_offset(
    reference: date,
    target: date,
    cycle_days: int,
    phase_offset: int = 0,
) -> int:
    """Position of ``target`` within a cycle anchored at ``reference``.

    Args:
        reference: Date that maps to cycle position 0.
        target: Date to locate.
        cycle_days: Length of the cycle in days.
        phase_offset: Days by which the cycle is delayed, e.g. a team's
            phase shift relative to the base cycle.

    Returns:
        Cycle position in ``[0, cycle_days)``.
    """
    return floored_mod(days_between(reference, target) - phase_offset, cycle_days)


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive, moving forward."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
