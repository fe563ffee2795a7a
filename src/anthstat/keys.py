"""
Key strategies for reference table lookup.

Keyed tables index records by an integer derived from ``(sex, measurement)``.
A measurement that carries more fractional precision than the table's grid
can never be an exact entry, so ``build_key`` returns ``None`` for it and the
caller falls through to interpolation.
"""

from enum import Enum
import math
from typing import Optional

from anthstat.records import Sex

SEX_KEY_OFFSETS = {Sex.MALE: 1, Sex.FEMALE: 2}


class Grid(Enum):
    """Finest increment at which a reference table is tabulated."""

    WHOLE = 1.0
    HALVES = 0.5
    TENTHS = 0.1


def is_whole_number(number: float) -> bool:
    """Return True if ``number`` has no fractional part."""
    return math.isfinite(number) and math.fmod(number, 1.0) == 0.0


def is_on_grid(measurement: float, grid: Grid) -> bool:
    """Return True if ``measurement`` could be an exact entry on ``grid``."""
    if is_whole_number(measurement):
        return True
    if grid is Grid.HALVES:
        return is_whole_number(measurement * 2)
    if grid is Grid.TENTHS:
        return round(measurement, 1) == measurement
    return False


def build_key(sex: Sex, measurement: float, grid: Grid) -> Optional[int]:
    """
    Build the integer lookup key for ``(sex, measurement)``.

    The key is ``round(measurement * 100)`` plus 1 for males or 2 for
    females. Every supported grid is a multiple of 0.1, so the cent part of a
    key is always a multiple of ten and the two sexes can never collide.

    Args:
        sex: Sex of the row.
        measurement: Age or length/height.
        grid: Grid of the table being queried.

    Returns:
        The integer key, or None if the measurement is not on the grid.
    """
    if not is_on_grid(measurement, grid):
        return None
    return int(round(measurement * 100)) + SEX_KEY_OFFSETS[sex]
