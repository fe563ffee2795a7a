"""
Linear interpolation of LMS parameters between tabulated neighbors.

Two neighbor-finding policies are supported:

- Fixed-step (``ONES``, ``TENTHS``): the bracket is the grid cell that holds
  the measurement, and both ends must be tabulated.
- Adaptive (``ADAPTIVE``): for tables whose spacing switches between 0.5 and
  1.0, the bracket is found by probing the nearest whole value and then the
  points 0.5 and 1.0 away from it.

Distances are rounded to ``INTERPOLATION_PRECISION`` decimals before the
weights are formed, so a measurement that sits on a tabulated point gets a
weight of exactly 1.0 for that point.
"""

from enum import Enum
import logging
from typing import Optional, Tuple

from anthstat.config import INTERPOLATION_PRECISION
from anthstat.exceptions import LookupExhaustedError
from anthstat.records import LMS, LMSRecord, Sex
from anthstat.tables import ReferenceTable

# Offsets tried from the rounded measurement, nearest first
ADAPTIVE_PROBE_STEPS = (0.5, 1.0)


class InterpolationMode(Enum):
    ONES = "ones"
    TENTHS = "tenths"
    ADAPTIVE = "adaptive"


def _fixed_bracket(measurement: float, mode: InterpolationMode) -> Tuple[float, float]:
    """Grid points expected to bracket ``measurement`` on a fixed-step grid."""
    if mode is InterpolationMode.ONES:
        lower = float(int(measurement))
        return lower, lower + 1.0
    rounded = round(measurement, 1)
    if rounded > measurement:
        return round(rounded - 0.1, 1), rounded
    return rounded, round(rounded + 0.1, 1)


def _fixed_neighbors(
    table: ReferenceTable, sex: Sex, measurement: float, mode: InterpolationMode
) -> Optional[Tuple[LMSRecord, LMSRecord]]:
    expected_lower, expected_upper = _fixed_bracket(measurement, mode)
    found = table.neighbors(sex, measurement)
    if found is None:
        return None
    lower, upper = found
    if lower.measurement != expected_lower or upper.measurement != expected_upper:
        return None
    return lower, upper


def _adaptive_neighbors(
    table: ReferenceTable, sex: Sex, measurement: float
) -> Optional[Tuple[LMSRecord, LMSRecord]]:
    rounded = float(round(measurement))
    lower: Optional[LMSRecord] = None
    upper: Optional[LMSRecord] = None

    nearest = table.lookup(sex, rounded)
    if nearest is not None:
        if rounded > measurement:
            upper = nearest
        else:
            lower = nearest

    for step in ADAPTIVE_PROBE_STEPS:
        if upper is None and rounded + step > measurement:
            upper = table.lookup(sex, rounded + step)
        if lower is None and rounded - step <= measurement:
            lower = table.lookup(sex, rounded - step)
        if lower is not None and upper is not None:
            return lower, upper
    return None


def find_neighbors(
    table: ReferenceTable, sex: Sex, measurement: float, mode: InterpolationMode
) -> Tuple[LMSRecord, LMSRecord]:
    """
    Locate the tabulated records bracketing ``measurement``.

    Args:
        table: Reference table to search.
        sex: Sex to search within.
        measurement: Age or length/height that has no exact entry.
        mode: Neighbor-finding policy.

    Returns:
        ``(lower, upper)`` records with lower < measurement <= upper, or
        lower == measurement when the query sits on a tabulated point.

    Raises:
        LookupExhaustedError: If either neighbor is missing from the table.
    """
    if mode is InterpolationMode.ADAPTIVE:
        found = _adaptive_neighbors(table, sex, measurement)
    else:
        found = _fixed_neighbors(table, sex, measurement, mode)
    if found is None:
        logging.error(
            f"No {mode.value} neighbors in {table.name} for sex {sex.value} "
            f"at {measurement}"
        )
        span = table.span(sex)
        tabulated = f"tabulated {span[0]:g} to {span[1]:g}" if span else "no rows"
        raise LookupExhaustedError(
            f"Measurement {measurement} is out of range for table {table.name} "
            f"(sex {sex.value}, {tabulated}): no bracketing entries"
        )
    return found


def blend(lower: LMSRecord, upper: LMSRecord, measurement: float) -> LMS:
    """
    Linearly blend L, M and S of two records at ``measurement``.

    The lower weight is ``(upper - measurement) / (upper - lower)`` with both
    distances rounded to ``INTERPOLATION_PRECISION`` decimals; the upper
    weight is its complement.
    """
    diff = round(upper.measurement - lower.measurement, INTERPOLATION_PRECISION)
    lower_weight = round(upper.measurement - measurement, INTERPOLATION_PRECISION) / diff
    upper_weight = 1.0 - lower_weight
    return LMS(
        L=lower.L * lower_weight + upper.L * upper_weight,
        M=lower.M * lower_weight + upper.M * upper_weight,
        S=lower.S * lower_weight + upper.S * upper_weight,
    )


def interpolate_lms(
    table: ReferenceTable, sex: Sex, measurement: float, mode: InterpolationMode
) -> LMS:
    """Find the neighbors of ``measurement`` and return the blended LMS."""
    lower, upper = find_neighbors(table, sex, measurement, mode)
    logging.debug(
        f"Interpolating {table.name} at {measurement} between "
        f"{lower.measurement} and {upper.measurement}"
    )
    return blend(lower, upper, measurement)
