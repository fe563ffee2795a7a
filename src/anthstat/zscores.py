"""
Z-Score Calculation Utilities for Growth Metrics

Public entry points for scoring a single measurement against the WHO 2006,
WHO 2007 or CDC 2000 growth references. Standards are addressed by name
("who2006", "who2007", "cdc2000") or by ``GrowthStandard``; the matching
reference object is created once and shared, since references hold only
read-only tables.
"""

import functools
import math
from typing import Any, Union

from anthstat.records import Indicator
from anthstat.references import GrowthReference, GrowthStandard, ZScoreResult, registry
from anthstat.stats import calculate_percentile

StandardLike = Union[GrowthStandard, str]


@functools.lru_cache(maxsize=None)
def _reference(name: str) -> GrowthReference:
    return registry[name]()


def get_reference(standard: StandardLike) -> GrowthReference:
    """
    Return the shared reference object for ``standard``.

    Raises:
        ValueError: If the standard is unknown.
    """
    name = getattr(standard, "value", standard)
    if not isinstance(name, str) or name.lower() not in registry:
        raise ValueError(
            f"Unknown growth standard {standard!r}; expected one of {sorted(registry)}"
        )
    return _reference(name.lower())


def is_valid_indicator(standard: StandardLike, indicator: Any) -> bool:
    """Return True if ``standard`` supports ``indicator``."""
    return get_reference(standard).is_valid_indicator(indicator)


def is_valid_measurement(
    standard: StandardLike, indicator: Any, age_or_length: float
) -> bool:
    """Return True if ``age_or_length`` is inside the indicator's window (inclusive)."""
    return get_reference(standard).is_valid_measurement(indicator, age_or_length)


def calculate_zscore(
    standard: StandardLike,
    indicator: Union[Indicator, str],
    measurement: float,
    age_or_length: float,
    sex: Any,
) -> float:
    """
    Calculate the z-score of a measurement.

    Args:
        standard: "who2006", "who2007" or "cdc2000".
        indicator: Indicator, e.g. ``Indicator.BMI_FOR_AGE`` or "bmi".
        measurement: Observed value (kg, cm, kg/m² or mm).
        age_or_length: Age (days for WHO 2006, months otherwise) or
            length/height in cm for weight-for-length/height.
        sex: "M"/"F", "male"/"female", 1/2 or ``Sex``.

    Returns:
        The z-score.

    Raises:
        OutOfRangeError: If the input falls outside the reference.
        InvalidDistributionParameterError: If the reference row is invalid.
        LookupExhaustedError: If the reference table has a gap.
        ReferenceDataError: If the reference data is not installed.
    """
    return get_reference(standard).calculate_zscore(
        indicator, measurement, age_or_length, sex
    )


def try_calculate_zscore(
    standard: StandardLike,
    indicator: Union[Indicator, str],
    measurement: float,
    age_or_length: float,
    sex: Any,
    default: float = math.nan,
) -> ZScoreResult:
    """
    Calculate a z-score, reporting failure instead of raising.

    Returns:
        ``ZScoreResult(success, z, error)``; on failure ``z`` is ``default``
        and ``error`` is the ``ErrorKind``.
    """
    return get_reference(standard).try_calculate_zscore(
        indicator, measurement, age_or_length, sex, default=default
    )


__all__ = [
    "calculate_percentile",
    "calculate_zscore",
    "get_reference",
    "is_valid_indicator",
    "is_valid_measurement",
    "try_calculate_zscore",
]
