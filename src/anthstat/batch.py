"""
Batch z-score calculation over arrays and DataFrames.

LMS parameters are resolved row by row through the reference's lookup and
interpolation rules (repeated covariates are resolved once), and the
transform itself runs in the compiled array kernels. Rows that cannot be
scored become NaN. Reference tables are read-only, so a large batch may be
split into chunks and processed on several threads.
"""

import logging
import math
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, ValidationError, field_validator

from anthstat.exceptions import LookupExhaustedError, OutOfRangeError
from anthstat.records import LMS, Indicator
from anthstat.stats import lms_zscore, percentile_array
from anthstat.zscores import StandardLike, get_reference


class BatchConfig(BaseModel):
    """
    Column configuration for ``add_zscores``.
    """

    measurement_col: str
    covariate_col: str
    sex_col: str = "sex"
    z_col: Optional[str] = None
    percentile_col: Optional[str] = None

    @field_validator("measurement_col", "covariate_col", "sex_col", mode="after")
    @classmethod
    def non_empty(cls, v: str) -> str:
        """Validate that input column names are not blank."""
        if not v.strip():
            raise ValueError("column names must not be empty")
        return v


def calculate_zscores(
    standard: StandardLike,
    indicator: Any,
    measurements: Sequence[float],
    covariates: Sequence[float],
    sexes: Sequence[Any],
) -> np.ndarray:
    """
    Calculate z-scores for many measurements against one reference.

    Args:
        standard: "who2006", "who2007" or "cdc2000".
        indicator: Indicator to score.
        measurements: Observed values.
        covariates: Ages or lengths/heights, one per measurement.
        sexes: Sexes, one per measurement.

    Returns:
        Array of z-scores; rows that are out of range, negative, missing or
        fall in a table gap are NaN.

    Raises:
        ValueError: If the inputs differ in length or the standard is unknown.
        OutOfRangeError: If the standard does not support the indicator.
    """
    reference = get_reference(standard)
    if not reference.is_valid_indicator(indicator):
        raise OutOfRangeError(
            f"Indicator {getattr(indicator, 'value', indicator)!r} is not "
            f"supported by {reference.name}"
        )
    X = np.asarray(measurements, dtype=np.float64)
    covariate_values = np.asarray(covariates, dtype=np.float64)
    sex_values = list(sexes)
    n = X.shape[0]
    if covariate_values.shape[0] != n or len(sex_values) != n:
        raise ValueError("measurements, covariates and sexes must have the same length")

    L = np.full(n, np.nan)
    M = np.full(n, np.nan)
    S = np.full(n, np.nan)
    resolved: Dict[Tuple[Any, float], Optional[LMS]] = {}
    failed = 0
    for i in range(n):
        if not (math.isfinite(X[i]) and X[i] >= 0):
            failed += 1
            continue
        key = (sex_values[i], float(covariate_values[i]))
        if key not in resolved:
            try:
                resolved[key] = reference.resolve_lms(indicator, key[1], key[0])
            except (OutOfRangeError, LookupExhaustedError):
                resolved[key] = None
        lms = resolved[key]
        if lms is None:
            failed += 1
            continue
        L[i], M[i], S[i] = lms

    if failed:
        logging.warning(
            f"{failed} of {n} rows could not be scored against "
            f"{reference.name} and were set to NaN"
        )
    return lms_zscore(X, L, M, S, adjust_tails=reference.adjust_tails)


def calculate_percentiles(z: Sequence[float]) -> np.ndarray:
    """Convert z-scores into percentiles in [0, 100]; NaN stays NaN."""
    return percentile_array(np.asarray(z, dtype=np.float64))


def add_zscores(
    df: pd.DataFrame,
    standard: StandardLike,
    indicator: Any,
    measurement_col: str,
    covariate_col: str,
    sex_col: str = "sex",
    z_col: Optional[str] = None,
    percentile_col: Optional[str] = None,
) -> pd.DataFrame:
    """
    Return a copy of ``df`` with z-score and percentile columns added.

    Args:
        df: Input DataFrame; not modified.
        standard: "who2006", "who2007" or "cdc2000".
        indicator: Indicator to score.
        measurement_col: Column holding the measurements.
        covariate_col: Column holding ages or lengths/heights.
        sex_col: Column holding sexes.
        z_col: Output z-score column; defaults to ``z_<indicator>``.
        percentile_col: Output percentile column; defaults to ``p_<indicator>``.

    Returns:
        New DataFrame with the two output columns.

    Raises:
        ValueError: If the configuration is invalid or a column is missing.
    """
    try:
        config = BatchConfig(
            measurement_col=measurement_col,
            covariate_col=covariate_col,
            sex_col=sex_col,
            z_col=z_col,
            percentile_col=percentile_col,
        )
    except ValidationError as e:
        raise ValueError(f"Invalid batch configuration: {e}") from e

    for column in (config.measurement_col, config.covariate_col, config.sex_col):
        if column not in df.columns:
            raise ValueError(f"Column '{column}' does not exist in DataFrame")

    suffix = Indicator(indicator).value
    z = calculate_zscores(
        standard,
        indicator,
        df[config.measurement_col].to_numpy(dtype=np.float64, na_value=np.nan),
        df[config.covariate_col].to_numpy(dtype=np.float64, na_value=np.nan),
        df[config.sex_col].tolist(),
    )
    result = df.copy()
    result[config.z_col or f"z_{suffix}"] = z
    result[config.percentile_col or f"p_{suffix}"] = calculate_percentiles(z)
    return result
