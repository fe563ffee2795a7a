"""
Z-Score and Percentile Transforms

This module implements the LMS (Box-Cox power-normal) z-score transform with
the WHO extreme-tail correction, the NutStat-compatible SD flag value, and the
AS66 approximation to the standard normal CDF used to turn z-scores into
percentiles.

The arithmetic lives in numba-compiled kernels shared by the scalar functions
(used by the standard facades) and the array functions (used by batch
processing), so both paths produce identical results.

References:
- Cole, T.J. (1990). "The LMS method for constructing normalized growth
  standards." European Journal of Clinical Nutrition, 44(1), 45-60.
- WHO Multicentre Growth Reference Study Group (2006). WHO Child Growth
  Standards: Methods and development, chapter 7 (restricted application of
  the LMS method in the tails).
- Hill, I.D. (1973). "Algorithm AS 66: The normal integral." Applied
  Statistics, 22(3), 424-427.
"""

import math

import numpy as np
from numba import jit

from anthstat.config import L_ZERO_THRESHOLD, TAIL_CUTOFF
from anthstat.exceptions import InvalidDistributionParameterError

# AS66 constants
LTONE = 7.0
UTZERO = 18.66
CON = 1.28

A1 = 0.398942280444
A2 = 0.399903438504
A3 = 5.75885480458
A4 = 29.8213557808
A5 = 2.62433121679
A6 = 48.6959930692
A7 = 5.92885724438

B1 = 0.398942280385
B2 = 3.8052e-8
B3 = 1.00000615302
B4 = 3.98064794e-4
B5 = 1.986153813664
B6 = 0.151679116635
B7 = 5.29330324926
B8 = 4.8385912808
B9 = 15.1508972451
B10 = 0.742380924027
B11 = 30.789933034
B12 = 3.99019417011


@jit(nopython=True, cache=True)
def _box_cox_z(measurement: float, L: float, M: float, S: float) -> float:
    """Box-Cox z-score; log form when L is effectively zero."""
    if abs(L) < L_ZERO_THRESHOLD:
        return math.log(measurement / M) / S
    return ((measurement / M) ** L - 1.0) / (L * S)


@jit(nopython=True, cache=True)
def _value_at(z: float, L: float, M: float, S: float) -> float:
    """Measurement at which the LMS distribution reaches ``z`` (inverse LMS)."""
    if abs(L) < L_ZERO_THRESHOLD:
        return M * math.exp(S * z)
    return M * (1.0 + L * S * z) ** (1.0 / L)


@jit(nopython=True, cache=True)
def _tail_adjusted(z: float, measurement: float, L: float, M: float, S: float) -> float:
    """
    Apply the WHO restricted-LMS correction beyond +/-3 SD.

    Above +3 the distance past SD3 is measured in units of the SD2-SD3 gap;
    below -3 symmetrically with SD3neg and SD2neg. Scores in [-3, 3] are
    returned unchanged.
    """
    if z > TAIL_CUTOFF:
        sd3 = _value_at(3.0, L, M, S)
        sd2 = _value_at(2.0, L, M, S)
        return 3.0 + (measurement - sd3) / (sd3 - sd2)
    if z < -TAIL_CUTOFF:
        sd3neg = _value_at(-3.0, L, M, S)
        sd2neg = _value_at(-2.0, L, M, S)
        return -3.0 + (measurement - sd3neg) / (sd2neg - sd3neg)
    return z


@jit(nopython=True, cache=True)
def _lms_z(
    measurement: float, L: float, M: float, S: float, adjust_tails: bool
) -> float:
    z = _box_cox_z(measurement, L, M, S)
    if adjust_tails:
        z = _tail_adjusted(z, measurement, L, M, S)
    return z


@jit(nopython=True, cache=True)
def _sd_flag(measurement: float, L: float, M: float, S: float) -> float:
    if measurement < M:
        sd = (M - _value_at(-2.0, L, M, S)) / 2.0
    else:
        sd = (_value_at(2.0, L, M, S) - M) / 2.0
    return (measurement - M) / sd


@jit(nopython=True, cache=True)
def _alnorm(z: float) -> float:
    """AS66 lower-tail probability P(Z <= z)."""
    upper = False
    if z < 0.0:
        upper = True
        z = -z
    if z <= LTONE or (upper and z <= UTZERO):
        y = 0.5 * z * z
        if z > CON:
            tail = (
                B1
                * math.exp(-y)
                / (
                    z
                    - B2
                    + B3
                    / (z + B4 + B5 / (z - B6 + B7 / (z + B8 - B9 / (z + B10 + B11 / (z + B12)))))
                )
            )
        else:
            tail = 0.5 - z * (A1 - A2 * y / (y + A3 - A4 / (y + A5 + A6 / (y + A7))))
    else:
        tail = 0.0
    if not upper:
        tail = 1.0 - tail
    return tail


def _check_parameters(M: float, S: float) -> None:
    if S == 0:
        raise InvalidDistributionParameterError("S must not be zero")
    if M == 0:
        raise InvalidDistributionParameterError("M must not be zero")


def calculate_zscore(
    measurement: float, L: float, M: float, S: float, adjust_tails: bool = False
) -> float:
    """
    Calculate the LMS z-score of a single measurement.

    For L != 0: z = ((X/M)^L - 1) / (L * S).
    For L ~ 0: z = ln(X/M) / S.

    With ``adjust_tails`` the WHO correction replaces z above 3 by
    ``3 + (X - SD3) / (SD3 - SD2)`` and z below -3 by
    ``-3 + (X - SD3neg) / (SD2neg - SD3neg)``, where SDk is the measurement
    at k standard deviations. Scores in [-3, 3] are untouched.

    Args:
        measurement: Observed value (kg, cm, kg/m² or mm).
        L: Box-Cox power.
        M: Median.
        S: Coefficient of variation.
        adjust_tails: Apply the WHO tail correction.

    Returns:
        The z-score.

    Raises:
        InvalidDistributionParameterError: If S or M is zero.
    """
    _check_parameters(M, S)
    return float(_lms_z(float(measurement), float(L), float(M), float(S), adjust_tails))


def calculate_flag(measurement: float, L: float, M: float, S: float) -> float:
    """
    Calculate the SD flag value used by NutStat for plausibility checks.

    The distance from the median is expressed in half the distance between
    the median and the value at -2 SD (below the median) or +2 SD (above it).
    The flag is independent of the z-score.

    Raises:
        InvalidDistributionParameterError: If S or M is zero.
    """
    _check_parameters(M, S)
    return float(_sd_flag(float(measurement), float(L), float(M), float(S)))


def calculate_percentile(z: float) -> float:
    """
    Convert a z-score into a percentile in [0, 100].

    Uses algorithm AS66 (Hill, 1973) for the standard normal CDF. NaN
    propagates.
    """
    if math.isnan(z):
        return math.nan
    return 100.0 * _alnorm(float(z))


@jit(nopython=True, cache=True)
def _lms_zscore_flat(
    X: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray, adjust_tails: bool
) -> np.ndarray:
    z = np.empty(X.shape[0], dtype=np.float64)
    for i in range(X.shape[0]):
        finite = (
            math.isfinite(X[i])
            and math.isfinite(L[i])
            and math.isfinite(M[i])
            and math.isfinite(S[i])
        )
        if not finite or S[i] == 0.0 or M[i] == 0.0:
            z[i] = np.nan
        else:
            z[i] = _lms_z(X[i], L[i], M[i], S[i], adjust_tails)
    return z


@jit(nopython=True, cache=True)
def _percentile_flat(z: np.ndarray) -> np.ndarray:
    p = np.empty(z.shape[0], dtype=np.float64)
    for i in range(z.shape[0]):
        if math.isnan(z[i]):
            p[i] = np.nan
        else:
            p[i] = 100.0 * _alnorm(z[i])
    return p


def lms_zscore(
    X: np.ndarray,
    L: np.ndarray,
    M: np.ndarray,
    S: np.ndarray,
    adjust_tails: bool = False,
) -> np.ndarray:
    """
    Calculate LMS z-scores for arrays of measurements.

    Element-wise equivalent of ``calculate_zscore``. Rows with non-finite
    inputs or a zero S or M yield NaN instead of raising. Retains the shape
    of ``X``.

    Args:
        X: Observed values.
        L: Box-Cox powers.
        M: Medians.
        S: Coefficients of variation.
        adjust_tails: Apply the WHO tail correction.

    Returns:
        Array of z-scores shaped like ``X``.
    """
    X = np.asarray(X, dtype=np.float64)
    if X.size == 0:
        return np.full_like(X, np.nan)
    arrays = [np.broadcast_to(np.asarray(a, dtype=np.float64), X.shape) for a in (L, M, S)]
    flat = [np.ascontiguousarray(a).ravel() for a in [X, *arrays]]
    z = _lms_zscore_flat(flat[0], flat[1], flat[2], flat[3], bool(adjust_tails))
    return z.reshape(X.shape)


def percentile_array(z: np.ndarray) -> np.ndarray:
    """Convert an array of z-scores into percentiles; NaN stays NaN."""
    z = np.asarray(z, dtype=np.float64)
    if z.size == 0:
        return np.full_like(z, np.nan)
    return _percentile_flat(np.ascontiguousarray(z).ravel()).reshape(z.shape)
