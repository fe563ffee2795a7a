"""
Core value types: sex, indicators and LMS reference records.

An ``LMSRecord`` is the atomic datum of every growth reference table. Its
identity is the ``(sex, measurement)`` pair; the L, M and S values are
payload and take no part in equality or ordering.
"""

from dataclasses import dataclass
from enum import Enum
import functools
import numbers
from typing import Any, NamedTuple

from anthstat.config import MAX_ABS_L, MAX_ABS_M, MAX_ABS_S, SEX_CODES
from anthstat.exceptions import InvalidDistributionParameterError


class Sex(str, Enum):
    """Sex of the measured child. Males order before females."""

    MALE = "M"
    FEMALE = "F"

    @property
    def rank(self) -> int:
        return 0 if self is Sex.MALE else 1

    @classmethod
    def parse(cls, value: Any) -> "Sex":
        """
        Coerce user input into a ``Sex``.

        Accepts ``Sex`` members, "M"/"F" or "male"/"female" in any case, and
        the numeric codes 1 (male) and 2 (female) used by the WHO and CDC
        source files.

        Raises:
            ValueError: If the value cannot be interpreted.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            if value in SEX_CODES:
                return cls(SEX_CODES[int(value)])
        elif isinstance(value, str):
            text = value.strip().upper()
            if text in ("M", "MALE"):
                return cls.MALE
            if text in ("F", "FEMALE"):
                return cls.FEMALE
        raise ValueError(f"Sex values must be 'M' or 'F', got {value!r}")


class Indicator(str, Enum):
    """A measured quantity paired with its covariate."""

    LENGTH_FOR_AGE = "lfa"
    HEIGHT_FOR_AGE = "hfa"
    WEIGHT_FOR_AGE = "wfa"
    WEIGHT_FOR_LENGTH = "wfl"
    WEIGHT_FOR_HEIGHT = "wfh"
    BMI_FOR_AGE = "bmi"
    HEAD_CIRCUMFERENCE_FOR_AGE = "hcfa"
    ARM_CIRCUMFERENCE_FOR_AGE = "acfa"
    SUBSCAPULAR_SKINFOLD_FOR_AGE = "ssfa"
    TRICEPS_SKINFOLD_FOR_AGE = "tsfa"


class LMS(NamedTuple):
    """Box-Cox power (L), median (M) and coefficient of variation (S)."""

    L: float
    M: float
    S: float


class LookupKey(NamedTuple):
    """Ordering key for a ``(sex, measurement)`` pair."""

    sex_rank: int
    measurement: float


def lookup_key(sex: Sex, measurement: float) -> LookupKey:
    """Build the ordering key used to search sorted reference tables."""
    return LookupKey(sex.rank, measurement)


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class LMSRecord:
    """
    One row of a growth reference table.

    Attributes:
        sex: Sex the row applies to.
        measurement: Age (days or months) or length/height (cm) of the row.
        L: Box-Cox power.
        M: Median.
        S: Coefficient of variation.

    Raises:
        ValueError: If the measurement is negative or L/M/S exceed the sanity
            bounds for reference data.
        InvalidDistributionParameterError: If S is zero.
    """

    sex: Sex
    measurement: float
    L: float
    M: float
    S: float

    def __post_init__(self) -> None:
        if not isinstance(self.sex, Sex):
            object.__setattr__(self, "sex", Sex.parse(self.sex))
        if self.measurement < 0:
            raise ValueError(f"measurement must be >= 0, got {self.measurement}")
        if abs(self.L) > MAX_ABS_L:
            raise ValueError(f"|L| must be <= {MAX_ABS_L:g}, got {self.L}")
        if abs(self.M) > MAX_ABS_M:
            raise ValueError(f"|M| must be <= {MAX_ABS_M:g}, got {self.M}")
        if abs(self.S) > MAX_ABS_S:
            raise ValueError(f"|S| must be <= {MAX_ABS_S:g}, got {self.S}")
        if self.S == 0:
            raise InvalidDistributionParameterError("S must not be zero")

    @property
    def key(self) -> LookupKey:
        return lookup_key(self.sex, self.measurement)

    @property
    def lms(self) -> LMS:
        return LMS(self.L, self.M, self.S)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LMSRecord):
            return NotImplemented
        return self.key == other.key

    def __lt__(self, other: "LMSRecord") -> bool:
        if not isinstance(other, LMSRecord):
            return NotImplemented
        return self.key < other.key

    def __hash__(self) -> int:
        return hash(self.key)
