"""
Base class for all growth reference standards.
"""

from abc import ABC, abstractmethod
from enum import Enum
import math
from typing import Any, ClassVar, Dict, Mapping, NamedTuple, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    ValidationError,
    field_validator,
)

from anthstat.exceptions import (
    InvalidDistributionParameterError,
    LookupExhaustedError,
    OutOfRangeError,
)
from anthstat.interpolation import InterpolationMode, interpolate_lms
from anthstat.keys import Grid, is_whole_number
from anthstat.records import LMS, Indicator, Sex
from anthstat.reference_data import get_table
from anthstat.stats import calculate_flag, calculate_percentile, calculate_zscore
from anthstat.tables import ReferenceTable


class IndicatorConfig(BaseModel):
    """
    Per-indicator configuration of a growth reference.

    Attributes:
        table: Name of the reference table, e.g. "who2007_bmi".
        min: Smallest admissible age or length/height (inclusive).
        max: Largest admissible age or length/height (inclusive).
        round_to_whole: Round the covariate to a whole number before lookup.
        interpolation: Neighbor policy used when there is no exact entry;
            None means a missing entry is an error.
    """

    model_config = ConfigDict(frozen=True)

    table: str
    min: StrictFloat
    max: StrictFloat
    round_to_whole: StrictBool = False
    interpolation: Optional[InterpolationMode] = None

    @field_validator("max", mode="after")
    @classmethod
    def min_lt_max(cls, v: float, info: Any) -> float:
        """Validate that min < max."""
        lower = info.data.get("min", float("inf"))
        if v <= lower:
            raise ValueError("max must be > min")
        return v


def indicator_config(**params: Any) -> IndicatorConfig:
    """Build an ``IndicatorConfig``, reporting bad values as ValueError."""
    try:
        return IndicatorConfig(**params)
    except ValidationError as e:
        raise ValueError(f"Invalid indicator configuration: {e}") from e


class ErrorKind(Enum):
    """Why a z-score could not be calculated."""

    OUT_OF_RANGE = "out_of_range"
    INVALID_PARAMETER = "invalid_parameter"
    LOOKUP_EXHAUSTED = "lookup_exhausted"


_ERROR_KINDS = (
    (OutOfRangeError, ErrorKind.OUT_OF_RANGE),
    (InvalidDistributionParameterError, ErrorKind.INVALID_PARAMETER),
    (LookupExhaustedError, ErrorKind.LOOKUP_EXHAUSTED),
)


def _as_number(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise OutOfRangeError(f"{what} must be a number, got {value!r}") from None


class ZScoreResult(NamedTuple):
    """Outcome of ``try_calculate_zscore``."""

    success: bool
    z: float
    error: Optional[ErrorKind] = None


class GrowthReference(ABC):
    """
    Abstract base class for the WHO and CDC growth references.

    Subclasses declare which indicators they support, the admissible range of
    the covariate (age or length/height) for each, the grid of their tables
    and whether the WHO tail correction applies. The base class performs
    validation, table lookup, interpolation and the z-score transform.

    Example subclass implementation:
        class WHO2007(GrowthReference):
            name = "who2007"
            grid = Grid.WHOLE
            adjust_tails = True
            covariate_precision = 5

            @property
            def indicators(self) -> Dict[Indicator, IndicatorConfig]:
                return {Indicator.BMI_FOR_AGE: indicator_config(...)}

    Args:
        tables: Optional mapping of table name to ``ReferenceTable``. When
            omitted, tables are loaded from the packaged reference data on
            first use.
    """

    name: ClassVar[str]
    grid: ClassVar[Grid]
    adjust_tails: ClassVar[bool]
    covariate_precision: ClassVar[Optional[int]] = None

    def __init__(self, tables: Optional[Mapping[str, ReferenceTable]] = None) -> None:
        self._tables = tables

    @property
    @abstractmethod
    def indicators(self) -> Dict[Indicator, IndicatorConfig]:
        """Configuration of every indicator this reference supports."""
        pass

    def _table(self, name: str) -> ReferenceTable:
        if self._tables is not None:
            try:
                return self._tables[name]
            except KeyError:
                raise LookupExhaustedError(
                    f"Reference table '{name}' was not provided"
                ) from None
        return get_table(name, self.grid)

    def _config(self, indicator: Any) -> IndicatorConfig:
        try:
            return self.indicators[Indicator(indicator)]
        except (KeyError, ValueError):
            raise OutOfRangeError(
                f"Indicator {getattr(indicator, 'value', indicator)!r} is not "
                f"supported by {self.name}"
            ) from None

    def is_valid_indicator(self, indicator: Any) -> bool:
        """Return True if this reference has a table for ``indicator``."""
        try:
            return Indicator(indicator) in self.indicators
        except ValueError:
            return False

    def is_valid_measurement(self, indicator: Any, covariate: float) -> bool:
        """
        Return True if ``covariate`` lies inside the indicator's window.

        Both bounds are inclusive. Unsupported indicators and NaN or non-numeric
        covariates are never valid.
        """
        if not self.is_valid_indicator(indicator):
            return False
        config = self.indicators[Indicator(indicator)]
        try:
            covariate = float(covariate)
        except (TypeError, ValueError):
            return False
        return config.min <= covariate <= config.max

    def _prepare_covariate(self, config: IndicatorConfig, covariate: float) -> float:
        if self.covariate_precision is not None:
            covariate = round(covariate, self.covariate_precision)
        if config.round_to_whole and not is_whole_number(covariate):
            covariate = float(round(covariate))
        return covariate

    def resolve_lms(self, indicator: Any, covariate: float, sex: Any) -> LMS:
        """
        Find or interpolate the LMS parameters for a covariate.

        Args:
            indicator: Indicator to look up.
            covariate: Age or length/height, in the unit of the reference.
            sex: Sex of the child.

        Returns:
            The tabulated or interpolated LMS parameters.

        Raises:
            OutOfRangeError: If the indicator is unsupported, the sex cannot be
                interpreted or the covariate is outside its window.
            LookupExhaustedError: If no entry or bracketing entries exist.
        """
        config = self._config(indicator)
        try:
            sex = Sex.parse(sex)
        except ValueError as e:
            raise OutOfRangeError(str(e)) from None
        covariate = _as_number(covariate, "Covariate")
        if not self.is_valid_measurement(indicator, covariate):
            raise OutOfRangeError(
                f"{config.table}: covariate {covariate} outside "
                f"[{config.min:g}, {config.max:g}]"
            )
        covariate = self._prepare_covariate(config, covariate)
        table = self._table(config.table)
        record = table.lookup(sex, covariate)
        if record is not None:
            return record.lms
        if config.interpolation is None:
            raise LookupExhaustedError(
                f"{config.table}: no entry for sex {sex.value} at {covariate}"
            )
        return interpolate_lms(table, sex, covariate, config.interpolation)

    def calculate_zscore(
        self, indicator: Any, measurement: float, covariate: float, sex: Any
    ) -> float:
        """
        Calculate the z-score of a measurement against this reference.

        Args:
            indicator: Indicator, e.g. ``Indicator.BMI_FOR_AGE`` or "bmi".
            measurement: Observed value (kg, cm, kg/m² or mm).
            covariate: Age or length/height, in the unit of the reference.
            sex: Sex of the child.

        Returns:
            The z-score, tail-corrected for references that apply it.

        Raises:
            OutOfRangeError: On an unsupported indicator, a negative,
                non-finite or non-numeric measurement, or a covariate
                outside the window.
            InvalidDistributionParameterError: If the table row has S == 0.
            LookupExhaustedError: If the table has a gap at the covariate.
        """
        self._config(indicator)
        measurement = _as_number(measurement, "Measurement")
        if not (math.isfinite(measurement) and measurement >= 0):
            raise OutOfRangeError(f"Measurement must be finite and >= 0, got {measurement}")
        lms = self.resolve_lms(indicator, covariate, sex)
        return calculate_zscore(measurement, *lms, adjust_tails=self.adjust_tails)

    def try_calculate_zscore(
        self,
        indicator: Any,
        measurement: float,
        covariate: float,
        sex: Any,
        default: float = math.nan,
    ) -> ZScoreResult:
        """
        Calculate a z-score without raising on bad input.

        Returns:
            ``ZScoreResult(True, z, None)`` on success. On failure, ``z`` is
            ``default`` unchanged and ``error`` says why.
        """
        try:
            z = self.calculate_zscore(indicator, measurement, covariate, sex)
        except (OutOfRangeError, InvalidDistributionParameterError, LookupExhaustedError) as e:
            kind = next(k for cls, k in _ERROR_KINDS if isinstance(e, cls))
            return ZScoreResult(False, default, kind)
        return ZScoreResult(True, z)

    def calculate_flag(
        self, indicator: Any, measurement: float, covariate: float, sex: Any
    ) -> float:
        """Calculate the NutStat SD flag value for a measurement."""
        lms = self.resolve_lms(indicator, covariate, sex)
        return calculate_flag(measurement, *lms)

    @staticmethod
    def calculate_percentile(z: float) -> float:
        """Convert a z-score into a percentile in [0, 100]."""
        return calculate_percentile(z)
