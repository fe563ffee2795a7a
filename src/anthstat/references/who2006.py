"""
WHO Child Growth Standards (2006), birth to 5 years.

Ages are in days. Age-based indicators are tabulated for every day, so the
age is rounded to a whole day and looked up exactly. Weight-for-length and
weight-for-height are tabulated every 0.1 cm and interpolated in between.
Length-for-age and height-for-age share one table.
"""

from typing import Dict

from anthstat.interpolation import InterpolationMode
from anthstat.keys import Grid
from anthstat.records import Indicator
from anthstat.references.base import GrowthReference, IndicatorConfig, indicator_config

MAX_AGE_DAYS = 1856.0


def _by_age(table: str, min_age: float = 0.0) -> IndicatorConfig:
    return indicator_config(
        table=table, min=min_age, max=MAX_AGE_DAYS, round_to_whole=True
    )


def _by_length(table: str, min_cm: float, max_cm: float) -> IndicatorConfig:
    return indicator_config(
        table=table,
        min=min_cm,
        max=max_cm,
        interpolation=InterpolationMode.TENTHS,
    )


INDICATORS: Dict[Indicator, IndicatorConfig] = {
    Indicator.BMI_FOR_AGE: _by_age("who2006_bmi"),
    Indicator.WEIGHT_FOR_AGE: _by_age("who2006_wfa"),
    Indicator.HEIGHT_FOR_AGE: _by_age("who2006_lhfa"),
    Indicator.LENGTH_FOR_AGE: _by_age("who2006_lhfa"),
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: _by_age("who2006_hcfa"),
    # Circumference and skinfolds start at three months
    Indicator.ARM_CIRCUMFERENCE_FOR_AGE: _by_age("who2006_acfa", 91.0),
    Indicator.SUBSCAPULAR_SKINFOLD_FOR_AGE: _by_age("who2006_ssfa", 91.0),
    Indicator.TRICEPS_SKINFOLD_FOR_AGE: _by_age("who2006_tsfa", 91.0),
    Indicator.WEIGHT_FOR_HEIGHT: _by_length("who2006_wfh", 65.0, 120.0),
    Indicator.WEIGHT_FOR_LENGTH: _by_length("who2006_wfl", 45.0, 110.0),
}


class WHO2006(GrowthReference):
    """WHO 2006 growth standard; covariate is age in days or length/height in cm."""

    name = "who2006"
    grid = Grid.TENTHS
    adjust_tails = True
    covariate_precision = 5

    @property
    def indicators(self) -> Dict[Indicator, IndicatorConfig]:
        return INDICATORS
