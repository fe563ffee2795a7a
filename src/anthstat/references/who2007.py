"""
WHO Growth Reference (2007), 5 to 19 years.

Ages are in months and tabulated at whole months; fractional ages are
interpolated between the neighboring months.
"""

from typing import Dict

from anthstat.interpolation import InterpolationMode
from anthstat.keys import Grid
from anthstat.records import Indicator
from anthstat.references.base import GrowthReference, IndicatorConfig, indicator_config

INDICATORS: Dict[Indicator, IndicatorConfig] = {
    Indicator.BMI_FOR_AGE: indicator_config(
        table="who2007_bmi", min=61.0, max=228.0, interpolation=InterpolationMode.ONES
    ),
    Indicator.HEIGHT_FOR_AGE: indicator_config(
        table="who2007_hfa", min=61.0, max=228.0, interpolation=InterpolationMode.ONES
    ),
    # Weight-for-age is only published up to 10 years
    Indicator.WEIGHT_FOR_AGE: indicator_config(
        table="who2007_wfa", min=61.0, max=120.0, interpolation=InterpolationMode.ONES
    ),
}


class WHO2007(GrowthReference):
    """WHO 2007 growth reference; covariate is age in months."""

    name = "who2007"
    grid = Grid.WHOLE
    adjust_tails = True
    covariate_precision = 5

    @property
    def indicators(self) -> Dict[Indicator, IndicatorConfig]:
        return INDICATORS
