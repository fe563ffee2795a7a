"""
CDC 2000 Growth Charts.

Ages are in months and lengths/heights in cm. The tables are tabulated at
half-points (e.g. 24.5, 25.5, ...) with a whole-number first row, so the
spacing switches between 0.5 and 1.0; missing entries are interpolated with
the adaptive neighbor search. CDC does not use the WHO tail correction.
"""

from typing import Dict

from anthstat.interpolation import InterpolationMode
from anthstat.keys import Grid
from anthstat.records import Indicator
from anthstat.references.base import GrowthReference, IndicatorConfig, indicator_config


def _adaptive(table: str, min_value: float, max_value: float) -> IndicatorConfig:
    return indicator_config(
        table=table,
        min=min_value,
        max=max_value,
        interpolation=InterpolationMode.ADAPTIVE,
    )


INDICATORS: Dict[Indicator, IndicatorConfig] = {
    Indicator.BMI_FOR_AGE: _adaptive("cdc2000_bmi", 24.0, 240.5),
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: _adaptive("cdc2000_hcfa", 0.0, 36.0),
    Indicator.LENGTH_FOR_AGE: _adaptive("cdc2000_lfa", 0.0, 35.5),
    Indicator.HEIGHT_FOR_AGE: _adaptive("cdc2000_hfa", 24.0, 240.0),
    Indicator.WEIGHT_FOR_AGE: _adaptive("cdc2000_wfa", 0.0, 240.0),
    Indicator.WEIGHT_FOR_HEIGHT: _adaptive("cdc2000_wfh", 77.0, 121.5),
    Indicator.WEIGHT_FOR_LENGTH: _adaptive("cdc2000_wfl", 45.0, 103.5),
}


class CDC2000(GrowthReference):
    """CDC 2000 growth charts; covariate is age in months or length/height in cm."""

    name = "cdc2000"
    grid = Grid.HALVES
    adjust_tails = False

    @property
    def indicators(self) -> Dict[Indicator, IndicatorConfig]:
        return INDICATORS
