"""
anthstat: anthropometric z-scores and percentiles.

Scores child growth measurements against the WHO 2006 Child Growth
Standards, the WHO 2007 Growth Reference and the CDC 2000 Growth Charts
using the LMS method.
"""

from anthstat.batch import add_zscores, calculate_percentiles, calculate_zscores
from anthstat.exceptions import (
    AnthStatError,
    InvalidDistributionParameterError,
    LookupExhaustedError,
    OutOfRangeError,
    ReferenceDataError,
)
from anthstat.records import Indicator, LMSRecord, Sex
from anthstat.references import ErrorKind, GrowthStandard, ZScoreResult
from anthstat.zscores import (
    calculate_percentile,
    calculate_zscore,
    get_reference,
    is_valid_indicator,
    is_valid_measurement,
    try_calculate_zscore,
)

__version__ = "0.1.0"

__all__ = [
    "AnthStatError",
    "ErrorKind",
    "GrowthStandard",
    "Indicator",
    "InvalidDistributionParameterError",
    "LMSRecord",
    "LookupExhaustedError",
    "OutOfRangeError",
    "ReferenceDataError",
    "Sex",
    "ZScoreResult",
    "add_zscores",
    "calculate_percentile",
    "calculate_percentiles",
    "calculate_zscore",
    "calculate_zscores",
    "get_reference",
    "is_valid_indicator",
    "is_valid_measurement",
    "try_calculate_zscore",
]
