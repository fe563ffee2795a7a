"""
Configuration constants for anthstat.

Numeric guards, rounding precisions and the location of the packaged growth
reference data. The reference data file can be overridden with the
``ANTHSTAT_REFERENCE_DATA`` environment variable, which is useful when the
tables were downloaded to a location outside the installed package.
"""

import os
from typing import Optional

# Reference data location
DATA_PACKAGE = "anthstat.data"
REFERENCE_FILE = "growth_references.npz"
REFERENCE_DATA_ENV = "ANTHSTAT_REFERENCE_DATA"

# Guards against malformed table rows
MAX_ABS_L = 130.0
MAX_ABS_M = 200.0
MAX_ABS_S = 100.0

# Box-Cox power below which the log form of the LMS transform is used
L_ZERO_THRESHOLD = 1e-6

# WHO tail correction cut-off
TAIL_CUTOFF = 3.0

# Decimal places kept when computing interpolation distances
INTERPOLATION_PRECISION = 5

# Sex codes used by the WHO and CDC source files
SEX_CODES = {1: "M", 2: "F"}


def reference_data_override() -> Optional[str]:
    """Return the reference data path set in the environment, if any."""
    path = os.environ.get(REFERENCE_DATA_ENV, "").strip()
    return path or None
