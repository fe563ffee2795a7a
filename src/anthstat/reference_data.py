"""
Loading of the packaged WHO/CDC growth reference tables.

The tables ship as a single compressed NumPy archive,
``anthstat/data/growth_references.npz``, produced by
``scripts/download_data.py``. Each entry is a structured array with fields
``sex`` (1 male, 2 female), ``measurement``, ``L``, ``M`` and ``S``. Tables are
built lazily, once per process, and are immutable afterwards.
"""

from importlib import resources
import functools
import logging
from pathlib import Path
import threading
from typing import Dict, List, Tuple

import numpy as np

from anthstat.config import DATA_PACKAGE, REFERENCE_FILE, reference_data_override
from anthstat.exceptions import ReferenceDataError
from anthstat.keys import Grid
from anthstat.records import LMSRecord, Sex
from anthstat.tables import ReferenceTable

REFERENCE_FIELDS = ("sex", "measurement", "L", "M", "S")
REFERENCE_DTYPE = np.dtype(
    [("sex", "i1"), ("measurement", "f8"), ("L", "f8"), ("M", "f8"), ("S", "f8")]
)

REFERENCE_TABLES = [
    "who2006_bmi",
    "who2006_wfa",
    "who2006_lhfa",
    "who2006_hcfa",
    "who2006_acfa",
    "who2006_ssfa",
    "who2006_tsfa",
    "who2006_wfl",
    "who2006_wfh",
    "who2007_bmi",
    "who2007_hfa",
    "who2007_wfa",
    "cdc2000_bmi",
    "cdc2000_hcfa",
    "cdc2000_lfa",
    "cdc2000_hfa",
    "cdc2000_wfa",
    "cdc2000_wfh",
    "cdc2000_wfl",
]

_tables: Dict[Tuple[str, Grid], ReferenceTable] = {}
_tables_lock = threading.Lock()


def _open_reference_file():
    override = reference_data_override()
    if override is not None:
        return Path(override).open("rb")
    return resources.files(DATA_PACKAGE).joinpath(REFERENCE_FILE).open("rb")


@functools.lru_cache(maxsize=1)
def load_reference_data() -> Dict[str, np.ndarray]:
    """
    Load the WHO/CDC growth reference arrays.

    Reads ``$ANTHSTAT_REFERENCE_DATA`` when set, otherwise the archive
    packaged under ``anthstat.data``. The arrays are checked with
    ``validate_loaded_data_integrity``; problems are logged as warnings and
    the data is still returned, so intact tables stay usable. The result is
    cached per process.

    Returns:
        Dict mapping table names (e.g. "who2007_bmi") to structured arrays.

    Raises:
        ReferenceDataError: If the archive cannot be found.
        ValueError: If the archive cannot be read.
    """
    try:
        with _open_reference_file() as f:
            with np.load(f) as loaded:
                data = {key: loaded[key] for key in loaded.files}
    except FileNotFoundError:
        raise ReferenceDataError(
            "Growth reference data file not found. "
            "Run 'scripts/download_data.py' to generate reference data, or set "
            "ANTHSTAT_REFERENCE_DATA to the path of an existing archive."
        ) from None
    except Exception as e:
        raise ValueError(
            f"Failed to load growth reference data: {e}. "
            "The reference data file may be corrupted or incompatible. "
            "Run 'scripts/download_data.py' to regenerate reference data."
        ) from e
    logging.info(f"Loaded {len(data)} growth reference arrays")
    if not validate_loaded_data_integrity(data):
        logging.warning(
            "Growth reference data failed the integrity check; affected "
            "indicators may raise errors. Run 'scripts/download_data.py' "
            "to regenerate reference data."
        )
    return data


def validate_loaded_data_integrity(data: Dict[str, np.ndarray]) -> bool:
    """
    Validate integrity of loaded reference data.

    Checks for required tables, structured array fields, sex codes and LMS
    sanity. Logs warnings for any issues found but doesn't raise.

    Args:
        data: Loaded reference data dictionary.

    Returns:
        True if data passes all validation checks, False otherwise.
    """
    if not data:
        logging.warning("Loaded reference data is empty")
        return False

    missing = [name for name in REFERENCE_TABLES if name not in data]
    if missing:
        logging.warning(f"Missing expected reference arrays: {missing}")
        return False

    for name in REFERENCE_TABLES:
        array = data[name]
        if getattr(array.dtype, "names", None) != REFERENCE_FIELDS:
            logging.warning(
                f"{name}: unexpected fields {array.dtype.names}, expected {REFERENCE_FIELDS}"
            )
            return False
        if array.size == 0:
            logging.warning(f"{name}: empty array")
            return False
        if not np.all(np.isin(array["sex"], (1, 2))):
            logging.warning(f"{name}: sex codes other than 1 and 2")
            return False
        if np.any(array["measurement"] < 0):
            logging.warning(f"{name}: negative measurements")
            return False
        if np.any(array["M"] <= 0) or np.any(array["S"] <= 0):
            logging.warning(f"{name}: non-positive M or S values")
            return False
    return True


def records_from_array(array: np.ndarray) -> List[LMSRecord]:
    """Convert a reference structured array into ``LMSRecord`` objects."""
    return [
        LMSRecord(
            sex=Sex.parse(int(row["sex"])),
            measurement=float(row["measurement"]),
            L=float(row["L"]),
            M=float(row["M"]),
            S=float(row["S"]),
        )
        for row in array
    ]


def get_table(name: str, grid: Grid) -> ReferenceTable:
    """
    Return the reference table ``name``, building it on first use.

    Args:
        name: Table name, e.g. "cdc2000_bmi".
        grid: Grid on which the table is keyed.

    Raises:
        ReferenceDataError: If the archive or the table is missing.
        ValueError: If the table rows are malformed.
    """
    cache_key = (name, grid)
    table = _tables.get(cache_key)
    if table is not None:
        return table
    with _tables_lock:
        table = _tables.get(cache_key)
        if table is None:
            data = load_reference_data()
            if name not in data:
                raise ReferenceDataError(
                    f"Reference table '{name}' not found in growth reference data. "
                    "Run 'scripts/download_data.py' to regenerate reference data."
                )
            table = ReferenceTable(name, records_from_array(data[name]), grid)
            _tables[cache_key] = table
            logging.debug(f"Built reference table {table!r}")
    return table


def clear_cache() -> None:
    """Drop loaded reference data so the next lookup reloads it."""
    with _tables_lock:
        _tables.clear()
        load_reference_data.cache_clear()
