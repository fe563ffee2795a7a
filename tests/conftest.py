from typing import Iterable, Tuple
from unittest.mock import patch

import pytest

from anthstat.exceptions import ReferenceDataError
from anthstat.keys import Grid
from anthstat.records import LMSRecord, Sex
from anthstat.reference_data import load_reference_data
from anthstat.tables import ReferenceTable

Row = Tuple[str, float, float, float, float]

# Rows copied from the published WHO and CDC tables
WHO2006_BMI_ROWS = [
    ("F", 0.0, -0.0631, 13.3363, 0.09272),
]
WHO2006_HCFA_ROWS = [
    ("M", 0.0, 1.0, 34.4618, 0.03686),
    ("F", 0.0, 1.0, 33.8787, 0.03496),
    ("F", 1856.0, 1.0, 49.9652, 0.02848),
]
WHO2006_LHFA_ROWS = [
    ("M", 0.0, 1.0, 49.8842, 0.03795),
    ("M", 1856.0, 1.0, 110.4969, 0.04226),
    ("F", 0.0, 1.0, 49.1477, 0.0379),
    ("F", 1856.0, 1.0, 109.9352, 0.04358),
]
WHO2006_ACFA_ROWS = [
    ("M", 1856.0, -0.405, 16.5506, 0.08652),
    ("F", 91.0, -0.1733, 13.0245, 0.08262),
]
WHO2007_BMI_ROWS = [
    ("F", 61.0, -0.8886, 15.2441, 0.09692),
    ("M", 228.0, -0.8419, 22.1883, 0.12948),
]
CDC2000_BMI_ROWS = [
    ("F", 24.0, -0.98660853, 16.42339664, 0.085451785),
    ("F", 24.5, -1.024496827, 16.38804056, 0.085025838),
]


def make_table(name: str, rows: Iterable[Row], grid: Grid) -> ReferenceTable:
    """Build a ReferenceTable from (sex, measurement, L, M, S) tuples."""
    return ReferenceTable(
        name,
        [LMSRecord(Sex.parse(sex), m, L, M, S) for sex, m, L, M, S in rows],
        grid,
    )


@pytest.fixture
def who2006_tables():
    """Published WHO 2006 rows keyed by table name."""
    return {
        "who2006_bmi": make_table("who2006_bmi", WHO2006_BMI_ROWS, Grid.TENTHS),
        "who2006_hcfa": make_table("who2006_hcfa", WHO2006_HCFA_ROWS, Grid.TENTHS),
        "who2006_lhfa": make_table("who2006_lhfa", WHO2006_LHFA_ROWS, Grid.TENTHS),
        "who2006_acfa": make_table("who2006_acfa", WHO2006_ACFA_ROWS, Grid.TENTHS),
    }


@pytest.fixture
def who2007_tables():
    """Published WHO 2007 BMI rows plus a synthetic neighbor month."""
    rows = WHO2007_BMI_ROWS + [("F", 62.0, -0.8900, 15.2600, 0.09700)]
    return {"who2007_bmi": make_table("who2007_bmi", rows, Grid.WHOLE)}


@pytest.fixture
def cdc2000_tables():
    """Published CDC BMI rows followed by synthetic half-month rows."""
    rows = CDC2000_BMI_ROWS + [
        ("F", 25.5, -1.0, 16.36, 0.0856),
        ("F", 26.5, -1.0, 16.32, 0.0857),
    ]
    return {"cdc2000_bmi": make_table("cdc2000_bmi", rows, Grid.HALVES)}


@pytest.fixture
def synthetic_tables(who2006_tables, who2007_tables, cdc2000_tables):
    """Serve the fixture tables in place of the packaged reference data."""
    tables = {**who2006_tables, **who2007_tables, **cdc2000_tables}
    with patch(
        "anthstat.references.base.get_table",
        side_effect=lambda name, grid: tables[name],
    ) as mock_get_table:
        yield mock_get_table


@pytest.fixture(scope="session")
def published_data():
    """
    The downloaded WHO/CDC reference archive.

    Tests depending on it are skipped until scripts/download_data.py has been
    run (or ANTHSTAT_REFERENCE_DATA points at an archive).
    """
    try:
        return load_reference_data()
    except (ReferenceDataError, ValueError) as e:
        pytest.skip(f"Growth reference data not available: {e}")
