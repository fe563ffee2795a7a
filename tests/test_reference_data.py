"""
Tests for anthstat.reference_data: loading, validation and caching of tables.
"""

import logging

import numpy as np
import pytest

from anthstat.config import REFERENCE_DATA_ENV
from anthstat.exceptions import ReferenceDataError
from anthstat.keys import Grid
from anthstat.records import Sex
from anthstat.reference_data import (
    REFERENCE_DTYPE,
    REFERENCE_TABLES,
    clear_cache,
    get_table,
    load_reference_data,
    records_from_array,
    validate_loaded_data_integrity,
)
from anthstat.zscores import calculate_zscore


def make_array(rows) -> np.ndarray:
    """Structured reference array from (sex code, measurement, L, M, S) rows."""
    return np.array(rows, dtype=REFERENCE_DTYPE)


@pytest.fixture
def who2007_bmi_array() -> np.ndarray:
    return make_array(
        [
            (1, 61.0, -0.7387, 15.2641, 0.0839),
            (2, 61.0, -0.8886, 15.2441, 0.09692),
            (2, 62.0, -0.8900, 15.2600, 0.09700),
        ]
    )


@pytest.fixture
def archive(tmp_path, monkeypatch, who2007_bmi_array):
    """Write a small archive and point the loader at it."""
    path = tmp_path / "growth_references.npz"
    np.savez_compressed(path, who2007_bmi=who2007_bmi_array)
    monkeypatch.setenv(REFERENCE_DATA_ENV, str(path))
    clear_cache()
    yield path
    clear_cache()


class TestLoadReferenceData:
    """Test locating and reading the archive."""

    def test_tc001_environment_override(self, archive) -> None:
        """ANTHSTAT_REFERENCE_DATA selects the archive."""
        data = load_reference_data()
        assert list(data) == ["who2007_bmi"]
        assert data["who2007_bmi"].dtype == REFERENCE_DTYPE

    def test_tc002_result_is_cached(self, archive) -> None:
        """The archive is read once per process."""
        assert load_reference_data() is load_reference_data()

    def test_tc003_missing_file(self, tmp_path, monkeypatch) -> None:
        """A missing archive raises ReferenceDataError with a hint."""
        monkeypatch.setenv(REFERENCE_DATA_ENV, str(tmp_path / "nope.npz"))
        clear_cache()
        try:
            with pytest.raises(ReferenceDataError, match="download_data.py") as excinfo:
                load_reference_data()
            assert isinstance(excinfo.value, FileNotFoundError)
        finally:
            clear_cache()

    def test_tc004_corrupt_file(self, tmp_path, monkeypatch) -> None:
        """An unreadable archive raises ValueError."""
        path = tmp_path / "broken.npz"
        path.write_bytes(b"not an archive")
        monkeypatch.setenv(REFERENCE_DATA_ENV, str(path))
        clear_cache()
        try:
            with pytest.raises(ValueError, match="Failed to load growth reference data"):
                load_reference_data()
        finally:
            clear_cache()

    def test_tc005_incomplete_archive_warns(self, archive, caplog) -> None:
        """Loading checks integrity and warns, but keeps the usable tables."""
        caplog.set_level(logging.WARNING)
        data = load_reference_data()
        messages = [str(record.message) for record in caplog.records]
        assert any("Missing expected reference arrays" in m for m in messages)
        assert any("failed the integrity check" in m for m in messages)
        assert "who2007_bmi" in data

    def test_tc006_complete_archive_is_silent(self, tmp_path, monkeypatch, who2007_bmi_array, caplog) -> None:
        """An archive with every table loads without warnings."""
        path = tmp_path / "complete.npz"
        np.savez_compressed(path, **{name: who2007_bmi_array for name in REFERENCE_TABLES})
        monkeypatch.setenv(REFERENCE_DATA_ENV, str(path))
        clear_cache()
        caplog.set_level(logging.WARNING)
        try:
            data = load_reference_data()
        finally:
            clear_cache()
        assert set(data) == set(REFERENCE_TABLES)
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_tc007_bad_rows_warn_on_load(self, tmp_path, monkeypatch, who2007_bmi_array, caplog) -> None:
        """Rows with a non-positive median are reported when loading."""
        broken = who2007_bmi_array.copy()
        broken["M"][0] = 0.0
        arrays = {name: who2007_bmi_array for name in REFERENCE_TABLES}
        arrays["cdc2000_bmi"] = broken
        path = tmp_path / "broken_rows.npz"
        np.savez_compressed(path, **arrays)
        monkeypatch.setenv(REFERENCE_DATA_ENV, str(path))
        clear_cache()
        caplog.set_level(logging.WARNING)
        try:
            load_reference_data()
        finally:
            clear_cache()
        messages = [str(record.message) for record in caplog.records]
        assert any("cdc2000_bmi: non-positive M or S values" in m for m in messages)


class TestGetTable:
    """Test building tables from the archive."""

    def test_tc001_builds_table(self, archive) -> None:
        """Tables are built from the structured arrays."""
        table = get_table("who2007_bmi", Grid.WHOLE)
        assert len(table) == 3
        assert table.lookup(Sex.FEMALE, 62.0).M == 15.26
        assert get_table("who2007_bmi", Grid.WHOLE) is table

    def test_tc002_missing_table(self, archive) -> None:
        """A table absent from the archive raises ReferenceDataError."""
        with pytest.raises(ReferenceDataError, match="cdc2000_bmi"):
            get_table("cdc2000_bmi", Grid.HALVES)

    def test_tc003_facade_uses_archive(self, archive) -> None:
        """The public API scores against the loaded archive."""
        z = calculate_zscore("who2007", "bmi", 15.25, 61, "F")
        assert abs(z - 0.00399188592946362) < 1e-7

    def test_tc004_clear_cache_reloads(self, archive, tmp_path, monkeypatch, who2007_bmi_array) -> None:
        """After clear_cache the next lookup reads the archive again."""
        first = get_table("who2007_bmi", Grid.WHOLE)
        other = tmp_path / "other.npz"
        np.savez_compressed(other, who2007_bmi=who2007_bmi_array[1:])
        monkeypatch.setenv(REFERENCE_DATA_ENV, str(other))
        clear_cache()
        second = get_table("who2007_bmi", Grid.WHOLE)
        assert second is not first
        assert len(second) == 2


class TestValidateIntegrity:
    """Test the integrity check of loaded data."""

    @pytest.fixture
    def complete(self, who2007_bmi_array):
        return {name: who2007_bmi_array.copy() for name in REFERENCE_TABLES}

    def test_tc001_complete_data(self, complete) -> None:
        """A complete archive passes."""
        assert validate_loaded_data_integrity(complete)

    def test_tc002_empty(self, caplog) -> None:
        """Empty data fails with a warning."""
        caplog.set_level(logging.WARNING)
        assert not validate_loaded_data_integrity({})
        assert any("empty" in str(record.message) for record in caplog.records)

    def test_tc003_missing_table(self, complete, caplog) -> None:
        """A missing table is reported."""
        caplog.set_level(logging.WARNING)
        del complete["cdc2000_wfl"]
        assert not validate_loaded_data_integrity(complete)
        assert any("cdc2000_wfl" in str(record.message) for record in caplog.records)

    def test_tc004_bad_sex_code(self, complete) -> None:
        """Sex codes other than 1 and 2 fail."""
        complete["who2006_bmi"]["sex"][0] = 3
        assert not validate_loaded_data_integrity(complete)

    def test_tc005_non_positive_median(self, complete) -> None:
        """M or S at or below zero fails."""
        complete["cdc2000_hfa"]["M"][0] = 0.0
        assert not validate_loaded_data_integrity(complete)

    def test_tc006_wrong_fields(self, complete) -> None:
        """Arrays without the reference fields fail."""
        complete["who2006_wfa"] = np.zeros(3)
        assert not validate_loaded_data_integrity(complete)


def test_tc001_records_from_array(who2007_bmi_array) -> None:
    """Rows become LMSRecords with parsed sex codes."""
    records = records_from_array(who2007_bmi_array)
    assert [r.sex for r in records] == [Sex.MALE, Sex.FEMALE, Sex.FEMALE]
    assert records[1].lms == (-0.8886, 15.2441, 0.09692)
