"""
Tests for anthstat.records: Sex parsing, indicators and LMS records.
"""

import numpy as np
import pytest

from anthstat.exceptions import InvalidDistributionParameterError
from anthstat.records import LMS, Indicator, LMSRecord, LookupKey, Sex, lookup_key


class TestSex:
    """Test Sex parsing and ordering."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("M", Sex.MALE),
            ("m", Sex.MALE),
            ("male", Sex.MALE),
            (" Male ", Sex.MALE),
            (1, Sex.MALE),
            (1.0, Sex.MALE),
            (np.int8(1), Sex.MALE),
            ("F", Sex.FEMALE),
            ("female", Sex.FEMALE),
            (2, Sex.FEMALE),
            (np.int64(2), Sex.FEMALE),
            (Sex.FEMALE, Sex.FEMALE),
        ],
    )
    def test_tc001_parse_accepted_values(self, value, expected) -> None:
        """Letters, words and numeric source codes are accepted."""
        assert Sex.parse(value) is expected

    @pytest.mark.parametrize("value", ["X", "", 0, 3, 1.5, None, True])
    def test_tc002_parse_rejects_other_values(self, value) -> None:
        """Anything else raises ValueError."""
        with pytest.raises(ValueError, match="Sex values must be 'M' or 'F'"):
            Sex.parse(value)

    def test_tc003_males_rank_before_females(self) -> None:
        """Male rank is lower than female rank."""
        assert Sex.MALE.rank < Sex.FEMALE.rank


class TestIndicator:
    """Test the Indicator enum."""

    def test_tc001_short_codes(self) -> None:
        """Indicators are addressable by their short code."""
        assert Indicator("bmi") is Indicator.BMI_FOR_AGE
        assert Indicator("wfl") is Indicator.WEIGHT_FOR_LENGTH
        assert Indicator("tsfa") is Indicator.TRICEPS_SKINFOLD_FOR_AGE
        assert len(Indicator) == 10

    def test_tc002_unknown_code(self) -> None:
        """Unknown codes raise ValueError."""
        with pytest.raises(ValueError):
            Indicator("bogus")


class TestLMSRecord:
    """Test construction, identity and ordering of LMS records."""

    def test_tc001_valid_record(self) -> None:
        """A valid record exposes its key and LMS triple."""
        record = LMSRecord(Sex.FEMALE, 61.0, -0.8886, 15.2441, 0.09692)
        assert record.key == LookupKey(1, 61.0)
        assert record.lms == LMS(-0.8886, 15.2441, 0.09692)

    def test_tc002_sex_is_parsed(self) -> None:
        """Sex given as a code is converted to Sex."""
        record = LMSRecord(2, 61.0, 1.0, 15.0, 0.1)
        assert record.sex is Sex.FEMALE

    @pytest.mark.parametrize(
        "measurement,L,M,S",
        [
            (50, 131, 1, 1),
            (50, 1, 201, 1),
            (50, 1, 1, 101),
            (50, -131, 1, 1),
            (50, 1, -201, 1),
            (50, 1, 1, -101),
            (-1, 1, 1, 1),
        ],
    )
    def test_tc003_out_of_bounds_rejected(self, measurement, L, M, S) -> None:
        """Negative measurements and L/M/S beyond the sanity bounds are rejected."""
        with pytest.raises(ValueError):
            LMSRecord(Sex.MALE, measurement, L, M, S)

    def test_tc004_zero_s_rejected(self) -> None:
        """S == 0 is an invalid distribution parameter."""
        with pytest.raises(InvalidDistributionParameterError):
            LMSRecord(Sex.MALE, 50, 1, 18.0, 0)

    def test_tc005_equality_ignores_payload(self) -> None:
        """Records with the same sex and measurement are equal."""
        a = LMSRecord(Sex.MALE, 24.0, 1.0, 16.0, 0.1)
        b = LMSRecord(Sex.MALE, 24.0, -2.0, 17.0, 0.2)
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_tc006_ordering(self) -> None:
        """Records sort by sex (male first), then measurement."""
        records = [
            LMSRecord(Sex.FEMALE, 1.0, 1.0, 16.0, 0.1),
            LMSRecord(Sex.MALE, 2.0, 1.0, 16.0, 0.1),
            LMSRecord(Sex.MALE, 1.0, 1.0, 16.0, 0.1),
            LMSRecord(Sex.FEMALE, 0.5, 1.0, 16.0, 0.1),
        ]
        ordered = sorted(records)
        assert [r.key for r in ordered] == [(0, 1.0), (0, 2.0), (1, 0.5), (1, 1.0)]
        assert ordered[0] < ordered[1] <= ordered[2]

    def test_tc007_records_are_immutable(self) -> None:
        """Records cannot be mutated after construction."""
        record = LMSRecord(Sex.MALE, 24.0, 1.0, 16.0, 0.1)
        with pytest.raises(AttributeError):
            record.M = 17.0  # type: ignore[misc]

    def test_tc008_lookup_key(self) -> None:
        """lookup_key orders by sex rank then measurement."""
        assert lookup_key(Sex.MALE, 100.0) < lookup_key(Sex.FEMALE, 0.0)
