"""
Immutable growth reference tables.

A ``ReferenceTable`` holds the LMS records of one (standard, indicator) pair.
It keeps two equivalent views over the same records: a map keyed by
``build_key`` for constant-time exact lookup, and a tuple sorted by
``(sex, measurement)`` for binary search and neighbor queries.
"""

from bisect import bisect_left, bisect_right
from types import MappingProxyType
from typing import Iterable, Iterator, Optional, Tuple

from anthstat.keys import Grid, build_key
from anthstat.records import LMSRecord, Sex, lookup_key


class ReferenceTable:
    """
    Read-only collection of LMS records for one standard and indicator.

    Args:
        name: Table name, e.g. "who2007_bmi".
        records: Rows of the table, in any order.
        grid: Finest increment at which the table is tabulated.

    Raises:
        ValueError: If a record lies off the grid or a ``(sex, measurement)``
            pair appears twice.
    """

    def __init__(self, name: str, records: Iterable[LMSRecord], grid: Grid) -> None:
        self.name = name
        self.grid = grid
        by_key = {}
        for record in records:
            key = build_key(record.sex, record.measurement, grid)
            if key is None:
                raise ValueError(
                    f"{name}: measurement {record.measurement} is not on the "
                    f"{grid.name.lower()} grid"
                )
            if key in by_key:
                raise ValueError(
                    f"{name}: duplicate entry for sex {record.sex.value} "
                    f"at {record.measurement}"
                )
            by_key[key] = record
        self._by_key = MappingProxyType(by_key)
        self._records = tuple(sorted(by_key.values()))
        self._keys = tuple(record.key for record in self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LMSRecord]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"ReferenceTable(name={self.name!r}, records={len(self)}, grid={self.grid.name})"

    def lookup(self, sex: Sex, measurement: float) -> Optional[LMSRecord]:
        """Return the exact record for ``(sex, measurement)`` or None."""
        key = build_key(sex, measurement, self.grid)
        if key is None:
            return None
        return self._by_key.get(key)

    def search(self, sex: Sex, measurement: float) -> Optional[LMSRecord]:
        """Binary-search the sorted view for an exact record."""
        target = lookup_key(sex, measurement)
        index = bisect_left(self._keys, target)
        if index < len(self._keys) and self._keys[index] == target:
            return self._records[index]
        return None

    def neighbors(
        self, sex: Sex, measurement: float
    ) -> Optional[Tuple[LMSRecord, LMSRecord]]:
        """
        Find the records bracketing ``measurement`` for ``sex``.

        Returns:
            ``(lower, upper)`` where ``lower`` is the last record with
            measurement <= the query and ``upper`` the first record above
            it, or None when either side is missing.
        """
        index = bisect_right(self._keys, lookup_key(sex, measurement))
        if index == 0 or index == len(self._records):
            return None
        lower = self._records[index - 1]
        upper = self._records[index]
        if lower.sex is not sex or upper.sex is not sex:
            return None
        return lower, upper

    def span(self, sex: Sex) -> Optional[Tuple[float, float]]:
        """Return the smallest and largest tabulated measurement for ``sex``."""
        measurements = [r.measurement for r in self._records if r.sex is sex]
        if not measurements:
            return None
        return measurements[0], measurements[-1]
