"""
Indices (precomputed lookup tables)
===================================

The dataset is built once and queried on every selection change, so we
precompute a per-location index:

- `by_location["India"]` gives the positions of India's records, sorted by date.
- `dates_by_location["India"]` gives the matching sorted dates.

Why sorted lists?
- "All records at or before date d" becomes one binary search (bisect)
  instead of a scan over the whole dataset.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Dict, List
from bisect import bisect_left, bisect_right
from .models import Record, DuplicateRecordError
from .dsa import merge_sort


@dataclass
class LocationIndex:
    """Container of precomputed per-location lookups."""
    by_location: Dict[str, List[int]]
    dates_by_location: Dict[str, List[date]]
    locations: List[str]


def build_index(records: List[Record]) -> LocationIndex:
    """Build the per-location index.

    Raises:
        DuplicateRecordError: if a location has two records on one date.
    """
    by_location: Dict[str, List[int]] = {}
    for i, r in enumerate(records):
        by_location.setdefault(r.location, []).append(i)

    dates_by_location: Dict[str, List[date]] = {}
    for loc, ids in by_location.items():
        ids = merge_sort(ids, key=lambda i: records[i].date)
        by_location[loc] = ids
        dates = [records[i].date for i in ids]
        for prev, cur in zip(dates, dates[1:]):
            if prev == cur:
                raise DuplicateRecordError(f"Duplicate record for {loc!r} on {cur.isoformat()}")
        dates_by_location[loc] = dates

    return LocationIndex(
        by_location=by_location,
        dates_by_location=dates_by_location,
        locations=sorted(by_location.keys()),
    )


def ids_up_to(idx: LocationIndex, location: str, d: date) -> List[int]:
    """Return record positions of `location` with date <= d (ascending)."""
    ids = idx.by_location.get(location, [])
    hi = bisect_right(idx.dates_by_location.get(location, []), d)
    return ids[:hi]


def id_on(idx: LocationIndex, location: str, d: date) -> int:
    """Return the record position of `location` on exactly `d`, or -1."""
    dates = idx.dates_by_location.get(location, [])
    i = bisect_left(dates, d)
    if i < len(dates) and dates[i] == d:
        return idx.by_location[location][i]
    return -1
