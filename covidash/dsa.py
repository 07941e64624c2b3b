"""
DSA utilities
=============

Small, explicit algorithm primitives used by the aggregation engine.

Included:
- Merge Sort (stable, O(n log n)) for ordering records by date
- Union of two sorted key lists (two-pointer technique) for comparison charts
- Top-k via a heap for "most affected countries"
"""

from __future__ import annotations
from typing import Callable, Iterable, List, Tuple, TypeVar
import heapq

T = TypeVar("T")


def merge_sort(arr: List[T], key: Callable[[T], object] = lambda x: x, reverse: bool = False) -> List[T]:
    """Stable merge sort."""
    if len(arr) <= 1:
        return arr[:]
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], key=key, reverse=reverse)
    right = merge_sort(arr[mid:], key=key, reverse=reverse)
    return _merge(left, right, key=key, reverse=reverse)


def _merge(left: List[T], right: List[T], key: Callable[[T], object], reverse: bool) -> List[T]:
    out: List[T] = []
    # i and j are pointers into each sorted list
    i = j = 0
    while i < len(left) and j < len(right):
        a, b = key(left[i]), key(right[j])
        take_left = (a >= b) if reverse else (a <= b)
        if take_left:
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out


def union_sorted(a: List[str], b: List[str]) -> List[str]:
    """Two-pointer union of two ascending lists, without duplicates."""
    i = j = 0
    out: List[str] = []

    def _push(x: str) -> None:
        if not out or out[-1] != x:
            out.append(x)

    while i < len(a) and j < len(b):
        if a[i] == b[j]:
            _push(a[i]); i += 1; j += 1
        elif a[i] < b[j]:
            _push(a[i]); i += 1
        else:
            _push(b[j]); j += 1
    for x in a[i:]:
        _push(x)
    for x in b[j:]:
        _push(x)
    return out


def top_k(items: Iterable[Tuple[str, float]], k: int) -> List[Tuple[str, float]]:
    """Return the k largest (name, value) pairs, largest first.

    heapq.nlargest is stable, so sorting by name first breaks ties by name.
    """
    if k <= 0:
        return []
    return heapq.nlargest(k, sorted(items), key=lambda item: item[1])
