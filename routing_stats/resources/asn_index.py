"""
Narrowest-range lookup over AS number space

Ranges are painted onto a list of disjoint segments from the widest to the
narrowest, so after building every segment carries the value of the
narrowest range that contains it. Lookups are a single ``bisect``.
"""

from bisect import bisect_right
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

from routing_stats.resources.ip import AsnRange
from routing_stats.utils.error_handling import IndexBuildFailure

V = TypeVar('V')


class AsnRangeIndex(Generic[V]):
    """Map AS number ranges to values; the narrowest containing range wins"""

    def __init__(self, sort_key: Optional[Callable[[V], object]] = None):
        self._sort_key = sort_key
        self._pending: List[Tuple[AsnRange, V]] = []
        self._starts: List[int] = []
        self._ends: List[int] = []
        self._values: List[V] = []
        self._frozen = False

    def insert(self, asn_range: AsnRange, value: V):
        if self._frozen:
            raise IndexBuildFailure("Cannot insert into a frozen ASN index")
        self._pending.append((asn_range, value))

    def freeze(self) -> 'AsnRangeIndex[V]':
        if self._frozen:
            return self

        def order(entry):
            asn_range, value = entry
            tie = self._sort_key(value) if self._sort_key is not None else 0
            return (-asn_range.width, asn_range.first, tie)

        for asn_range, value in sorted(self._pending, key=order):
            self._paint(asn_range.first, asn_range.last, value)

        self._pending = []
        self._frozen = True
        return self

    def _paint(self, first: int, last: int, value: V):
        starts, ends, values = self._starts, self._ends, self._values

        i = bisect_right(starts, first) - 1
        if i < 0 or ends[i] < first:
            i += 1

        new_starts, new_ends, new_values = [], [], []
        j = i
        while j < len(starts) and starts[j] <= last:
            if starts[j] < first:
                new_starts.append(starts[j])
                new_ends.append(first - 1)
                new_values.append(values[j])
            j += 1

        new_starts.append(first)
        new_ends.append(last)
        new_values.append(value)

        if j > i and ends[j - 1] > last:
            new_starts.append(last + 1)
            new_ends.append(ends[j - 1])
            new_values.append(values[j - 1])

        starts[i:j] = new_starts
        ends[i:j] = new_ends
        values[i:j] = new_values

    def lookup(self, asn: int) -> Optional[V]:
        if not self._frozen:
            raise IndexBuildFailure("ASN index must be frozen before it is queried")
        i = bisect_right(self._starts, asn) - 1
        if i >= 0 and self._ends[i] >= asn:
            return self._values[i]
        return None

    def segments(self) -> List[Tuple[int, int, V]]:
        """The painted (first, last, value) segments in ASN order"""
        return list(zip(self._starts, self._ends, self._values))

    def __len__(self):
        return len(self._starts)
