"""
Per-country validation statistics

CountStat buckets are plain counters, so merging two CountryStats is
associative and commutative and the result of a chunked parallel
aggregation never depends on how the input was partitioned or ordered.
"""

from dataclasses import dataclass, fields
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

from routing_stats.models import ValidatedAnnouncement, ValidationState, VrpVisibility
from routing_stats.resources.index import ResourceIndex
from routing_stats.utils.parallel import parallel_fold

ALL_COUNTRIES = "all"


def _percentage(part: int, whole: int) -> Optional[float]:
    if whole == 0:
        return None
    return round(part * 100.0 / whole, 2)


@dataclass
class CountStat:
    """Validation and visibility counters for one country"""
    valid: int = 0
    invalid_asn: int = 0
    invalid_length: int = 0
    not_found: int = 0
    vrps_seen: int = 0
    vrps_unseen: int = 0

    def add_ann(self, state: ValidationState):
        if state is ValidationState.VALID:
            self.valid += 1
        elif state is ValidationState.INVALID_ASN:
            self.invalid_asn += 1
        elif state is ValidationState.INVALID_LENGTH:
            self.invalid_length += 1
        else:
            self.not_found += 1

    def add_visibility(self, seen: bool):
        if seen:
            self.vrps_seen += 1
        else:
            self.vrps_unseen += 1

    def merge(self, other: 'CountStat') -> 'CountStat':
        return CountStat(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    @property
    def total(self) -> int:
        return self.valid + self.invalid_asn + self.invalid_length + self.not_found

    @property
    def covered(self) -> int:
        return self.valid + self.invalid_asn + self.invalid_length

    @property
    def adoption(self) -> Optional[float]:
        """Share of announcements covered by at least one VRP"""
        return _percentage(self.covered, self.total)

    @property
    def valid_share(self) -> Optional[float]:
        return _percentage(self.valid, self.total)

    @property
    def quality(self) -> Optional[float]:
        """Share of covered announcements that are valid"""
        return _percentage(self.valid, self.covered)

    @property
    def seen_share(self) -> Optional[float]:
        return _percentage(self.vrps_seen, self.vrps_seen + self.vrps_unseen)

    def to_dict(self) -> dict:
        return {
            'valid': self.valid,
            'invalid_asn': self.invalid_asn,
            'invalid_length': self.invalid_length,
            'not_found': self.not_found,
            'total': self.total,
            'vrps_seen': self.vrps_seen,
            'vrps_unseen': self.vrps_unseen,
            'percentages': {
                'adoption': self.adoption,
                'valid': self.valid_share,
                'quality': self.quality,
                'seen': self.seen_share,
            },
        }


class CountryStats:
    """Mapping of country code to CountStat, always holding the 'all' bucket"""

    def __init__(self, stats: Optional[Dict[str, CountStat]] = None):
        self._stats: Dict[str, CountStat] = dict(stats or {})
        self._stats.setdefault(ALL_COUNTRIES, CountStat())

    def _bucket(self, country: str) -> CountStat:
        bucket = self._stats.get(country)
        if bucket is None:
            bucket = self._stats[country] = CountStat()
        return bucket

    def add_ann(self, validated: ValidatedAnnouncement, country: str):
        self._bucket(country).add_ann(validated.state)
        self._stats[ALL_COUNTRIES].add_ann(validated.state)

    def add_visibility(self, visibility: VrpVisibility, country: str):
        self._bucket(country).add_visibility(visibility.seen)
        self._stats[ALL_COUNTRIES].add_visibility(visibility.seen)

    def merge(self, other: 'CountryStats') -> 'CountryStats':
        """Return a new CountryStats holding the sum of both"""
        merged = {country: CountStat().merge(stat) for country, stat in self._stats.items()}
        for country, stat in other._stats.items():
            if country in merged:
                merged[country] = merged[country].merge(stat)
            else:
                merged[country] = CountStat().merge(stat)
        return CountryStats(merged)

    @property
    def overall(self) -> CountStat:
        return self._stats[ALL_COUNTRIES]

    def get(self, country: str) -> Optional[CountStat]:
        return self._stats.get(country)

    def countries(self) -> Iterator[Tuple[str, CountStat]]:
        """Per-country buckets sorted by country code, excluding 'all'"""
        for country in sorted(self._stats):
            if country != ALL_COUNTRIES:
                yield country, self._stats[country]

    def __eq__(self, other):
        if not isinstance(other, CountryStats):
            return NotImplemented
        return self._stats == other._stats

    def __len__(self):
        return len(self._stats)

    def to_dict(self) -> dict:
        result = {ALL_COUNTRIES: self.overall.to_dict()}
        for country, stat in self.countries():
            result[country] = stat.to_dict()
        return result


def aggregate(validated: Iterable[ValidatedAnnouncement], index: ResourceIndex) -> CountryStats:
    """Fold classified announcements into per-country buckets"""
    stats = CountryStats()
    for item in validated:
        stats.add_ann(item, index.country_of(item.prefix))
    return stats


def aggregate_visibility(visibility: Iterable[VrpVisibility], index: ResourceIndex,
                         stats: Optional[CountryStats] = None) -> CountryStats:
    """Fold VRP visibility into per-country buckets, keyed by the VRP prefix's country"""
    stats = stats if stats is not None else CountryStats()
    for item in visibility:
        stats.add_visibility(item, index.country_of(item.vrp.prefix))
    return stats


def aggregate_parallel(validated: Sequence[ValidatedAnnouncement], index: ResourceIndex,
                       max_workers: int = 4, chunk_size: int = 50000) -> CountryStats:
    """Aggregate chunks concurrently and merge the partial CountryStats"""
    return parallel_fold(
        validated,
        lambda chunk: aggregate(chunk, index),
        CountryStats.merge,
        CountryStats(),
        max_workers=max_workers,
        chunk_size=chunk_size,
    )
