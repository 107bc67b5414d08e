"""
Resource Index

Immutable lookup structure over one dataset's VRPs and registry
delegations. Built once with ResourceIndexBuilder; after build() the index
is only read, so it can be shared between threads without locking.
"""

import logging
import time
from bisect import bisect_left, bisect_right
from dataclasses import asdict, dataclass
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Union

from routing_stats.models import (
    AsnDelegation, IpDelegation, UNKNOWN_COUNTRY, VRP, normalize_country
)
from routing_stats.resources.asn_index import AsnRangeIndex
from routing_stats.resources.ip import AsnRange, Prefix
from routing_stats.resources.prefix_table import PrefixTable
from routing_stats.utils.error_handling import IndexBuildFailure, MalformedPrefix


@dataclass
class BuildStats:
    """Counters collected while building a ResourceIndex"""
    vrps_accepted: int = 0
    vrps_skipped: int = 0
    vrps_duplicate: int = 0
    ip_delegations_accepted: int = 0
    ip_delegations_skipped: int = 0
    delegation_prefixes: int = 0
    asn_delegations_accepted: int = 0
    asn_delegations_skipped: int = 0
    build_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class ResourceIndex:
    """Read-only view over VRPs and delegations of one dataset"""

    def __init__(self, vrps: PrefixTable, ip_delegations: PrefixTable,
                 asn_delegations: AsnRangeIndex, stats: BuildStats):
        self._vrps = vrps
        self._ip_delegations = ip_delegations
        self._asn_delegations = asn_delegations
        self.stats = stats

        self._by_asn: List[VRP] = sorted(vrps.values(),
                                         key=lambda vrp: (vrp.asn, vrp.prefix, vrp.sort_key()))
        self._asn_keys = [vrp.asn for vrp in self._by_asn]

    def most_specific_covering(self, prefix: Prefix) -> Iterator[VRP]:
        """VRPs on prefix or any less specific prefix, most specific first"""
        return self._vrps.covering(prefix)

    def vrps_covered_by(self, prefix: Prefix) -> Iterator[VRP]:
        """VRPs on prefix or any more specific prefix"""
        return self._vrps.covered_by(prefix)

    def all_vrps(self) -> Iterator[VRP]:
        """Every VRP ordered by prefix, then ASN and max length"""
        return self._vrps.values()

    def vrps_for_asns(self, asn_range: AsnRange) -> List[VRP]:
        """VRPs whose ASN lies in asn_range, ordered by ASN, then prefix"""
        lo = bisect_left(self._asn_keys, asn_range.first)
        hi = bisect_right(self._asn_keys, asn_range.last)
        return self._by_asn[lo:hi]

    @property
    def vrp_count(self) -> int:
        return len(self._vrps)

    def delegation_of(self, resource: Union[Prefix, int]) -> Optional[Union[IpDelegation, AsnDelegation]]:
        """Most specific IP delegation covering a prefix, or narrowest ASN delegation"""
        if isinstance(resource, Prefix):
            return self._ip_delegations.most_specific(resource)
        return self._asn_delegations.lookup(resource)

    def country_of(self, resource: Union[Prefix, int]) -> str:
        delegation = self.delegation_of(resource)
        if delegation is None:
            return UNKNOWN_COUNTRY
        return delegation.country


class ResourceIndexBuilder:
    """
    Collects records and produces a ResourceIndex

    Records that violate an invariant (e.g. a VRP whose max length is
    shorter than its prefix) are skipped and counted in BuildStats. Using the
    builder again after build() raises IndexBuildFailure.
    """

    def __init__(self):
        self.logger = logging.getLogger('routing-stats.index')
        self._vrps: PrefixTable[VRP] = PrefixTable(sort_key=VRP.sort_key)
        self._ip_delegations: PrefixTable[IpDelegation] = PrefixTable(sort_key=IpDelegation.sort_key)
        self._asn_delegations: AsnRangeIndex[AsnDelegation] = AsnRangeIndex(sort_key=AsnDelegation.sort_key)
        self._seen_vrps: Set[Tuple[Prefix, int, int]] = set()
        self._stats = BuildStats()
        self._started = time.time()
        self._built = False

    def _check_open(self):
        if self._built:
            raise IndexBuildFailure("ResourceIndexBuilder has already built its index")

    def add_vrp(self, vrp: VRP) -> bool:
        self._check_open()
        try:
            vrp.check()
        except IndexBuildFailure as e:
            self._stats.vrps_skipped += 1
            self.logger.debug(f"Skipping VRP: {e.message}")
            return False

        key = (vrp.prefix, vrp.asn, vrp.max_length)
        if key in self._seen_vrps:
            self._stats.vrps_duplicate += 1
            return False
        self._seen_vrps.add(key)

        self._vrps.insert(vrp.prefix, vrp)
        self._stats.vrps_accepted += 1
        return True

    def add_vrps(self, vrps: Iterable[VRP]) -> 'ResourceIndexBuilder':
        for vrp in vrps:
            self.add_vrp(vrp)
        return self

    def add_ip_delegation(self, delegation: IpDelegation) -> bool:
        self._check_open()
        try:
            prefixes = delegation.prefixes()
        except MalformedPrefix as e:
            self._stats.ip_delegations_skipped += 1
            self.logger.debug(f"Skipping delegation: {e.message}")
            return False

        if delegation.country != normalize_country(delegation.country):
            delegation = IpDelegation(delegation.registry, normalize_country(delegation.country),
                                      delegation.resource, delegation.state)

        for prefix in prefixes:
            self._ip_delegations.insert(prefix, delegation)
        self._stats.ip_delegations_accepted += 1
        self._stats.delegation_prefixes += len(prefixes)
        return True

    def add_asn_delegation(self, delegation: AsnDelegation) -> bool:
        self._check_open()
        if delegation.country != normalize_country(delegation.country):
            delegation = AsnDelegation(delegation.registry, normalize_country(delegation.country),
                                       delegation.resource, delegation.state)
        self._asn_delegations.insert(delegation.resource, delegation)
        self._stats.asn_delegations_accepted += 1
        return True

    def add_delegations(self, delegations: Iterable[Union[IpDelegation, AsnDelegation]]) -> 'ResourceIndexBuilder':
        for delegation in delegations:
            if isinstance(delegation, AsnDelegation):
                self.add_asn_delegation(delegation)
            else:
                self.add_ip_delegation(delegation)
        return self

    def build(self) -> ResourceIndex:
        """Freeze all tables and hand them to a ResourceIndex"""
        self._check_open()
        self._built = True

        index = ResourceIndex(
            self._vrps.freeze(),
            self._ip_delegations.freeze(),
            self._asn_delegations.freeze(),
            self._stats,
        )
        self._seen_vrps = set()
        self._stats.build_seconds = time.time() - self._started

        self.logger.info(
            f"Built resource index: {self._stats.vrps_accepted} VRPs "
            f"({self._stats.vrps_skipped} skipped, {self._stats.vrps_duplicate} duplicate), "
            f"{self._stats.ip_delegations_accepted} IP and "
            f"{self._stats.asn_delegations_accepted} ASN delegations"
        )
        return index
