#!/usr/bin/env python3
"""
Dataset construction

A Dataset bundles everything one snapshot of the inputs yields: the
ResourceIndex, an announcement table for visibility queries, the
classified announcements and the precomputed world statistics. It is
immutable once built and may be read from any number of threads.
"""

import time
from bisect import bisect_left, bisect_right
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import psutil

from routing_stats.models import (
    Announcement, AsnDelegation, IpDelegation, ValidatedAnnouncement, VRP, VrpVisibility
)
from routing_stats.processors.common import ParseStats
from routing_stats.processors.delegations import read_delegation_file
from routing_stats.processors.ris import read_ris_file
from routing_stats.processors.vrps import read_vrp_file
from routing_stats.reports.world import CountryStats, aggregate_parallel, aggregate_visibility
from routing_stats.resources.ip import AsnRange, Prefix
from routing_stats.resources.index import ResourceIndex, ResourceIndexBuilder
from routing_stats.resources.prefix_table import PrefixTable
from routing_stats.utils.config import InputConfig, RoutingStatsConfig, ValidationConfig, get_config
from routing_stats.utils.error_handling import ConfigurationError, RoutingStatsError
from routing_stats.utils.logging import LoggingTimer, get_logger
from routing_stats.utils.parallel import ParallelExecutor, auto_workers, parallel_fold
from routing_stats.validators.rov import RouteOriginValidator

logger = get_logger('routing-stats.dataset')

AnnouncementFilter = Callable[[Announcement], bool]


def _announcement_key(announcement: Announcement):
    return (announcement.asn, announcement.peers)


def _memory_usage_mb() -> float:
    return psutil.Process().memory_info().rss / (1024 * 1024)


def evaluate_visibility(vrp: VRP, announcements: PrefixTable,
                        announcement_filter: Optional[AnnouncementFilter] = None) -> VrpVisibility:
    """
    A VRP is seen when some announcement with its origin lies inside its
    prefix no longer than its max length
    """
    for announcement in announcements.covered_by(vrp.prefix, max_length=vrp.max_length):
        if announcement.asn != vrp.asn:
            continue
        if announcement_filter is not None and not announcement_filter(announcement):
            continue
        return VrpVisibility(vrp, True)
    return VrpVisibility(vrp, False)


def _extend(acc: list, part: list) -> list:
    acc.extend(part)
    return acc


class Dataset:
    """One immutable snapshot of announcements, VRPs and delegations"""

    def __init__(self, index: ResourceIndex, announcements: PrefixTable,
                 validated: List[ValidatedAnnouncement], visibility: List[VrpVisibility],
                 world: CountryStats, validation: ValidationConfig,
                 parse_stats: Optional[List[ParseStats]] = None):
        self.index = index
        self.announcements = announcements
        self.validated = validated
        self.visibility = visibility
        self.world = world
        self.validation = validation
        self.parse_stats = parse_stats or []
        self.built_at = datetime.now(timezone.utc)
        self.build_seconds = 0.0
        self.memory_mb = 0.0

        ordered = sorted(validated, key=lambda item: (item.announcement.asn, item.announcement.prefix))
        self._asn_keys = [item.announcement.asn for item in ordered]
        self._by_asn = ordered

    @classmethod
    def build(cls, announcements: Iterable[Announcement], vrps: Iterable[VRP],
              delegations: Iterable[Union[IpDelegation, AsnDelegation]] = (),
              config: Optional[RoutingStatsConfig] = None,
              parse_stats: Optional[List[ParseStats]] = None) -> 'Dataset':
        """
        Build the index, classify every announcement and aggregate world stats

        Duplicate (prefix, origin) announcements are merged, keeping the
        highest peer count.
        """
        config = config or get_config()
        validation = config.validation
        start_time = time.time()

        with LoggingTimer(logger, "resource index build"):
            builder = ResourceIndexBuilder()
            builder.add_vrps(vrps)
            builder.add_delegations(delegations)
            index = builder.build()

        unique: Dict[tuple, Announcement] = {}
        for announcement in announcements:
            key = (announcement.prefix, announcement.asn)
            current = unique.get(key)
            if current is None or announcement.peers > current.peers:
                unique[key] = announcement
        ordered = sorted(unique.values(), key=lambda a: (a.prefix, a.asn))

        table: PrefixTable[Announcement] = PrefixTable(sort_key=_announcement_key)
        for announcement in ordered:
            table.insert(announcement.prefix, announcement)
        table.freeze()

        with LoggingTimer(logger, f"classification of {len(ordered)} announcements"):
            validator = RouteOriginValidator.from_config(index, validation)
            validated = validator.validate_all(ordered)

        with LoggingTimer(logger, f"visibility of {index.vrp_count} VRPs"):
            all_vrps = list(index.all_vrps())
            visibility = parallel_fold(
                all_vrps,
                lambda chunk: [evaluate_visibility(vrp, table) for vrp in chunk],
                _extend,
                [],
                max_workers=validation.max_workers if len(all_vrps) >= validation.parallel_threshold else 1,
                chunk_size=validation.chunk_size,
            )

        with LoggingTimer(logger, "world aggregation"):
            world = aggregate_parallel(validated, index, validation.max_workers, validation.chunk_size)
            world = aggregate_visibility(visibility, index, world)

        dataset = cls(index, table, validated, visibility, world, validation, parse_stats)
        dataset.build_seconds = time.time() - start_time
        dataset.memory_mb = _memory_usage_mb()

        logger.info(f"Dataset built in {dataset.build_seconds:.2f}s: {len(validated)} announcements, "
                    f"{index.vrp_count} VRPs, RSS {dataset.memory_mb:.1f} MB")
        return dataset

    def announcements_for_asns(self, asn_range: AsnRange) -> List[ValidatedAnnouncement]:
        lo = bisect_left(self._asn_keys, asn_range.first)
        hi = bisect_right(self._asn_keys, asn_range.last)
        return self._by_asn[lo:hi]

    def announcements_in(self, prefix: Prefix) -> List[Announcement]:
        """Announcements equal to or more specific than prefix"""
        return list(self.announcements.covered_by(prefix))

    def announcements_covering(self, prefix: Prefix) -> List[Announcement]:
        """Announcements equal to or less specific than prefix, most specific first"""
        return list(self.announcements.covering(prefix))

    def summary(self) -> dict:
        counts = self.world.overall
        return {
            'built_at': self.built_at.isoformat(),
            'build_seconds': round(self.build_seconds, 3),
            'memory_mb': round(self.memory_mb, 1),
            'announcements': len(self.validated),
            'vrps': self.index.vrp_count,
            'valid': counts.valid,
            'invalid_asn': counts.invalid_asn,
            'invalid_length': counts.invalid_length,
            'not_found': counts.not_found,
            'index': self.index.stats.to_dict(),
            'sources': [stats.to_dict() for stats in self.parse_stats],
        }


def _read_announcement_files(paths: Sequence[str], min_peers: int,
                             max_workers: Optional[int]) -> List[tuple]:
    """Read RIS dumps concurrently; any failed file fails the load"""
    if len(paths) <= 1:
        return [read_ris_file(path, min_peers) for path in paths]

    workers = auto_workers(len(paths), max_workers)
    with ParallelExecutor(max_workers=min(workers, len(paths))) as executor:
        results = executor.execute_batch(list(paths), read_ris_file, "Reading", min_peers=min_peers)

    failed = [r for r in results if not r.success]
    logger.log_batch_summary("announcement file read", len(results), len(results) - len(failed),
                             sum(r.duration for r in results))
    if failed:
        raise RoutingStatsError(
            f"Failed to read announcement file {failed[0].item}",
            guidance="Check that the file is a RIS whois dump",
            technical_details=failed[0].error,
        )
    return [r.result for r in results]


@logger.time_operation("dataset load")
def load_dataset(inputs: Optional[InputConfig] = None,
                 config: Optional[RoutingStatsConfig] = None) -> Dataset:
    """
    Parse the configured input files and build a Dataset

    Raises:
        ConfigurationError: no announcement or VRP file is configured
    """
    config = config or get_config()
    inputs = inputs or config.inputs

    if not inputs.announcement_files:
        raise ConfigurationError("No announcement files configured",
                                 guidance="Pass --announcements or set ROUTING_STATS_ANNOUNCEMENTS")
    if not inputs.vrp_file:
        raise ConfigurationError("No VRP file configured",
                                 guidance="Pass --vrps or set ROUTING_STATS_VRPS")

    for path in list(inputs.announcement_files) + [inputs.vrp_file, inputs.delegation_file]:
        if path and not Path(path).is_file():
            raise ConfigurationError(f"Input file not found: {path}",
                                     guidance="Check the configured input paths")

    parse_stats: List[ParseStats] = []
    announcements: List[Announcement] = []
    for file_announcements, stats in _read_announcement_files(
            inputs.announcement_files, config.validation.min_peers, config.validation.max_workers):
        announcements.extend(file_announcements)
        parse_stats.append(stats)

    vrps, stats = read_vrp_file(inputs.vrp_file)
    parse_stats.append(stats)

    delegations = []
    if inputs.delegation_file:
        delegations, stats = read_delegation_file(inputs.delegation_file)
        parse_stats.append(stats)
    else:
        logger.warning("No delegation file configured; every country will be 'unknown'")

    return Dataset.build(announcements, vrps, delegations, config, parse_stats)
