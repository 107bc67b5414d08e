#!/usr/bin/env python3
"""
Route Origin Validation for routing-stats

Implements RFC 6811 origin validation of announcements against the VRPs of
a ResourceIndex:
- Four-state verdicts (valid / invalid_asn / invalid_length / not_found)
- A length violation by the announcement's own origin outranks an
  origin mismatch
- Chunked parallel classification of large announcement sets, results in
  input order
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence

from routing_stats.models import Announcement, ValidatedAnnouncement, ValidationState, VRP
from routing_stats.resources.index import ResourceIndex
from routing_stats.utils.logging import get_logger
from routing_stats.utils.parallel import parallel_fold

VrpFilter = Callable[[VRP], bool]

logger = get_logger('routing-stats.rov')


def derive_state(announcement: Announcement, covering_vrps: Iterable[VRP]) -> ValidationState:
    """
    Derive the verdict for an announcement from the VRPs covering its prefix

    Args:
        announcement: Announcement to validate
        covering_vrps: VRPs whose prefix equals or contains the announced prefix

    Returns:
        ValidationState
    """
    covered = False
    length_violation = False

    for vrp in covering_vrps:
        covered = True
        # AS0 VRPs authorise no origin
        if vrp.asn != announcement.asn or vrp.asn == 0:
            continue
        if announcement.prefix.length <= vrp.max_length:
            return ValidationState.VALID
        length_violation = True

    if not covered:
        return ValidationState.NOT_FOUND
    if length_violation:
        return ValidationState.INVALID_LENGTH
    return ValidationState.INVALID_ASN


def classify(announcement: Announcement, index: ResourceIndex,
             vrp_filter: Optional[VrpFilter] = None) -> ValidationState:
    """Classify one announcement; vrp_filter restricts which VRPs are considered"""
    covering = index.most_specific_covering(announcement.prefix)
    if vrp_filter is not None:
        covering = filter(vrp_filter, covering)
    return derive_state(announcement, covering)


def count_states(validated: Iterable[ValidatedAnnouncement]) -> Dict[ValidationState, int]:
    counts = {state: 0 for state in ValidationState}
    for item in validated:
        counts[item.state] += 1
    return counts


def _extend(acc: List[ValidatedAnnouncement],
            part: List[ValidatedAnnouncement]) -> List[ValidatedAnnouncement]:
    acc.extend(part)
    return acc


class RouteOriginValidator:
    """Classify announcement sets against one ResourceIndex"""

    def __init__(self, index: ResourceIndex, max_workers: int = 4,
                 chunk_size: int = 50000, parallel_threshold: int = 100000):
        self.index = index
        self.max_workers = max_workers
        self.chunk_size = chunk_size
        self.parallel_threshold = parallel_threshold

    @classmethod
    def from_config(cls, index: ResourceIndex, validation_config) -> 'RouteOriginValidator':
        return cls(
            index,
            max_workers=validation_config.max_workers,
            chunk_size=validation_config.chunk_size,
            parallel_threshold=validation_config.parallel_threshold,
        )

    def validate(self, announcement: Announcement,
                 vrp_filter: Optional[VrpFilter] = None) -> ValidatedAnnouncement:
        return ValidatedAnnouncement(announcement, classify(announcement, self.index, vrp_filter))

    def _validate_chunk(self, announcements: Sequence[Announcement],
                        vrp_filter: Optional[VrpFilter]) -> List[ValidatedAnnouncement]:
        index = self.index
        return [
            ValidatedAnnouncement(ann, classify(ann, index, vrp_filter))
            for ann in announcements
        ]

    def validate_all(self, announcements: Sequence[Announcement],
                     vrp_filter: Optional[VrpFilter] = None) -> List[ValidatedAnnouncement]:
        """
        Classify every announcement, preserving input order

        Inputs larger than parallel_threshold are split into chunks of
        chunk_size and classified on a thread pool.
        """
        if len(announcements) < self.parallel_threshold or self.max_workers <= 1:
            return self._validate_chunk(announcements, vrp_filter)

        logger.debug(f"Classifying {len(announcements)} announcements in parallel "
                     f"(workers={self.max_workers}, chunk_size={self.chunk_size})")
        return parallel_fold(
            announcements,
            lambda chunk: self._validate_chunk(chunk, vrp_filter),
            _extend,
            [],
            max_workers=self.max_workers,
            chunk_size=self.chunk_size,
        )
