#!/usr/bin/env python3
"""
RIS whois dump parser

Reads riswhoisdump.IPv4 / riswhoisdump.IPv6 style files::

    % comment lines start with a percent sign
    3333    193.0.0.0/21    312

Columns are origin ASN, prefix and the number of RIS peers that see the
route. Announcements seen by fewer than ``min_peers`` peers and AS-set
origins (``{64496,64497}``) are dropped.
"""

import time
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple, Union

from routing_stats.models import Announcement
from routing_stats.processors.common import ParseStats, open_text
from routing_stats.resources.ip import Prefix, parse_asn
from routing_stats.utils.error_handling import MalformedAsn, MalformedPrefix
from routing_stats.utils.logging import get_logger

logger = get_logger('routing-stats.processors.ris')


def parse_ris_lines(lines: Iterable[str], min_peers: int, stats: ParseStats) -> Iterator[Announcement]:
    """
    Parse RIS dump lines into announcements

    Args:
        lines: Dump lines
        min_peers: Minimum peer count for an announcement to be kept
        stats: ParseStats updated in place

    Yields:
        Announcement objects
    """
    for line_number, line in enumerate(lines, 1):
        if not line.strip() or line.startswith('%'):
            continue

        values = line.split()
        if len(values) < 3:
            stats.malformed(logger, line_number, line, "expected ASN, prefix and peer count")
            continue

        asn_text, prefix_text, peers_text = values[0], values[1], values[2]

        if '{' in asn_text:
            stats.skipped_as_set += 1
            continue

        if not peers_text.isdigit():
            stats.malformed(logger, line_number, line, "peer count is not a number")
            continue
        peers = int(peers_text)

        if peers < min_peers:
            stats.skipped_low_visibility += 1
            continue

        try:
            asn = parse_asn(asn_text)
            prefix = Prefix.from_str(prefix_text)
        except (MalformedAsn, MalformedPrefix) as e:
            stats.malformed(logger, line_number, line, e.message)
            continue

        stats.accepted += 1
        yield Announcement(prefix, asn, peers)


def read_ris_file(path: Union[str, Path], min_peers: int = 5) -> Tuple[List[Announcement], ParseStats]:
    """Read one (optionally compressed) RIS dump file"""
    stats = ParseStats(source=str(path))
    start_time = time.time()

    with open_text(path) as f:
        announcements = list(parse_ris_lines(f, min_peers, stats))

    stats.duration = time.time() - start_time
    logger.info(f"Read {stats.accepted} announcements from {path} "
                f"({stats.skipped_low_visibility} below {min_peers} peers, "
                f"{stats.skipped_as_set} AS-set, {stats.skipped_malformed} malformed)")
    return announcements, stats
