#!/usr/bin/env python3
"""
Registry delegation statistics parsers

Two layouts are understood:

NRO / RIR extended statistics (pipe separated)::

    2.3|nro|20190304|...                 version line, skipped
    ripencc|*|ipv4|*|86142|summary       summary lines, skipped
    ripencc|NL|ipv4|193.0.0.0|2048|19930901|allocated|...
    ripencc|NL|ipv6|2001:67c:2e8::|48|20101117|assigned|...
    ripencc|NL|asn|3333|1|19930901|allocated|...

For ipv4 records the value is an address count (the block need not be a
CIDR prefix), for ipv6 a prefix length and for asn a count of AS numbers.

NRO CSV (``prefix,rir,date,cc,state``, files ending in ``.csv``).
"""

import csv
import time
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple, Union

from routing_stats.models import AsnDelegation, DelegationState, IpDelegation, normalize_country
from routing_stats.processors.common import ParseStats, base_suffix, open_text
from routing_stats.resources.ip import AddressRange, AsnRange, Prefix, parse_address
from routing_stats.utils.error_handling import ValidationError
from routing_stats.utils.logging import get_logger

logger = get_logger('routing-stats.processors.delegations')

REGISTRIES = {'iana', 'afrinic', 'apnic', 'arin', 'lacnic', 'ripencc'}

Delegation = Union[IpDelegation, AsnDelegation]


def _registry(text: str) -> str:
    registry = text.strip().lower()
    if registry not in REGISTRIES:
        raise ValidationError(f"Unknown registry '{text}'", "registry")
    return registry


def _state(text: str) -> DelegationState:
    try:
        return DelegationState.parse(text)
    except ValueError as e:
        raise ValidationError(f"Unknown delegation state '{text}'", "state") from e


def _count(text: str) -> int:
    text = text.strip()
    if not text.isdigit():
        raise ValidationError(f"Count '{text}' is not a number", "value")
    return int(text)


def _nro_record(fields: List[str]) -> Delegation:
    registry = _registry(fields[0])
    country = normalize_country(fields[1])
    kind = fields[2].strip().lower()
    start, value = fields[3].strip(), fields[4]
    state = _state(fields[6])

    if kind == 'asn':
        if not start.isdigit():
            raise ValidationError(f"AS number '{start}' is not a number", "start")
        return AsnDelegation(registry, country, AsnRange.from_count(int(start), _count(value)), state)

    if kind == 'ipv4':
        family, first = parse_address(start)
        if family != 4:
            raise ValidationError(f"'{start}' is not an IPv4 address", "start")
        return IpDelegation(registry, country, AddressRange.from_count(4, first, _count(value)), state)

    if kind == 'ipv6':
        return IpDelegation(registry, country, Prefix.from_str(f"{start}/{_count(value)}"), state)

    raise ValidationError(f"Unsupported resource type '{kind}'", "type")


def parse_nro_lines(lines: Iterable[str], stats: ParseStats) -> Iterator[Delegation]:
    """Parse pipe separated extended delegation statistics"""
    for line_number, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        fields = line.split('|')
        # version header: first field is the format version number
        if fields[0][:1].isdigit():
            continue
        if len(fields) >= 6 and fields[5].strip() == 'summary':
            continue
        if len(fields) < 7:
            stats.malformed(logger, line_number, line, "expected at least 7 pipe separated fields")
            continue

        try:
            delegation = _nro_record(fields)
        except ValidationError as e:
            stats.malformed(logger, line_number, line, e.message)
            continue

        stats.accepted += 1
        yield delegation


def parse_delegation_csv_rows(rows: Iterable[List[str]], stats: ParseStats) -> Iterator[Delegation]:
    """Parse ``prefix,rir,date,cc,state`` rows; the header row is skipped"""
    for line_number, row in enumerate(rows, 1):
        if not row or row[0].strip().lower() == 'prefix':
            continue
        if len(row) < 5:
            stats.malformed(logger, line_number, ",".join(row), "expected prefix, rir, date, cc and state")
            continue

        try:
            delegation = IpDelegation(
                _registry(row[1]),
                normalize_country(row[3]),
                Prefix.from_str(row[0]),
                _state(row[4]),
            )
        except ValidationError as e:
            stats.malformed(logger, line_number, ",".join(row), e.message)
            continue

        stats.accepted += 1
        yield delegation


def read_delegation_file(path: Union[str, Path]) -> Tuple[List[Delegation], ParseStats]:
    """
    Read a delegation statistics file

    Args:
        path: File path; ``.csv`` (optionally compressed) selects the CSV reader

    Returns:
        Tuple of (delegation list, ParseStats)
    """
    path = Path(path)
    stats = ParseStats(source=str(path))
    start_time = time.time()

    with open_text(path) as f:
        if base_suffix(path) == '.csv':
            delegations = list(parse_delegation_csv_rows(csv.reader(f), stats))
        else:
            delegations = list(parse_nro_lines(f, stats))

    stats.duration = time.time() - start_time
    logger.log_parse_summary(str(path), stats.accepted, stats.skipped, stats.duration)
    return delegations, stats
