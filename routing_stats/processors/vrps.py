#!/usr/bin/env python3
"""
VRP list parsers

Supported inputs:
- CSV export as written by routinator / rpki-client
  (``ASN,IP Prefix,Max Length[,Trust Anchor]``)
- rpki-client JSON (``roas`` array, ``maxLength`` / ``ta`` keys)
- routinator JSON (``validated-roa-payloads`` array, ``max-length`` key)

JSON files are streamed with ijson so the whole document is never held in
memory. Files may be gzip or bzip2 compressed.
"""

import csv
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import ijson

from routing_stats.models import VRP
from routing_stats.processors.common import ParseStats, base_suffix, open_binary, open_text
from routing_stats.resources.ip import Prefix, parse_asn
from routing_stats.utils.error_handling import ValidationError
from routing_stats.utils.logging import get_logger

logger = get_logger('routing-stats.processors.vrps')

# JSON array paths and the max length key used by each producer
JSON_LAYOUTS = [
    (b'"roas"', 'roas.item', ('maxLength', 'max-length')),
    (b'"validated-roa-payloads"', 'validated-roa-payloads.item', ('max-length', 'maxLength')),
]


def _vrp_from_fields(asn_value: Any, prefix_text: str, max_length_value: Any,
                     trust_anchor: Optional[str]) -> VRP:
    asn = parse_asn(asn_value if isinstance(asn_value, int) else str(asn_value))
    prefix = Prefix.from_str(str(prefix_text))
    if max_length_value is None or str(max_length_value).strip() == '':
        max_length = prefix.length
    else:
        text = str(max_length_value).strip()
        if not text.isdigit():
            raise ValidationError(f"Max length '{text}' is not a number", "max_length")
        max_length = int(text)
    return VRP(prefix, asn, max_length, (trust_anchor or None))


def parse_vrp_csv_rows(rows: Iterable[List[str]], stats: ParseStats) -> Iterator[VRP]:
    """Parse CSV rows; a header row starting with 'ASN' is skipped"""
    for line_number, row in enumerate(rows, 1):
        if not row or not any(field.strip() for field in row):
            continue
        if row[0].strip().upper() == 'ASN':
            continue
        if len(row) < 3:
            stats.malformed(logger, line_number, ",".join(row), "expected ASN, prefix and max length")
            continue

        trust_anchor = row[3].strip() if len(row) > 3 else None
        try:
            vrp = _vrp_from_fields(row[0].strip(), row[1].strip(), row[2].strip(), trust_anchor)
        except ValidationError as e:
            stats.malformed(logger, line_number, ",".join(row), e.message)
            continue

        stats.accepted += 1
        yield vrp


def parse_vrp_json_items(items: Iterable[Dict[str, Any]], max_length_keys: Tuple[str, ...],
                         stats: ParseStats) -> Iterator[VRP]:
    """Convert decoded JSON objects of one VRP array into VRPs"""
    for item_number, item in enumerate(items, 1):
        try:
            max_length = None
            for key in max_length_keys:
                if key in item:
                    max_length = item[key]
                    break
            vrp = _vrp_from_fields(item['asn'], item['prefix'], max_length, item.get('ta'))
        except KeyError as e:
            stats.malformed(logger, item_number, str(item), f"missing key {e}")
            continue
        except ValidationError as e:
            stats.malformed(logger, item_number, str(item), e.message)
            continue

        stats.accepted += 1
        yield vrp


def _read_json(path: Path, stats: ParseStats) -> List[VRP]:
    with open_binary(path) as f:
        sample = f.read(4096)

    for marker, item_path, max_length_keys in JSON_LAYOUTS:
        if marker in sample:
            with open_binary(path) as f:
                items = ijson.items(f, item_path)
                return list(parse_vrp_json_items(items, max_length_keys, stats))

    raise ValidationError(
        f"Unrecognised VRP JSON layout in {path}",
        "vrps",
        "Expected an rpki-client 'roas' or routinator 'validated-roa-payloads' document"
    )


def read_vrp_file(path: Union[str, Path]) -> Tuple[List[VRP], ParseStats]:
    """
    Read a VRP CSV or JSON file

    Args:
        path: File path; ``.json`` (optionally compressed) selects the JSON reader

    Returns:
        Tuple of (VRP list, ParseStats)
    """
    path = Path(path)
    stats = ParseStats(source=str(path))
    start_time = time.time()

    if base_suffix(path) == '.json':
        vrps = _read_json(path, stats)
    else:
        with open_text(path) as f:
            vrps = list(parse_vrp_csv_rows(csv.reader(f), stats))

    stats.duration = time.time() - start_time
    logger.log_parse_summary(str(path), stats.accepted, stats.skipped, stats.duration)
    return vrps, stats
