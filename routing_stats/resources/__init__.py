"""
routing-stats Resources Module

Prefixes, address ranges and AS numbers, and the lookup structures built
on them. The dataset-level index lives in ``routing_stats.resources.index``.
"""

from .ip import (
    AddressRange, AsnRange, FAMILY_BITS, MAX_ASN, Prefix, format_asn,
    parse_address, parse_asn, range_to_prefixes
)
from .prefix_table import PrefixTable
from .asn_index import AsnRangeIndex

__all__ = [
    'AddressRange', 'AsnRange', 'FAMILY_BITS', 'MAX_ASN', 'Prefix', 'format_asn',
    'parse_address', 'parse_asn', 'range_to_prefixes',
    'PrefixTable', 'AsnRangeIndex',
]
