"""
IP prefix, address range and AS number primitives

Prefixes are stored as (family, integer base address, length) so that
containment checks are plain integer arithmetic. Text is parsed with the
``ipaddress`` module and rejected unless it is already canonical.
"""

import functools
import re
from ipaddress import IPv4Address, IPv6Address, ip_address, ip_network, summarize_address_range
from typing import Iterator, List, Tuple, Union

from routing_stats.utils.error_handling import MalformedAsn, MalformedPrefix

FAMILY_BITS = {4: 32, 6: 128}
_ADDRESS_TYPES = {4: IPv4Address, 6: IPv6Address}
MAX_ASN = 4294967295

_ASN_PATTERN = re.compile(r'^(?:AS)?(\d+)$', re.IGNORECASE)


def _address_text(family: int, value: int) -> str:
    return str(_ADDRESS_TYPES[family](value))


def parse_address(text: str) -> Tuple[int, int]:
    """Parse a single IP address into (family, integer value)"""
    try:
        address = ip_address(text.strip())
    except ValueError as e:
        raise MalformedPrefix(text, str(e)) from e
    return address.version, int(address)


@functools.total_ordering
class Prefix:
    """
    A canonical IP prefix

    Ordering is by (family, address, length), which places a prefix before
    every more specific prefix inside it.
    """
    __slots__ = ('family', 'value', 'length')

    def __init__(self, family: int, value: int, length: int):
        bits = FAMILY_BITS.get(family)
        if bits is None:
            raise MalformedPrefix(f"{value}/{length}", f"unknown address family {family}")
        if not 0 <= length <= bits:
            raise MalformedPrefix(_address_text(family, value) + f"/{length}",
                                  f"length must be between 0 and {bits}")
        if value & ((1 << (bits - length)) - 1):
            raise MalformedPrefix(_address_text(family, value) + f"/{length}",
                                  "host bits are set")
        self.family = family
        self.value = value
        self.length = length

    @classmethod
    def from_str(cls, text: str) -> 'Prefix':
        """Parse ``address/length``; host bits must be clear"""
        text = text.strip()
        if '/' not in text:
            raise MalformedPrefix(text, "missing prefix length")
        address_text, _, length_text = text.partition('/')
        if not length_text.isdigit():
            raise MalformedPrefix(text, "prefix length must be a number")
        try:
            network = ip_network(f"{address_text}/{int(length_text)}", strict=True)
        except ValueError as e:
            raise MalformedPrefix(text, str(e)) from e
        return cls(network.version, int(network.network_address), network.prefixlen)

    @classmethod
    def host(cls, family: int, value: int) -> 'Prefix':
        """The single-address prefix for an address"""
        return cls(family, value, FAMILY_BITS[family])

    @property
    def bits(self) -> int:
        return FAMILY_BITS[self.family]

    @property
    def first(self) -> int:
        return self.value

    @property
    def last(self) -> int:
        return self.value | ((1 << (self.bits - self.length)) - 1)

    def covers(self, other: 'Prefix') -> bool:
        """True when other is equal to or more specific than this prefix"""
        if self.family != other.family or self.length > other.length:
            return False
        shift = self.bits - self.length
        return (other.value >> shift) == (self.value >> shift)

    def intersects(self, other: 'Prefix') -> bool:
        return self.covers(other) or other.covers(self)

    def to_range(self) -> 'AddressRange':
        return AddressRange(self.family, self.first, self.last)

    def _key(self) -> Tuple[int, int, int]:
        return (self.family, self.value, self.length)

    def __eq__(self, other):
        if not isinstance(other, Prefix):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other):
        if not isinstance(other, Prefix):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self):
        return f"{_address_text(self.family, self.value)}/{self.length}"

    def __repr__(self):
        return f"Prefix('{self}')"


class AddressRange:
    """An inclusive range of addresses within one family"""
    __slots__ = ('family', 'first', 'last')

    def __init__(self, family: int, first: int, last: int):
        bits = FAMILY_BITS[family]
        if not 0 <= first <= last:
            raise MalformedPrefix(f"{first}-{last}", "first address must not exceed last address")
        if last >= (1 << bits):
            raise MalformedPrefix(f"{_address_text(family, first)}+{last - first + 1}",
                                  f"range runs past the end of the IPv{family} space")
        self.family = family
        self.first = first
        self.last = last

    @classmethod
    def from_str(cls, text: str) -> 'AddressRange':
        """Parse ``first-last`` with both ends in the same family"""
        text = text.strip()
        first_text, sep, last_text = text.partition('-')
        if not sep:
            raise MalformedPrefix(text, "address range must use first-last notation")
        first_family, first = parse_address(first_text)
        last_family, last = parse_address(last_text)
        if first_family != last_family:
            raise MalformedPrefix(text, "range mixes IPv4 and IPv6 addresses")
        if first > last:
            raise MalformedPrefix(text, "first address must not exceed last address")
        return cls(first_family, first, last)

    @classmethod
    def from_count(cls, family: int, first: int, count: int) -> 'AddressRange':
        """Range starting at first and holding count addresses"""
        if count < 1:
            raise MalformedPrefix(_address_text(family, first), "address count must be positive")
        return cls(family, first, first + count - 1)

    def contains_prefix(self, prefix: Prefix) -> bool:
        return (self.family == prefix.family
                and self.first <= prefix.first and prefix.last <= self.last)

    def intersects_prefix(self, prefix: Prefix) -> bool:
        return (self.family == prefix.family
                and self.first <= prefix.last and prefix.first <= self.last)

    def to_prefixes(self) -> List[Prefix]:
        return list(range_to_prefixes(self.family, self.first, self.last))

    def __eq__(self, other):
        if not isinstance(other, AddressRange):
            return NotImplemented
        return (self.family, self.first, self.last) == (other.family, other.first, other.last)

    def __hash__(self):
        return hash((self.family, self.first, self.last))

    def __str__(self):
        return f"{_address_text(self.family, self.first)}-{_address_text(self.family, self.last)}"

    def __repr__(self):
        return f"AddressRange('{self}')"


def range_to_prefixes(family: int, first: int, last: int) -> Iterator[Prefix]:
    """Generate the minimal list of prefixes covering exactly first..last"""
    address_type = _ADDRESS_TYPES[family]
    for network in summarize_address_range(address_type(first), address_type(last)):
        yield Prefix(family, int(network.network_address), network.prefixlen)


def parse_asn(text: Union[str, int]) -> int:
    """Parse ``AS3333`` or ``3333`` (prefix is case-insensitive) into an int"""
    if isinstance(text, int):
        value = text
        text = str(text)
    else:
        match = _ASN_PATTERN.match(text.strip())
        if not match:
            raise MalformedAsn(text, "expected AS<number> or <number>")
        value = int(match.group(1))
    if not 0 <= value <= MAX_ASN:
        raise MalformedAsn(text, f"AS number must be between 0 and {MAX_ASN}")
    return value


def format_asn(asn: int) -> str:
    return f"AS{asn}"


class AsnRange:
    """An inclusive range of AS numbers"""
    __slots__ = ('first', 'last')

    def __init__(self, first: int, last: int):
        if not 0 <= first <= last <= MAX_ASN:
            raise MalformedAsn(f"AS{first}-AS{last}", "first AS number must not exceed last")
        self.first = first
        self.last = last

    @classmethod
    def from_str(cls, text: str) -> 'AsnRange':
        """Parse ``AS1-AS5`` (or a single ASN as a one-element range)"""
        first_text, sep, last_text = text.strip().partition('-')
        first = parse_asn(first_text)
        last = parse_asn(last_text) if sep else first
        if first > last:
            raise MalformedAsn(text, "first AS number must not exceed last")
        return cls(first, last)

    @classmethod
    def from_count(cls, first: int, count: int) -> 'AsnRange':
        if count < 1:
            raise MalformedAsn(str(first), "AS number count must be positive")
        return cls(first, first + count - 1)

    @property
    def width(self) -> int:
        return self.last - self.first + 1

    def contains(self, asn: int) -> bool:
        return self.first <= asn <= self.last

    def __eq__(self, other):
        if not isinstance(other, AsnRange):
            return NotImplemented
        return (self.first, self.last) == (other.first, other.last)

    def __hash__(self):
        return hash((self.first, self.last))

    def __str__(self):
        if self.first == self.last:
            return format_asn(self.first)
        return f"{format_asn(self.first)}-{format_asn(self.last)}"

    def __repr__(self):
        return f"AsnRange('{self}')"
