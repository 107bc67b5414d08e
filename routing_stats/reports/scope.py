"""
Resource scopes

A scope restricts a report to a set of prefixes, address ranges, AS numbers
and AS number ranges. A scope without entries of a kind does not constrain
that kind, and a scope without any entries admits everything.

Scope text is a comma separated list; whitespace is ignored::

    193.0.0.0/8, 194.0.0.0-194.0.1.3, AS3333, AS64496-AS64511
"""

from typing import List, Optional, Sequence, Union

from routing_stats.models import Announcement, VRP
from routing_stats.resources.ip import AddressRange, AsnRange, Prefix
from routing_stats.utils.error_handling import InvalidScope, MalformedAsn, MalformedPrefix


class Scope:
    """Parsed scope; build it with parse_scope() or parse_scope_parts()"""

    def __init__(self, prefixes: Sequence[Prefix] = (), ranges: Sequence[AddressRange] = (),
                 asns: Sequence[AsnRange] = ()):
        self.prefixes: List[Prefix] = list(prefixes)
        self.ranges: List[AddressRange] = list(ranges)
        self.asns: List[AsnRange] = list(asns)

    @property
    def limits_ips(self) -> bool:
        return bool(self.prefixes or self.ranges)

    @property
    def limits_asns(self) -> bool:
        return bool(self.asns)

    @property
    def is_unscoped(self) -> bool:
        return not (self.limits_ips or self.limits_asns)

    def ip_prefixes(self) -> List[Prefix]:
        """IP entries as prefixes; ranges are split into their minimal prefix list"""
        result = list(self.prefixes)
        for address_range in self.ranges:
            result.extend(address_range.to_prefixes())
        return result

    def contains_prefix(self, prefix: Prefix) -> bool:
        if not self.limits_ips:
            return True
        return (any(entry.covers(prefix) for entry in self.prefixes)
                or any(entry.contains_prefix(prefix) for entry in self.ranges))

    def contains_asn(self, asn: int) -> bool:
        if not self.limits_asns:
            return True
        return any(entry.contains(asn) for entry in self.asns)

    def contains(self, resource: Union[Prefix, int]) -> bool:
        """Prefix covered by an IP entry, or ASN inside an ASN entry"""
        if isinstance(resource, Prefix):
            return self.contains_prefix(resource)
        return self.contains_asn(resource)

    def intersects_prefix(self, prefix: Prefix) -> bool:
        if not self.limits_ips:
            return True
        return (any(entry.intersects(prefix) for entry in self.prefixes)
                or any(entry.intersects_prefix(prefix) for entry in self.ranges))

    def admits_announcement(self, announcement: Announcement) -> bool:
        return self.contains_prefix(announcement.prefix) and self.contains_asn(announcement.asn)

    def admits_vrp(self, vrp: VRP) -> bool:
        """VRPs that may take part in classifying in-scope announcements"""
        return self.intersects_prefix(vrp.prefix) and self.contains_asn(vrp.asn)

    def contains_vrp(self, vrp: VRP) -> bool:
        """VRPs listed in visibility reports for this scope"""
        return self.contains_prefix(vrp.prefix) and self.contains_asn(vrp.asn)

    def entries(self) -> List[str]:
        return ([str(p) for p in self.prefixes] + [str(r) for r in self.ranges]
                + [str(a) for a in self.asns])

    def to_dict(self) -> dict:
        return {
            'text': str(self),
            'prefixes': [str(p) for p in self.prefixes],
            'ranges': [str(r) for r in self.ranges],
            'asns': [str(a) for a in self.asns],
        }

    def __str__(self):
        return ",".join(self.entries())

    def __repr__(self):
        return f"Scope('{self}')"


def _tokens(text: Optional[str]) -> List[str]:
    if text is None:
        return []
    compact = "".join(text.split())
    if not compact:
        return []
    return compact.split(",")


def _parse_ip_token(token: str) -> Union[Prefix, AddressRange]:
    if "/" in token:
        return Prefix.from_str(token)
    return AddressRange.from_str(token)


def _looks_like_ip(token: str) -> bool:
    return "/" in token or "." in token or ":" in token


def _add_entry(scope: Scope, token: str, allow_ips: bool = True, allow_asns: bool = True):
    if not token:
        raise InvalidScope(token)
    try:
        if _looks_like_ip(token):
            if not allow_ips:
                raise MalformedAsn(token, "expected an AS number or AS number range")
            entry = _parse_ip_token(token)
            if isinstance(entry, Prefix):
                scope.prefixes.append(entry)
            else:
                scope.ranges.append(entry)
        else:
            if not allow_asns:
                raise MalformedPrefix(token, "expected a prefix or address range")
            scope.asns.append(AsnRange.from_str(token))
    except (MalformedPrefix, MalformedAsn) as e:
        raise InvalidScope(token, e) from e


def parse_scope(text: Optional[str]) -> Scope:
    """
    Parse scope text into a Scope

    Raises:
        InvalidScope: a token is not a prefix, address range, ASN or ASN range
    """
    scope = Scope()
    for token in _tokens(text):
        _add_entry(scope, token)
    return scope


def parse_scope_parts(scope: Optional[str] = None, ips: Optional[str] = None,
                      asns: Optional[str] = None) -> Scope:
    """
    Combine a general scope string with separate IP-only and ASN-only lists

    Raises:
        InvalidScope: a token is malformed or of the wrong kind for its list
    """
    result = parse_scope(scope)
    for token in _tokens(ips):
        _add_entry(result, token, allow_asns=False)
    for token in _tokens(asns):
        _add_entry(result, token, allow_ips=False)
    return result

