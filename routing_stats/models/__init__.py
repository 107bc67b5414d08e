"""
routing-stats Data Models

Records read from the bulk inputs (announcements, VRPs, delegations) and
the per-announcement validation verdict.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from routing_stats.resources.ip import AddressRange, AsnRange, FAMILY_BITS, Prefix, format_asn
from routing_stats.utils.error_handling import IndexBuildFailure

UNKNOWN_COUNTRY = "unknown"


def normalize_country(code: Optional[str]) -> str:
    """Upper-case a country code; empty codes become the unknown marker"""
    code = (code or "").strip()
    if not code:
        return UNKNOWN_COUNTRY
    return code.upper()


class ValidationState(Enum):
    """Route origin validation states following RFC 6811"""
    VALID = "valid"
    INVALID_ASN = "invalid_asn"
    INVALID_LENGTH = "invalid_length"
    NOT_FOUND = "not_found"

    @property
    def is_invalid(self) -> bool:
        return self in (ValidationState.INVALID_ASN, ValidationState.INVALID_LENGTH)


class DelegationState(Enum):
    """Registry status of a delegated resource"""
    IANAPOOL = "ianapool"
    IETF = "ietf"
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    RESERVED = "reserved"

    @classmethod
    def parse(cls, text: str) -> 'DelegationState':
        text = text.strip().lower()
        if text == "allocated":
            return cls.ASSIGNED
        return cls(text)


@dataclass(frozen=True, slots=True)
class Announcement:
    """A prefix seen in the routing table with its origin and peer visibility."""
    prefix: Prefix
    asn: int
    peers: int = 0

    def to_dict(self) -> dict:
        return {
            'prefix': str(self.prefix),
            'asn': format_asn(self.asn),
            'peers': self.peers,
        }


@dataclass(frozen=True, slots=True)
class VRP:
    """
    Validated ROA Payload.

    A VRP authorizes ``asn`` to originate ``prefix`` and any more specific
    prefix up to ``max_length``.
    """
    prefix: Prefix
    asn: int
    max_length: int
    trust_anchor: Optional[str] = None

    def check(self) -> 'VRP':
        """Raise IndexBuildFailure unless prefix length <= max_length <= family max"""
        family_max = FAMILY_BITS[self.prefix.family]
        if not self.prefix.length <= self.max_length <= family_max:
            raise IndexBuildFailure(
                f"VRP {self.prefix} {format_asn(self.asn)} has max length {self.max_length}, "
                f"expected {self.prefix.length}-{family_max}"
            )
        return self

    def covers(self, prefix: Prefix) -> bool:
        return self.prefix.covers(prefix)

    def matches(self, announcement: Announcement) -> bool:
        """True when the announcement is Valid with respect to this VRP alone"""
        return (announcement.asn == self.asn
                and announcement.prefix.length <= self.max_length
                and self.prefix.covers(announcement.prefix))

    def sort_key(self):
        return (self.asn, self.max_length, self.trust_anchor or "")

    def to_dict(self) -> dict:
        result = {
            'prefix': str(self.prefix),
            'asn': format_asn(self.asn),
            'max_length': self.max_length,
        }
        if self.trust_anchor:
            result['trust_anchor'] = self.trust_anchor
        return result


@dataclass(frozen=True)
class IpDelegation:
    """Registry delegation of an address block to a country"""
    registry: str
    country: str
    resource: Union[Prefix, AddressRange]
    state: DelegationState = DelegationState.ASSIGNED

    def prefixes(self):
        if isinstance(self.resource, Prefix):
            return [self.resource]
        return self.resource.to_prefixes()

    def sort_key(self):
        return (self.registry, self.country, self.state.value)

    def to_dict(self) -> dict:
        return {
            'registry': self.registry,
            'country': self.country,
            'resource': str(self.resource),
            'state': self.state.value,
        }


@dataclass(frozen=True)
class AsnDelegation:
    """Registry delegation of an AS number range to a country"""
    registry: str
    country: str
    resource: AsnRange
    state: DelegationState = DelegationState.ASSIGNED

    def sort_key(self):
        return (self.registry, self.country, self.state.value)

    def to_dict(self) -> dict:
        return {
            'registry': self.registry,
            'country': self.country,
            'resource': str(self.resource),
            'state': self.state.value,
        }


@dataclass(frozen=True, slots=True)
class ValidatedAnnouncement:
    """An announcement together with its validation verdict."""
    announcement: Announcement
    state: ValidationState

    @property
    def prefix(self) -> Prefix:
        return self.announcement.prefix

    @property
    def asn(self) -> int:
        return self.announcement.asn

    def sort_key(self):
        return (self.announcement.prefix, self.announcement.asn)

    def to_dict(self) -> dict:
        result = self.announcement.to_dict()
        result['state'] = self.state.value
        return result


@dataclass(frozen=True)
class VrpVisibility:
    """Whether a VRP is matched by at least one observed announcement"""
    vrp: VRP
    seen: bool

    def to_dict(self) -> dict:
        result = self.vrp.to_dict()
        result['seen'] = self.seen
        return result
