#!/usr/bin/env python3
"""
Query/Report Service

Stateless read operations over one Dataset. Unscoped reports are served
from the results precomputed at build time. A scoped report re-classifies
the in-scope announcements against the VRPs the scope admits, so VRPs
outside the scope never influence a verdict inside it.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from routing_stats.models import (
    Announcement, ValidatedAnnouncement, ValidationState, VRP, VrpVisibility
)
from routing_stats.reports.dataset import Dataset, evaluate_visibility
from routing_stats.reports.scope import Scope, parse_scope
from routing_stats.reports.world import CountryStats
from routing_stats.resources.ip import AsnRange, Prefix, format_asn, parse_address, parse_asn
from routing_stats.validators.rov import RouteOriginValidator, classify, count_states

ScopeArg = Union[Scope, str, None]

_ASN_TEXT = re.compile(r'^(AS)?\d+$', re.IGNORECASE)


def _announcement_order(announcement: Announcement):
    return (announcement.prefix, announcement.asn)


def _vrp_order(vrp: VRP):
    return (vrp.prefix, vrp.asn, vrp.max_length, vrp.trust_anchor or "")


@dataclass
class ResourceReport:
    """Validity breakdown and VRP visibility for a scope"""
    scope: Scope
    valid: int = 0
    invalid_asn: int = 0
    invalid_length: int = 0
    not_found: int = 0
    invalids: List[ValidatedAnnouncement] = field(default_factory=list)
    vrp_total: int = 0
    unseen: List[VRP] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.valid + self.invalid_asn + self.invalid_length + self.not_found

    def to_dict(self) -> dict:
        return {
            'scope': self.scope.to_dict(),
            'announcements': {
                'valid': self.valid,
                'invalid_asn': self.invalid_asn,
                'invalid_length': self.invalid_length,
                'not_found': self.not_found,
                'total': self.total,
                'invalids': [item.to_dict() for item in self.invalids],
            },
            'vrps': {
                'total': self.vrp_total,
                'unseen': [vrp.to_dict() for vrp in self.unseen],
            },
        }


@dataclass
class LookupResult:
    """Everything known about a single prefix, address or AS number"""
    resource: str
    kind: str
    country: str
    delegation: Optional[dict] = None
    vrps: List[VRP] = field(default_factory=list)
    announcements: List[ValidatedAnnouncement] = field(default_factory=list)
    covering_announcements: List[ValidatedAnnouncement] = field(default_factory=list)

    def to_dict(self) -> dict:
        result = {
            'resource': self.resource,
            'kind': self.kind,
            'country': self.country,
            'delegation': self.delegation,
            'vrps': [vrp.to_dict() for vrp in self.vrps],
            'announcements': [item.to_dict() for item in self.announcements],
        }
        if self.kind == 'prefix':
            result['covering_announcements'] = [item.to_dict() for item in self.covering_announcements]
        return result


class ReportService:
    """Read-only report operations over one Dataset"""

    def __init__(self, dataset: Dataset):
        self.dataset = dataset
        self.index = dataset.index
        self.validator = RouteOriginValidator.from_config(dataset.index, dataset.validation)

    @staticmethod
    def _scope(scope: ScopeArg) -> Scope:
        if scope is None:
            return Scope()
        if isinstance(scope, str):
            return parse_scope(scope)
        return scope

    def _scoped_announcements(self, scope: Scope) -> List[Announcement]:
        selected = {}
        if scope.limits_ips:
            for prefix in scope.ip_prefixes():
                for announcement in self.dataset.announcements_in(prefix):
                    if scope.contains_asn(announcement.asn):
                        selected[(announcement.prefix, announcement.asn)] = announcement
        else:
            for asn_range in scope.asns:
                for item in self.dataset.announcements_for_asns(asn_range):
                    selected[(item.prefix, item.asn)] = item.announcement
        return sorted(selected.values(), key=_announcement_order)

    def _scoped_validated(self, scope: Scope) -> List[ValidatedAnnouncement]:
        if scope.is_unscoped:
            return self.dataset.validated
        return self.validator.validate_all(self._scoped_announcements(scope), vrp_filter=scope.admits_vrp)

    def _scoped_vrps(self, scope: Scope) -> List[VRP]:
        if scope.is_unscoped:
            return list(self.index.all_vrps())
        if scope.limits_ips:
            selected = set()
            for prefix in scope.ip_prefixes():
                for vrp in self.index.vrps_covered_by(prefix):
                    if scope.contains_asn(vrp.asn):
                        selected.add(vrp)
            return sorted(selected, key=_vrp_order)
        selected = set()
        for asn_range in scope.asns:
            selected.update(self.index.vrps_for_asns(asn_range))
        return sorted(selected, key=_vrp_order)

    def _scoped_visibility(self, scope: Scope) -> List[VrpVisibility]:
        if scope.is_unscoped:
            return self.dataset.visibility
        return [
            evaluate_visibility(vrp, self.dataset.announcements, scope.admits_announcement)
            for vrp in self._scoped_vrps(scope)
        ]

    def world_report(self) -> CountryStats:
        return self.dataset.world

    def invalids_report(self, scope: ScopeArg = None) -> List[ValidatedAnnouncement]:
        """In-scope announcements whose verdict is not valid, ordered by (prefix, asn)"""
        scope = self._scope(scope)
        return [item for item in self._scoped_validated(scope)
                if item.state is not ValidationState.VALID]

    def seen_report(self, scope: ScopeArg = None) -> List[VrpVisibility]:
        """Visibility of every VRP contained in the scope"""
        return self._scoped_visibility(self._scope(scope))

    def resource_report(self, scope: ScopeArg = None) -> ResourceReport:
        scope = self._scope(scope)
        validated = self._scoped_validated(scope)
        counts = count_states(validated)
        visibility = self._scoped_visibility(scope)

        return ResourceReport(
            scope=scope,
            valid=counts[ValidationState.VALID],
            invalid_asn=counts[ValidationState.INVALID_ASN],
            invalid_length=counts[ValidationState.INVALID_LENGTH],
            not_found=counts[ValidationState.NOT_FOUND],
            invalids=[item for item in validated if item.state.is_invalid],
            vrp_total=len(visibility),
            unseen=[item.vrp for item in visibility if not item.seen],
        )

    def _validated(self, announcements: List[Announcement]) -> List[ValidatedAnnouncement]:
        return [ValidatedAnnouncement(a, classify(a, self.index)) for a in announcements]

    def lookup(self, resource: str) -> LookupResult:
        """
        Look up one prefix, address or AS number

        Raises:
            MalformedPrefix / MalformedAsn: resource does not parse
        """
        text = resource.strip()
        if _ASN_TEXT.match(text):
            return self._lookup_asn(parse_asn(text))

        if '/' in text:
            prefix = Prefix.from_str(text)
        else:
            family, value = parse_address(text)
            prefix = Prefix.host(family, value)
        return self._lookup_prefix(prefix)

    def _lookup_asn(self, asn: int) -> LookupResult:
        delegation = self.index.delegation_of(asn)
        return LookupResult(
            resource=format_asn(asn),
            kind='asn',
            country=self.index.country_of(asn),
            delegation=delegation.to_dict() if delegation else None,
            vrps=self.index.vrps_for_asns(AsnRange(asn, asn)),
            announcements=list(self.dataset.announcements_for_asns(AsnRange(asn, asn))),
        )

    def _lookup_prefix(self, prefix: Prefix) -> LookupResult:
        delegation = self.index.delegation_of(prefix)
        more_specific = sorted(self.dataset.announcements_in(prefix), key=_announcement_order)
        covering = [a for a in self.dataset.announcements_covering(prefix) if a.prefix != prefix]
        return LookupResult(
            resource=str(prefix),
            kind='prefix',
            country=self.index.country_of(prefix),
            delegation=delegation.to_dict() if delegation else None,
            vrps=list(self.index.most_specific_covering(prefix)),
            announcements=self._validated(more_specific),
            covering_announcements=self._validated(covering),
        )
