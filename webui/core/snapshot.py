from typing import Optional

from fastapi import Request

from routing_stats.reports.scope import Scope, parse_scope_parts
from routing_stats.reports.snapshot import Snapshot, SnapshotHolder


def get_holder(request: Request) -> SnapshotHolder:
    return request.app.state.holder


def get_snapshot(request: Request) -> Snapshot:
    """Current snapshot for this request; raises SnapshotUnavailable (503)"""
    return get_holder(request).current()


def get_scope(scope: Optional[str] = None, ips: Optional[str] = None,
              asns: Optional[str] = None) -> Scope:
    """Scope from query parameters; raises InvalidScope (400)"""
    return parse_scope_parts(scope, ips, asns)
