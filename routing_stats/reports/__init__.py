"""
routing-stats Reports Module

Dataset construction, scopes, per-country aggregation and the report
service used by the command line and the HTTP daemon.
"""

from .scope import Scope, parse_scope, parse_scope_parts
from .world import ALL_COUNTRIES, CountStat, CountryStats
from .dataset import Dataset, load_dataset
from .service import LookupResult, ReportService, ResourceReport
from .snapshot import Snapshot, SnapshotHolder

__all__ = [
    "Scope", "parse_scope", "parse_scope_parts",
    "ALL_COUNTRIES", "CountStat", "CountryStats",
    "Dataset", "load_dataset",
    "LookupResult", "ReportService", "ResourceReport",
    "Snapshot", "SnapshotHolder",
]
