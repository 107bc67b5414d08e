"""
routing-stats Processors Module

Parsers for the bulk snapshot inputs: RIS whois dumps, VRP lists and
registry delegation statistics.
"""

from .common import ParseStats
from .delegations import read_delegation_file
from .ris import read_ris_file
from .vrps import read_vrp_file

__all__ = ["ParseStats", "read_delegation_file", "read_ris_file", "read_vrp_file"]
