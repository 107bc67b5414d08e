"""
routing-stats - RPKI origin validation statistics for the global routing table.

Provides:
- Parsers for RIS whois dumps, VRP lists and registry delegation statistics
- A resource index over VRPs and delegations with longest-prefix matching
- RFC 6811 origin validation of every announcement
- Per-country and per-resource reports, on the command line or over HTTP
"""

__version__ = "0.4.0"
__author__ = "RPKI Statistics Project"
