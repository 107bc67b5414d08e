"""
routing-stats Validators Module

RFC 6811 route origin validation of announcements against VRPs.
"""

from .rov import RouteOriginValidator, classify, count_states, derive_state

__all__ = ["RouteOriginValidator", "classify", "count_states", "derive_state"]
