"""
Wraparound integer intervals.

This module provides the abstract domain of the range analysis: possibly
wrapping intervals of fixed-width machine words, with sound transfer
functions for the integer operations of the IR.
"""

from .icmp import allowed_icmp_region, icmp_holds, satisfying_icmp_region
from .value_range import IntervalRange

__all__ = ["IntervalRange", "allowed_icmp_region", "satisfying_icmp_region", "icmp_holds"]
