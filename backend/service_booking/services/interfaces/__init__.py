"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .exclusion_index import ExclusionConstraintIntervalIndex
from .interval_index import IntervalIndex

__all__ = ["IntervalIndex", "ExclusionConstraintIntervalIndex"]
