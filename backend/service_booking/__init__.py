"""Booking consistency engine for a multi-provider service marketplace."""

__version__ = "1.0.0"
