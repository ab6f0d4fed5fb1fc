"""Utility functions."""
from contentdesk.utils.clock import to_micros, utcnow

__all__ = [
    "to_micros",
    "utcnow",
]
