"""Utility functions for splicescope.

- Interval operations on 1-based inclusive coordinates
- Logging configuration

Example:
    >>> from splicescope.utils import Interval, setup_logging
    >>> setup_logging(verbosity=2)
    >>> Interval(100, 200).length
    101
"""

from splicescope.utils.intervals import Interval, find_overlaps, hull, overlaps, total_length
from splicescope.utils.logging import ProgressLogger, Timer, setup_logging

__all__ = [
    "Interval",
    "overlaps",
    "find_overlaps",
    "hull",
    "total_length",
    "setup_logging",
    "ProgressLogger",
    "Timer",
]
