"""Genomic interval operations.

Intervals here are 1-based and inclusive on both ends, matching rMATS
output (after the 0-based starts are shifted) and Ensembl/GTF exons.

Example:
    >>> from splicescope.utils.intervals import Interval, find_overlaps
    >>> hits = find_overlaps(Interval(100, 600), exons)
"""

from collections.abc import Iterable
from typing import NamedTuple

# =============================================================================
# Data Structures
# =============================================================================


class Interval(NamedTuple):
    """A closed genomic interval.

    Attributes:
        start: Start position (1-based, inclusive).
        end: End position (1-based, inclusive).
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        """Get interval length."""
        return self.end - self.start + 1

    def overlaps(self, other: "Interval") -> bool:
        """Check if this interval overlaps another."""
        return overlaps(self, other)

    def contains(self, position: int) -> bool:
        """Check if this interval contains a position."""
        return self.start <= position <= self.end


# =============================================================================
# Overlap Operations
# =============================================================================


def overlaps(a: Interval, b: Interval) -> bool:
    """Check if two closed intervals share at least one position.

    Args:
        a: First interval.
        b: Second interval.

    Returns:
        True if intervals overlap.
    """
    return a.start <= b.end and b.start <= a.end


def find_overlaps(
    query: Interval,
    targets: Iterable[Interval],
) -> list[tuple[int, Interval]]:
    """Find all intervals that overlap a query.

    Args:
        query: Query interval.
        targets: Target intervals.

    Returns:
        List of (index, interval) tuples for overlapping intervals.
    """
    return [(i, target) for i, target in enumerate(targets) if overlaps(query, target)]


def hull(intervals: Iterable[Interval]) -> Interval | None:
    """Smallest interval covering all given intervals, None if there are none."""
    intervals = list(intervals)
    if not intervals:
        return None
    return Interval(min(i.start for i in intervals), max(i.end for i in intervals))


# =============================================================================
# Length Operations
# =============================================================================


def total_length(intervals: Iterable[Interval]) -> int:
    """Summed inclusive length of intervals, overlaps counted twice."""
    return sum(interval.end - interval.start + 1 for interval in intervals)
