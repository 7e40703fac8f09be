"""Splice event geometry.

Pure functions deriving genomic geometry from an event record:

- positions: bounding span of all event coordinates
- splicing_exons: ordered exon blocks and junctions with their roles
- canonical_id: identifier built from gene, type, location and geometry

Block order is fixed per event type and strand. Exon blocks are listed
left to right in genomic order, with roles named in transcription order
(on the minus strand the downstream exon is the leftmost block). Junction
pseudo-blocks follow the exon blocks; their start is the end of one exon
and their end the start of the next.

Nothing here is cached and nothing raises on malformed input: blocks with
a missing or non-finite coordinate are dropped.

Example:
    >>> from splicescope.events.geometry import positions, splicing_exons
    >>> positions(event)
    Span(start=100, end=600)
    >>> [block.role.value for block in splicing_exons(event)]
    ['upstream', 'target', 'downstream', 'junction', 'junction', 'junction']
"""

from __future__ import annotations

import math
from collections.abc import Callable
from enum import Enum
from typing import Any, NamedTuple

from splicescope.events.models import EventType, is_finite_coordinate

# =============================================================================
# Data Structures
# =============================================================================


class ExonRole(Enum):
    """Role of a geometry block within an event."""

    JUNCTION = "junction"  # Splice junction between two exons
    UPSTREAM = "upstream"  # 5' flanking exon (SE, MXE, RI)
    DOWNSTREAM = "downstream"  # 3' flanking exon (SE, MXE, RI)
    FIRST = "first"  # MXE exon 1
    SECOND = "second"  # MXE exon 2
    FLANKING = "flanking"  # Constant exon of A3SS/A5SS
    LONG = "long"  # Long form of the alternative exon
    SHORT = "short"  # Short form of the alternative exon
    INTRON = "intron"  # Retained intron span
    TARGET = "target"  # Skipped exon


FLANKING_ROLES = frozenset({ExonRole.UPSTREAM, ExonRole.DOWNSTREAM, ExonRole.FLANKING})


class ExonSpan(NamedTuple):
    """One geometry block.

    Attributes:
        start: Start coordinate (1-based, inclusive).
        end: End coordinate (1-based, inclusive).
        role: Role of the block in the event.
        inclusion: True if the block belongs to the inclusion isoform
            (for junctions: read when the inclusion isoform is expressed).
    """

    start: int
    end: int
    role: ExonRole
    inclusion: bool

    @property
    def is_junction(self) -> bool:
        """Check if this block is a junction rather than an exon."""
        return self.role is ExonRole.JUNCTION


class Span(NamedTuple):
    """Bounding span of an event.

    An event without usable coordinates gets the empty span (inf, -inf).
    """

    start: float
    end: float

    @property
    def is_empty(self) -> bool:
        """True when the span carries no geometry."""
        return not (math.isfinite(self.start) and math.isfinite(self.end))

    @property
    def length(self) -> int:
        """Inclusive span length, 0 for the empty span."""
        if self.is_empty:
            return 0
        return int(self.end - self.start + 1)


EMPTY_SPAN = Span(math.inf, -math.inf)

_Block = tuple[Any, Any, ExonRole, bool]


# =============================================================================
# Bounds
# =============================================================================


def positions(event: Any) -> Span:
    """Bounding span over the event's type-specific coordinates.

    Missing and non-finite coordinates are skipped. Unknown event types and
    events without any usable coordinate yield EMPTY_SPAN.

    Args:
        event: Event record.

    Returns:
        Span with start = min over exon starts and end = max over exon ends.
    """
    if getattr(event, "event_type", None) not in _BUILDERS:
        return EMPTY_SPAN

    starts = []
    ends = []
    for name in event.coordinate_fields:
        value = getattr(event, name)
        if not is_finite_coordinate(value):
            continue
        if name.endswith("_start"):
            starts.append(value)
        else:
            ends.append(value)

    if not starts and not ends:
        return EMPTY_SPAN

    start = min(starts) if starts else min(ends)
    end = max(ends) if ends else max(starts)
    return Span(start, end)


# =============================================================================
# Exon Blocks per Event Type
# =============================================================================


def _se_blocks(event: Any) -> list[_Block]:
    if event.strand == "-":
        return [
            (event.downstream_exon_start, event.downstream_exon_end, ExonRole.DOWNSTREAM, True),
            (event.exon_start, event.exon_end, ExonRole.TARGET, True),
            (event.upstream_exon_start, event.upstream_exon_end, ExonRole.UPSTREAM, True),
            (event.downstream_exon_end, event.upstream_exon_start, ExonRole.JUNCTION, False),
            (event.downstream_exon_end, event.exon_start, ExonRole.JUNCTION, True),
            (event.exon_end, event.upstream_exon_start, ExonRole.JUNCTION, True),
        ]
    return [
        (event.upstream_exon_start, event.upstream_exon_end, ExonRole.UPSTREAM, True),
        (event.exon_start, event.exon_end, ExonRole.TARGET, True),
        (event.downstream_exon_start, event.downstream_exon_end, ExonRole.DOWNSTREAM, True),
        (event.upstream_exon_end, event.downstream_exon_start, ExonRole.JUNCTION, False),
        (event.exon_end, event.downstream_exon_start, ExonRole.JUNCTION, True),
        (event.upstream_exon_end, event.exon_start, ExonRole.JUNCTION, True),
    ]


def _mxe_blocks(event: Any) -> list[_Block]:
    # Exon 1 is the inclusion form on +, exon 2 on - (rMATS convention)
    if event.strand == "-":
        return [
            (event.downstream_exon_start, event.downstream_exon_end, ExonRole.DOWNSTREAM, True),
            (event.exon2_start, event.exon2_end, ExonRole.SECOND, True),
            (event.exon1_start, event.exon1_end, ExonRole.FIRST, False),
            (event.upstream_exon_start, event.upstream_exon_end, ExonRole.UPSTREAM, True),
            (event.downstream_exon_end, event.exon2_start, ExonRole.JUNCTION, True),
            (event.exon2_end, event.upstream_exon_start, ExonRole.JUNCTION, True),
            (event.downstream_exon_end, event.exon1_start, ExonRole.JUNCTION, False),
            (event.exon1_end, event.upstream_exon_start, ExonRole.JUNCTION, False),
        ]
    return [
        (event.upstream_exon_start, event.upstream_exon_end, ExonRole.UPSTREAM, True),
        (event.exon1_start, event.exon1_end, ExonRole.FIRST, True),
        (event.exon2_start, event.exon2_end, ExonRole.SECOND, False),
        (event.downstream_exon_start, event.downstream_exon_end, ExonRole.DOWNSTREAM, True),
        (event.upstream_exon_end, event.exon1_start, ExonRole.JUNCTION, True),
        (event.exon1_end, event.downstream_exon_start, ExonRole.JUNCTION, True),
        (event.upstream_exon_end, event.exon2_start, ExonRole.JUNCTION, False),
        (event.exon2_end, event.downstream_exon_start, ExonRole.JUNCTION, False),
    ]


def _ass_blocks(event: Any) -> list[_Block]:
    # The flanking exon lies 5' of the alternative exon for A3SS and 3' of it
    # for A5SS, so it is the leftmost block for A3SS(+) and A5SS(-).
    flanking_left = (event.event_type is EventType.A3SS) == (event.strand != "-")
    if flanking_left:
        return [
            (event.flanking_exon_start, event.flanking_exon_end, ExonRole.FLANKING, True),
            (event.long_exon_start, event.long_exon_end, ExonRole.LONG, True),
            (event.short_exon_start, event.short_exon_end, ExonRole.SHORT, False),
            (event.flanking_exon_end, event.short_exon_start, ExonRole.JUNCTION, False),
            (event.flanking_exon_end, event.long_exon_start, ExonRole.JUNCTION, True),
        ]
    return [
        (event.long_exon_start, event.long_exon_end, ExonRole.LONG, True),
        (event.short_exon_start, event.short_exon_end, ExonRole.SHORT, False),
        (event.flanking_exon_start, event.flanking_exon_end, ExonRole.FLANKING, True),
        (event.short_exon_end, event.flanking_exon_start, ExonRole.JUNCTION, False),
        (event.long_exon_end, event.flanking_exon_start, ExonRole.JUNCTION, True),
    ]


def _ri_blocks(event: Any) -> list[_Block]:
    intron = (event.upstream_exon_end, event.downstream_exon_start, ExonRole.INTRON, True)
    if event.strand == "-":
        return [
            (event.downstream_exon_start, event.downstream_exon_end, ExonRole.DOWNSTREAM, True),
            intron,
            (event.upstream_exon_start, event.upstream_exon_end, ExonRole.UPSTREAM, True),
        ]
    return [
        (event.upstream_exon_start, event.upstream_exon_end, ExonRole.UPSTREAM, True),
        intron,
        (event.downstream_exon_start, event.downstream_exon_end, ExonRole.DOWNSTREAM, True),
    ]


_BUILDERS: dict[EventType, Callable[[Any], list[_Block]]] = {
    EventType.SE: _se_blocks,
    EventType.MXE: _mxe_blocks,
    EventType.A3SS: _ass_blocks,
    EventType.A5SS: _ass_blocks,
    EventType.RI: _ri_blocks,
}


def splicing_exons(event: Any) -> list[ExonSpan]:
    """Ordered exon and junction blocks of an event.

    Args:
        event: Event record.

    Returns:
        Exon blocks followed by junction blocks. Blocks with a missing or
        non-finite coordinate are omitted; unknown event types give [].
    """
    builder = _BUILDERS.get(getattr(event, "event_type", None))
    if builder is None:
        return []

    return [
        ExonSpan(start, end, role, inclusion)
        for start, end, role, inclusion in builder(event)
        if is_finite_coordinate(start) and is_finite_coordinate(end)
    ]


def isoform_roles(event: Any) -> tuple[frozenset[ExonRole], frozenset[ExonRole]]:
    """Exon roles of the inclusion and of the skipping isoform.

    Unlike splicing_exons(), this ignores coordinates: the roles returned
    are those the event type and strand define, so comparing them with the
    roles of the usable blocks tells whether an isoform lost an exon.

    Returns:
        (inclusion roles, skipping roles); two empty sets for unknown types.
    """
    builder = _BUILDERS.get(getattr(event, "event_type", None))
    if builder is None:
        return frozenset(), frozenset()

    exons = [
        (role, inclusion)
        for _, _, role, inclusion in builder(event)
        if role is not ExonRole.JUNCTION
    ]
    return (
        frozenset(role for role, inclusion in exons if inclusion),
        frozenset(role for role, inclusion in exons if role in FLANKING_ROLES or not inclusion),
    )


# =============================================================================
# Identifier
# =============================================================================


def _format_coordinate(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def canonical_id(event: Any) -> str:
    """Identifier derived from gene, event type, location and geometry.

    Format: geneName_eventType_chr_strand_start_end[_start_end...], with the
    coordinate pairs in splicing_exons() order. Two records describing the
    same physical event produce the same identifier whatever their row IDs.
    """
    event_type = getattr(event, "event_type", "")
    parts = [
        str(event.gene_name),
        event_type.value if isinstance(event_type, EventType) else str(event_type),
        str(event.chr),
        str(event.strand),
    ]
    for block in splicing_exons(event):
        parts.append(_format_coordinate(block.start))
        parts.append(_format_coordinate(block.end))
    return "_".join(parts)
