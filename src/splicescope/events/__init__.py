"""Splicing event records and their geometry.

- Event records for SE, MXE, A3SS/A5SS and RI events
- Strain containers grouping events by type
- Geometry: bounding span, exon/junction blocks, canonical identifier

Example:
    >>> from splicescope.events import SEEvent, canonical_id, splicing_exons
    >>> blocks = splicing_exons(event)
    >>> canonical_id(event)
    'GENE1_SE_chr1_+_100_200_300_400_500_600_200_500_400_500_200_300'
"""

from splicescope.events.geometry import (
    EMPTY_SPAN,
    FLANKING_ROLES,
    ExonRole,
    ExonSpan,
    Span,
    canonical_id,
    isoform_roles,
    positions,
    splicing_exons,
)
from splicescope.events.models import (
    EVENT_CLASSES,
    EVENT_TYPES,
    ASSEvent,
    Event,
    EventType,
    MXEEvent,
    ReadType,
    RIEvent,
    SEEvent,
    SplicingEvent,
    Strain,
    UnknownEventTypeError,
    average,
    parse_event_type,
)

__all__ = [
    # Models
    "EventType",
    "ReadType",
    "EVENT_TYPES",
    "EVENT_CLASSES",
    "SplicingEvent",
    "SEEvent",
    "MXEEvent",
    "ASSEvent",
    "RIEvent",
    "Event",
    "Strain",
    "UnknownEventTypeError",
    "parse_event_type",
    "average",
    # Geometry
    "ExonRole",
    "ExonSpan",
    "Span",
    "EMPTY_SPAN",
    "FLANKING_ROLES",
    "positions",
    "splicing_exons",
    "isoform_roles",
    "canonical_id",
]
