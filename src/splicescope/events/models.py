"""Splicing event records.

This module defines the in-memory representation of alternative splicing
events as reported by rMATS, one record class per event topology:

- SEEvent: skipped exon
- MXEEvent: mutually exclusive exons
- ASSEvent: alternative 3' or 5' splice site (A3SS / A5SS)
- RIEvent: retained intron

All coordinates are 1-based and inclusive. A coordinate that could not be
read is stored as None and is ignored by the geometry functions.

Example:
    >>> from splicescope.events.models import SEEvent, Strain
    >>> event = SEEvent(
    ...     id=1, gene_id="ENSG01", gene_name="GENE1", chr="chr1", strand="+",
    ...     exon_start=300, exon_end=400,
    ...     upstream_exon_start=100, upstream_exon_end=200,
    ...     downstream_exon_start=500, downstream_exon_end=600,
    ... )
    >>> strain = Strain(name="wild_type", se=[event])
"""

from __future__ import annotations

import math
import numbers
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any, ClassVar, Literal, Union

import attrs
import numpy as np

# =============================================================================
# Enums
# =============================================================================


class EventType(Enum):
    """Alternative splicing event topologies."""

    A3SS = "A3SS"  # Alternative 3' splice site
    A5SS = "A5SS"  # Alternative 5' splice site
    MXE = "MXE"  # Mutually exclusive exons
    RI = "RI"  # Retained intron
    SE = "SE"  # Skipped exon


class ReadType(Enum):
    """rMATS read counting mode."""

    JC = "JC"  # Junction counts only
    JCEC = "JCEC"  # Junction counts plus exon body counts


EVENT_TYPES: tuple[EventType, ...] = tuple(EventType)

Strand = Literal["+", "-"]

DEFAULT_STRAIN_COLOUR = "#4e79a7"


# =============================================================================
# Exceptions
# =============================================================================


class UnknownEventTypeError(ValueError):
    """Raised when an event type is not one of the five known topologies."""

    pass


# =============================================================================
# Helpers
# =============================================================================


def parse_event_type(value: str | EventType) -> EventType:
    """Convert a string such as "SE" to an EventType.

    Raises:
        UnknownEventTypeError: If the value names no known event type.
    """
    if isinstance(value, EventType):
        return value
    try:
        return EventType(str(value).strip().upper())
    except ValueError:
        raise UnknownEventTypeError(f"unrecognized event type: {value!r}") from None


def average(values: Iterable[float]) -> float:
    """Mean of replicate values, 0.0 for an empty list."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def is_finite_coordinate(value: Any) -> bool:
    """Check that a coordinate is present and a finite number."""
    if value is None or isinstance(value, bool):
        return False
    return isinstance(value, numbers.Real) and math.isfinite(value)


# =============================================================================
# Event Records
# =============================================================================


@attrs.define(slots=True, kw_only=True)
class SplicingEvent:
    """Fields shared by every event type.

    Attributes:
        id: Row identifier from the source table.
        gene_id: Gene identifier (e.g. Ensembl gene ID).
        gene_name: Gene symbol.
        chr: Chromosome name.
        strand: Strand (+ or -).
        read_type: Counting mode of the source table, if known.
        inc_count1: Inclusion junction counts, condition 1 replicates.
        skip_count1: Skipping junction counts, condition 1 replicates.
        inc_count2: Inclusion junction counts, condition 2 replicates.
        skip_count2: Skipping junction counts, condition 2 replicates.
        inc_form_len: Effective length of the inclusion isoform.
        skip_form_len: Effective length of the skipping isoform.
        p_value: Significance of the PSI difference.
        fdr: Multiple-testing corrected p-value.
        psi1: Inclusion level per replicate, condition 1.
        psi2: Inclusion level per replicate, condition 2.
        psi_diff: Mean PSI difference (psi1 - psi2). Computed when not given.
    """

    event_type: ClassVar[EventType]
    coordinate_fields: ClassVar[tuple[str, ...]] = ()
    junction_count_fields: ClassVar[tuple[str, ...]] = ()

    id: int
    gene_id: str
    gene_name: str
    chr: str
    strand: str
    read_type: ReadType | None = None

    inc_count1: list[float] = attrs.Factory(list)
    skip_count1: list[float] = attrs.Factory(list)
    inc_count2: list[float] = attrs.Factory(list)
    skip_count2: list[float] = attrs.Factory(list)
    inc_form_len: float | None = None
    skip_form_len: float | None = None

    p_value: float = 1.0
    fdr: float = 1.0

    psi1: list[float] = attrs.Factory(list)
    psi2: list[float] = attrs.Factory(list)
    psi_diff: float | None = None

    # Derived replicate means
    inc_count1_avg: float = attrs.field(init=False, default=0.0)
    skip_count1_avg: float = attrs.field(init=False, default=0.0)
    inc_count2_avg: float = attrs.field(init=False, default=0.0)
    skip_count2_avg: float = attrs.field(init=False, default=0.0)
    psi1_avg: float = attrs.field(init=False, default=0.0)
    psi2_avg: float = attrs.field(init=False, default=0.0)

    def __attrs_post_init__(self) -> None:
        self.refresh_averages()

    def refresh_averages(self) -> None:
        """Recompute replicate means after the count or PSI arrays change."""
        self.inc_count1_avg = average(self.inc_count1)
        self.skip_count1_avg = average(self.skip_count1)
        self.inc_count2_avg = average(self.inc_count2)
        self.skip_count2_avg = average(self.skip_count2)
        self.psi1_avg = average(self.psi1)
        self.psi2_avg = average(self.psi2)
        if self.psi_diff is None:
            self.psi_diff = self.psi1_avg - self.psi2_avg

    def coordinates(self) -> dict[str, int | None]:
        """Type-specific coordinate values keyed by field name."""
        return {name: getattr(self, name) for name in self.coordinate_fields}

    def junction_counts(self) -> dict[str, list[float]]:
        """Type-specific junction read-count arrays keyed by field name."""
        return {name: getattr(self, name) for name in self.junction_count_fields}


@attrs.define(slots=True, kw_only=True)
class SEEvent(SplicingEvent):
    """Skipped exon: a target exon between upstream and downstream exons."""

    event_type: ClassVar[EventType] = EventType.SE
    coordinate_fields: ClassVar[tuple[str, ...]] = (
        "exon_start",
        "exon_end",
        "upstream_exon_start",
        "upstream_exon_end",
        "downstream_exon_start",
        "downstream_exon_end",
    )
    junction_count_fields: ClassVar[tuple[str, ...]] = (
        "upstream_to_target_count",
        "target_to_downstream_count",
        "upstream_to_downstream_count",
        "target_count",
    )

    exon_start: int | None = None
    exon_end: int | None = None
    upstream_exon_start: int | None = None
    upstream_exon_end: int | None = None
    downstream_exon_start: int | None = None
    downstream_exon_end: int | None = None

    upstream_to_target_count: list[float] = attrs.Factory(list)
    target_to_downstream_count: list[float] = attrs.Factory(list)
    upstream_to_downstream_count: list[float] = attrs.Factory(list)
    target_count: list[float] = attrs.Factory(list)


@attrs.define(slots=True, kw_only=True)
class MXEEvent(SplicingEvent):
    """Mutually exclusive exons between upstream and downstream exons."""

    event_type: ClassVar[EventType] = EventType.MXE
    coordinate_fields: ClassVar[tuple[str, ...]] = (
        "exon1_start",
        "exon1_end",
        "exon2_start",
        "exon2_end",
        "upstream_exon_start",
        "upstream_exon_end",
        "downstream_exon_start",
        "downstream_exon_end",
    )
    junction_count_fields: ClassVar[tuple[str, ...]] = (
        "upstream_to_first_count",
        "first_to_downstream_count",
        "upstream_to_second_count",
        "second_to_downstream_count",
        "first_count",
        "second_count",
    )

    exon1_start: int | None = None
    exon1_end: int | None = None
    exon2_start: int | None = None
    exon2_end: int | None = None
    upstream_exon_start: int | None = None
    upstream_exon_end: int | None = None
    downstream_exon_start: int | None = None
    downstream_exon_end: int | None = None

    upstream_to_first_count: list[float] = attrs.Factory(list)
    first_to_downstream_count: list[float] = attrs.Factory(list)
    upstream_to_second_count: list[float] = attrs.Factory(list)
    second_to_downstream_count: list[float] = attrs.Factory(list)
    first_count: list[float] = attrs.Factory(list)
    second_count: list[float] = attrs.Factory(list)


def _validate_ass_type(instance: Any, attribute: attrs.Attribute, value: EventType) -> None:
    if value not in (EventType.A3SS, EventType.A5SS):
        raise UnknownEventTypeError(
            f"alternative splice site events must be A3SS or A5SS, got {value!r}"
        )


@attrs.define(slots=True, kw_only=True)
class ASSEvent(SplicingEvent):
    """Alternative splice site: a long and a short form of one exon plus a flanking exon.

    A3SS and A5SS share this shape. The instance carries its own event_type.
    """

    coordinate_fields: ClassVar[tuple[str, ...]] = (
        "long_exon_start",
        "long_exon_end",
        "short_exon_start",
        "short_exon_end",
        "flanking_exon_start",
        "flanking_exon_end",
    )
    junction_count_fields: ClassVar[tuple[str, ...]] = (
        "across_short_boundary_count",
        "long_to_flanking_count",
        "exclusive_to_long_count",
        "short_to_flanking_count",
    )

    event_type: EventType = attrs.field(converter=parse_event_type, validator=_validate_ass_type)

    long_exon_start: int | None = None
    long_exon_end: int | None = None
    short_exon_start: int | None = None
    short_exon_end: int | None = None
    flanking_exon_start: int | None = None
    flanking_exon_end: int | None = None

    across_short_boundary_count: list[float] = attrs.Factory(list)
    long_to_flanking_count: list[float] = attrs.Factory(list)
    exclusive_to_long_count: list[float] = attrs.Factory(list)
    short_to_flanking_count: list[float] = attrs.Factory(list)


@attrs.define(slots=True, kw_only=True)
class RIEvent(SplicingEvent):
    """Retained intron: an exon spanning upstream exon, intron and downstream exon."""

    event_type: ClassVar[EventType] = EventType.RI
    coordinate_fields: ClassVar[tuple[str, ...]] = (
        "ri_exon_start",
        "ri_exon_end",
        "upstream_exon_start",
        "upstream_exon_end",
        "downstream_exon_start",
        "downstream_exon_end",
    )
    junction_count_fields: ClassVar[tuple[str, ...]] = (
        "upstream_to_intron_count",
        "intron_to_downstream_count",
        "upstream_to_downstream_count",
        "intron_count",
    )

    ri_exon_start: int | None = None
    ri_exon_end: int | None = None
    upstream_exon_start: int | None = None
    upstream_exon_end: int | None = None
    downstream_exon_start: int | None = None
    downstream_exon_end: int | None = None

    upstream_to_intron_count: list[float] = attrs.Factory(list)
    intron_to_downstream_count: list[float] = attrs.Factory(list)
    upstream_to_downstream_count: list[float] = attrs.Factory(list)
    intron_count: list[float] = attrs.Factory(list)


Event = Union[SEEvent, MXEEvent, ASSEvent, RIEvent]

EVENT_CLASSES: dict[EventType, type[SplicingEvent]] = {
    EventType.A3SS: ASSEvent,
    EventType.A5SS: ASSEvent,
    EventType.MXE: MXEEvent,
    EventType.RI: RIEvent,
    EventType.SE: SEEvent,
}


# =============================================================================
# Strain
# =============================================================================


@attrs.define
class Strain:
    """A named set of events, one list per event type.

    Attributes:
        name: Strain (sample group) name, unique within a session.
        colour: Display colour.
        visible: Whether the strain takes part in filtering.
        a3ss: A3SS events in source order.
        a5ss: A5SS events in source order.
        mxe: MXE events in source order.
        ri: RI events in source order.
        se: SE events in source order.
    """

    name: str
    colour: str = DEFAULT_STRAIN_COLOUR
    visible: bool = True
    a3ss: list[ASSEvent] = attrs.Factory(list)
    a5ss: list[ASSEvent] = attrs.Factory(list)
    mxe: list[MXEEvent] = attrs.Factory(list)
    ri: list[RIEvent] = attrs.Factory(list)
    se: list[SEEvent] = attrs.Factory(list)

    def events(self, event_type: EventType | str) -> list[Any]:
        """Get the event list for one event type."""
        return getattr(self, parse_event_type(event_type).value.lower())

    def iter_events(
        self,
        event_types: Iterable[EventType] | None = None,
    ) -> Iterator[Event]:
        """Iterate events type by type, in EVENT_TYPES order by default."""
        for event_type in event_types if event_types is not None else EVENT_TYPES:
            yield from self.events(event_type)

    def add_events(self, events: Iterable[Event]) -> None:
        """Append events to the list matching each event's type."""
        for event in events:
            self.events(event.event_type).append(event)

    @property
    def n_events(self) -> int:
        """Total number of events across all types."""
        return sum(len(self.events(t)) for t in EVENT_TYPES)

    def counts(self) -> dict[str, int]:
        """Number of events per event type."""
        return {t.value: len(self.events(t)) for t in EVENT_TYPES}
