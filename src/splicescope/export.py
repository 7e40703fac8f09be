"""Delimited export of filtered splicing events.

One row per event, columns in a fixed order:

1. event_id (canonical ID), gene_name, chr, strand
2. inc_count1, skip_count1, inc_count2, skip_count2 (replicate lists)
3. inc_form_len, skip_form_len, p_value, fdr, psi1, psi2, psi_diff
4. the type-specific coordinate columns, then junction count columns
5. optionally: inclusion_biotype, skipping_biotype,
   inclusion_transcript_id, skipping_transcript_id

Replicate lists are comma joined; an empty list or a missing value is
written as "N/A".

Example:
    >>> from splicescope.export import export_strains
    >>> paths = export_strains(pipeline, "exports/", annotator=annotator)
"""

from __future__ import annotations

import csv
import logging
import math
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from splicescope.annotation.classify import NOT_AVAILABLE, Classification
from splicescope.annotation.sources import EventAnnotator
from splicescope.config import DEFAULT_DELIMITER
from splicescope.events.geometry import canonical_id
from splicescope.events.models import EVENT_CLASSES, Event, EventType, parse_event_type
from splicescope.utils.logging import Timer

logger = logging.getLogger(__name__)

# =============================================================================
# Columns
# =============================================================================

BASE_COLUMNS = (
    "event_id",
    "gene_name",
    "chr",
    "strand",
    "inc_count1",
    "skip_count1",
    "inc_count2",
    "skip_count2",
    "inc_form_len",
    "skip_form_len",
    "p_value",
    "fdr",
    "psi1",
    "psi2",
    "psi_diff",
)

ANNOTATION_COLUMNS = (
    "inclusion_biotype",
    "skipping_biotype",
    "inclusion_transcript_id",
    "skipping_transcript_id",
)


def _event_class(event_type: Any) -> type:
    return EVENT_CLASSES[parse_event_type(event_type)]


def export_header(event_type: EventType | str, include_annotation: bool = False) -> list[str]:
    """Column names for one event type.

    Raises:
        UnknownEventTypeError: If the event type is not recognized.
    """
    event_cls = _event_class(event_type)
    header = [*BASE_COLUMNS, *event_cls.coordinate_fields, *event_cls.junction_count_fields]
    if include_annotation:
        header.extend(ANNOTATION_COLUMNS)
    return header


# =============================================================================
# Formatting
# =============================================================================


def format_value(value: Any) -> str:
    """Format a scalar cell; integral floats lose their ".0"."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, float):
        if not math.isfinite(value):
            return NOT_AVAILABLE
        if value.is_integer():
            return str(int(value))
    return str(value)


def format_array(values: Sequence[Any] | None) -> str:
    """Format a replicate list as comma joined values, "N/A" when empty."""
    if not values:
        return NOT_AVAILABLE
    return ",".join(format_value(v) for v in values)


def export_row(event: Event, classification: Classification | None = None) -> list[str]:
    """Format one event as export cells.

    Args:
        event: Event to format.
        classification: Annotation of the event. When given, the four
            classifier columns are appended.

    Raises:
        UnknownEventTypeError: If the event's type is not recognized.
    """
    event_cls = _event_class(getattr(event, "event_type", None))

    row = [
        canonical_id(event),
        event.gene_name or NOT_AVAILABLE,
        event.chr or NOT_AVAILABLE,
        event.strand or NOT_AVAILABLE,
        format_array(event.inc_count1),
        format_array(event.skip_count1),
        format_array(event.inc_count2),
        format_array(event.skip_count2),
        format_value(event.inc_form_len),
        format_value(event.skip_form_len),
        format_value(event.p_value),
        format_value(event.fdr),
        format_array(event.psi1),
        format_array(event.psi2),
        format_value(event.psi_diff),
    ]
    row.extend(format_value(getattr(event, name, None)) for name in event_cls.coordinate_fields)
    row.extend(format_array(getattr(event, name, None)) for name in event_cls.junction_count_fields)

    if classification is not None:
        row.extend(classification.to_columns())
    return row


# =============================================================================
# Writing
# =============================================================================


def write_events(
    events: Iterable[Event],
    path: Path | str,
    delimiter: str = DEFAULT_DELIMITER,
    classifications: Sequence[Classification] | None = None,
    event_type: EventType | str | None = None,
) -> int:
    """Write events of one type to a delimited file.

    Args:
        events: Events, all of the same type.
        path: Output path.
        delimiter: Column delimiter.
        classifications: One classification per event, in event order.
            Adds the classifier columns when given.
        event_type: Type used for the header. Defaults to the type of the
            first event; required when there are no events.

    Returns:
        Number of rows written.

    Raises:
        ValueError: If events of different types are mixed, the
            classifications do not line up with the events, or the type of
            an empty table is not given.
    """
    events = list(events)
    if event_type is None:
        if not events:
            raise ValueError("event_type is required to export an empty event list")
        event_type = events[0].event_type
    event_type = parse_event_type(event_type)

    if any(event.event_type is not event_type for event in events):
        raise ValueError(f"Cannot mix event types in one {event_type.value} table")
    if classifications is not None and len(classifications) != len(events):
        raise ValueError(
            f"Got {len(classifications)} classifications for {len(events)} events"
        )

    include_annotation = classifications is not None
    with open(path, "w", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(export_header(event_type, include_annotation))
        for index, event in enumerate(events):
            classification = classifications[index] if include_annotation else None
            writer.writerow(export_row(event, classification))

    logger.debug(f"Wrote {len(events)} {event_type.value} events to {path}")
    return len(events)


def export_filename(strain_name: str, event_type: EventType, delimiter: str = DEFAULT_DELIMITER) -> str:
    """File name for one strain and event type, e.g. knockout_SE.tsv."""
    safe_name = re.sub(r"[^\w.-]+", "_", strain_name).strip("_") or "strain"
    suffix = "csv" if delimiter == "," else "tsv"
    return f"{safe_name}_{event_type.value}.{suffix}"


def export_strains(
    pipeline: Any,
    output_dir: Path | str,
    annotator: EventAnnotator | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> list[Path]:
    """Write the filtered events of every visible strain.

    One file per strain and selected event type, named by export_filename().
    Classifier columns are added when an annotator is given; genes whose
    transcripts cannot be looked up get "N/A" cells.

    Args:
        pipeline: FilterPipeline holding the filtered events.
        output_dir: Directory for the files, created if missing.
        annotator: Annotator for the classifier columns.
        delimiter: Column delimiter.

    Returns:
        Paths of the files written.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    event_types = pipeline.settings.event_types()

    written: list[Path] = []
    with Timer("Export", logger):
        for strain in pipeline.get_filtered_strains():
            for event_type in event_types:
                events = [e for e in strain.events if e.event_type is event_type]
                classifications = None
                if annotator is not None:
                    classifications = annotator.annotate_all(events)

                path = output_dir / export_filename(strain.name, event_type, delimiter)
                write_events(
                    events,
                    path,
                    delimiter=delimiter,
                    classifications=classifications,
                    event_type=event_type,
                )
                written.append(path)

            logger.info(f"Exported {strain.pass_count} events for {strain.name}")

    return written


def write_gene_membership(membership: dict[str, list[str]], path: Path | str) -> int:
    """Write gene ID -> strain membership as a TSV.

    Columns: gene_id, n_strains, strains (comma joined). Rows are sorted by
    gene ID.

    Returns:
        Number of genes written.
    """
    with open(path, "w", newline="") as f:
        writer = csv.writer(f, delimiter="\t")
        writer.writerow(["gene_id", "n_strains", "strains"])
        for gene_id, strains in sorted(membership.items()):
            writer.writerow([gene_id, len(strains), ",".join(strains)])
    return len(membership)
