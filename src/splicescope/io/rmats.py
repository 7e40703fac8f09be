"""Reader for rMATS event tables.

rMATS writes one table per event type and read counting mode, named
`<TYPE>.MATS.<JC|JCEC>.txt` (e.g. `SE.MATS.JCEC.txt`). Tables are tab
separated with a header row. Exon starts are 0-based in rMATS output and
are converted to 1-based here; ends are already 1-based inclusive.

Replicate columns (IJC_SAMPLE_1, IncLevel1, ...) hold comma separated
values; entries that are not numbers (rMATS writes "NA") are dropped.

Example:
    >>> from splicescope.io.rmats import load_strain, read_rmats_table
    >>> events = read_rmats_table("wt_vs_ko/SE.MATS.JCEC.txt")
    >>> strain = load_strain("wt_vs_ko", name="knockout")
    >>> strain.counts()
    {'A3SS': 120, 'A5SS': 98, 'MXE': 31, 'RI': 57, 'SE': 812}
"""

from __future__ import annotations

import csv
import logging
import math
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from splicescope.events.models import (
    DEFAULT_STRAIN_COLOUR,
    EVENT_CLASSES,
    EVENT_TYPES,
    Event,
    EventType,
    ReadType,
    Strain,
    parse_event_type,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Default strain colours, assigned in load order
STRAIN_PALETTE = (
    "#4e79a7",
    "#f28e2b",
    "#e15759",
    "#76b7b2",
    "#59a14f",
    "#edc948",
    "#b07aa1",
    "#ff9da7",
    "#9c755f",
    "#bab0ac",
)

TABLE_NAME_PATTERN = re.compile(r"^(A3SS|A5SS|MXE|RI|SE)\.MATS\.(JCEC|JC)\.txt$", re.IGNORECASE)

# Columns every table must carry
IDENTITY_COLUMNS = ("ID", "GeneID", "geneSymbol", "chr", "strand")

# rMATS column -> event field, shared by all types
COMMON_COLUMNS = {
    "IJC_SAMPLE_1": "inc_count1",
    "SJC_SAMPLE_1": "skip_count1",
    "IJC_SAMPLE_2": "inc_count2",
    "SJC_SAMPLE_2": "skip_count2",
    "IncLevel1": "psi1",
    "IncLevel2": "psi2",
}

_FLANKING_COORDINATES = {
    "upstreamES": "upstream_exon_start",
    "upstreamEE": "upstream_exon_end",
    "downstreamES": "downstream_exon_start",
    "downstreamEE": "downstream_exon_end",
}

# rMATS coordinate column -> event field, per type. Columns ending in
# "_0base" or "ES" are 0-based starts.
COORDINATE_COLUMNS: dict[EventType, dict[str, str]] = {
    EventType.SE: {
        "exonStart_0base": "exon_start",
        "exonEnd": "exon_end",
        **_FLANKING_COORDINATES,
    },
    EventType.MXE: {
        "1stExonStart_0base": "exon1_start",
        "1stExonEnd": "exon1_end",
        "2ndExonStart_0base": "exon2_start",
        "2ndExonEnd": "exon2_end",
        **_FLANKING_COORDINATES,
    },
    EventType.A3SS: {
        "longExonStart_0base": "long_exon_start",
        "longExonEnd": "long_exon_end",
        "shortES": "short_exon_start",
        "shortEE": "short_exon_end",
        "flankingES": "flanking_exon_start",
        "flankingEE": "flanking_exon_end",
    },
    EventType.RI: {
        "riExonStart_0base": "ri_exon_start",
        "riExonEnd": "ri_exon_end",
        **_FLANKING_COORDINATES,
    },
}
COORDINATE_COLUMNS[EventType.A5SS] = COORDINATE_COLUMNS[EventType.A3SS]


class RmatsFormatError(ValueError):
    """Raised when a file is not a readable rMATS event table."""

    pass


# =============================================================================
# Cell Parsing
# =============================================================================


def parse_number_array(value: str | None) -> list[float]:
    """Parse a comma separated replicate list, dropping non-numeric entries.

    Semicolons are accepted as separators as well, for per-junction count
    columns that separate the two conditions with one.
    """
    if not value or not value.strip():
        return []
    numbers = []
    for item in re.split(r"[,;]", value):
        number = _parse_float(item)
        if number is not None:
            numbers.append(number)
    return numbers


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(value.strip().strip('"'))
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _parse_coordinate(value: str | None, zero_based: bool) -> int | None:
    number = _parse_float(value)
    if number is None or not math.isfinite(number):
        return None
    return int(number) + 1 if zero_based else int(number)


def _is_zero_based(column: str) -> bool:
    return column.endswith("_0base") or column.endswith("ES")


def header_mapping(header: list[str]) -> dict[str, int]:
    """Map column names to indexes; repeated names map to their first column."""
    mapping: dict[str, int] = {}
    for index, name in enumerate(header):
        mapping.setdefault(name.strip(), index)
    return mapping


# =============================================================================
# Table Reading
# =============================================================================


def infer_table_type(path: Path | str) -> tuple[EventType, ReadType] | None:
    """Get the event type and read type from an rMATS table name."""
    match = TABLE_NAME_PATTERN.match(Path(path).name)
    if match is None:
        return None
    return EventType(match.group(1).upper()), ReadType(match.group(2).upper())


def read_rmats_table(
    path: Path | str,
    event_type: EventType | str | None = None,
    read_type: ReadType | str | None = None,
) -> list[Event]:
    """Read one rMATS event table.

    Args:
        path: Table path.
        event_type: Event type of the table. Inferred from the file name
            when not given.
        read_type: Read counting mode. Inferred from the file name when not
            given; left unset when the name does not say.

    Returns:
        Events in file order.

    Raises:
        RmatsFormatError: If the event type cannot be determined or the
            header lacks the identity columns.
    """
    path = Path(path)
    inferred = infer_table_type(path)

    if event_type is None:
        if inferred is None:
            raise RmatsFormatError(f"Cannot infer event type from file name: {path.name}")
        event_type = inferred[0]
    event_type = parse_event_type(event_type)

    if read_type is None and inferred is not None:
        read_type = inferred[1]
    if isinstance(read_type, str):
        read_type = ReadType(read_type.strip().upper())

    event_cls = EVENT_CLASSES[event_type]
    coordinate_columns = COORDINATE_COLUMNS[event_type]

    events: list[Event] = []
    with open(path, newline="") as f:
        reader = csv.reader(f, delimiter="\t")
        header = next(reader, None)
        if header is None:
            raise RmatsFormatError(f"Empty rMATS table: {path}")

        columns = header_mapping(header)
        missing = [name for name in IDENTITY_COLUMNS if name not in columns]
        if missing:
            raise RmatsFormatError(f"{path.name} is missing columns: {', '.join(missing)}")

        for row_number, row in enumerate(reader, start=1):
            if not row or not any(value.strip() for value in row):
                continue

            def cell(name: str) -> str | None:
                index = columns.get(name)
                if index is None or index >= len(row):
                    return None
                return row[index].replace('"', "").strip()

            kwargs: dict[str, Any] = {
                "id": _parse_id(cell("ID"), row_number),
                "gene_id": cell("GeneID") or "",
                "gene_name": cell("geneSymbol") or "",
                "chr": cell("chr") or "",
                "strand": cell("strand") or "",
                "read_type": read_type,
                "inc_form_len": _parse_float(cell("IncFormLen")),
                "skip_form_len": _parse_float(cell("SkipFormLen")),
                "p_value": _default(_parse_float(cell("PValue")), 1.0),
                "fdr": _default(_parse_float(cell("FDR")), 1.0),
                "psi_diff": _parse_float(cell("IncLevelDifference")),
            }
            for column, field in COMMON_COLUMNS.items():
                kwargs[field] = parse_number_array(cell(column))
            for column, field in coordinate_columns.items():
                kwargs[field] = _parse_coordinate(cell(column), _is_zero_based(column))
            for field in event_cls.junction_count_fields:
                kwargs[field] = parse_number_array(cell(field))
            if event_type in (EventType.A3SS, EventType.A5SS):
                kwargs["event_type"] = event_type

            events.append(event_cls(**kwargs))

    logger.info(f"Read {len(events)} {event_type.value} events from {path.name}")
    return events


def _parse_id(value: str | None, row_number: int) -> int:
    number = _parse_float(value)
    return int(number) if number is not None else row_number


def _default(value: float | None, default: float) -> float:
    return default if value is None else value


# =============================================================================
# Strain Loading
# =============================================================================


def find_rmats_tables(
    directory: Path | str,
    read_types: Iterable[ReadType] = tuple(ReadType),
) -> list[tuple[Path, EventType, ReadType]]:
    """List the rMATS tables in a directory, in EVENT_TYPES order."""
    directory = Path(directory)
    wanted = set(read_types)
    found = []
    for path in sorted(directory.iterdir()):
        table_type = infer_table_type(path)
        if table_type is not None and path.is_file() and table_type[1] in wanted:
            found.append((path, *table_type))
    found.sort(key=lambda item: (EVENT_TYPES.index(item[1]), item[2].value))
    return found


def palette_colour(index: int) -> str:
    """Default colour for the strain loaded at a position."""
    return STRAIN_PALETTE[index % len(STRAIN_PALETTE)]


def load_strain(
    directory: Path | str,
    name: str | None = None,
    colour: str | None = None,
    read_types: Iterable[ReadType] = tuple(ReadType),
) -> Strain:
    """Read every rMATS table in an output directory into a Strain.

    Args:
        directory: rMATS output directory.
        name: Strain name. Defaults to the directory name.
        colour: Strain colour. Defaults to the first palette colour.
        read_types: Read counting modes to load.

    Raises:
        FileNotFoundError: If the directory does not exist.
        RmatsFormatError: If it holds no rMATS tables.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"rMATS output directory not found: {directory}")

    tables = find_rmats_tables(directory, read_types)
    if not tables:
        raise RmatsFormatError(f"No rMATS tables found in {directory}")

    strain = Strain(
        name=name or directory.resolve().name,
        colour=colour or DEFAULT_STRAIN_COLOUR,
    )
    for path, event_type, read_type in tables:
        strain.add_events(read_rmats_table(path, event_type, read_type))

    logger.info(f"Loaded strain {strain.name}: {strain.n_events} events")
    return strain
