"""Transcript models used for event annotation.

Transcripts come from two external sources, both consumed in their parsed
shape only:

- Ensembl REST `lookup/symbol` responses with `expand=1`
- Gene models parsed from a GTF file (one dict per gene)

Both are converted to Transcript records and ranked with
rank_transcripts(), which defines the order in which the classifier picks
its best candidate.

Example:
    >>> from splicescope.annotation.transcripts import (
    ...     rank_transcripts, transcripts_from_ensembl,
    ... )
    >>> transcripts = rank_transcripts(transcripts_from_ensembl(lookup))
    >>> transcripts[0].is_canonical
    True
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import attrs

from splicescope.utils.intervals import Interval, total_length

# =============================================================================
# Constants
# =============================================================================

# Lower ranks first
BIOTYPE_SORT_ORDER: dict[str, int] = {
    "protein_coding": 1,
    "protein_coding_LoF": 2,
    "protein_coding_CDS_not_defined": 3,
    "processed_transcript": 4,
    "retained_intron": 5,
    "lncRNA": 6,
    "other": 7,
    "TEC": 8,
}

RETAINED_INTRON_BIOTYPE = "retained_intron"
UNKNOWN_BIOTYPE = "other"


# =============================================================================
# Data Models
# =============================================================================


@attrs.define(slots=True)
class Transcript:
    """A transcript as a list of exon intervals.

    Attributes:
        transcript_id: Transcript identifier.
        biotype: Transcript biotype (e.g. protein_coding).
        exons: Exon intervals (1-based, inclusive), sorted by start.
        is_canonical: Whether this is the gene's canonical transcript.
        gencode_primary: Whether the transcript is flagged GENCODE primary.
        translation_length: Protein length if the transcript is translated.
        display_name: Human-readable transcript name.
    """

    transcript_id: str
    biotype: str = UNKNOWN_BIOTYPE
    exons: list[Interval] = attrs.field(
        factory=list,
        converter=lambda exons: sorted(Interval(int(s), int(e)) for s, e in exons),
    )
    is_canonical: bool = False
    gencode_primary: bool = False
    translation_length: int | None = None
    display_name: str | None = None

    @property
    def n_exons(self) -> int:
        """Number of exons."""
        return len(self.exons)

    @property
    def exonic_length(self) -> int:
        """Total exon length (spliced transcript length)."""
        return total_length(self.exons)

    @property
    def biotype_rank(self) -> int:
        """Position of the biotype in BIOTYPE_SORT_ORDER."""
        return BIOTYPE_SORT_ORDER.get(self.biotype, BIOTYPE_SORT_ORDER[UNKNOWN_BIOTYPE])

    @property
    def ranking_length(self) -> int:
        """Translated length when known, else exonic length."""
        return self.translation_length or self.exonic_length


# =============================================================================
# Ranking
# =============================================================================


def transcript_sort_key(transcript: Transcript) -> tuple[bool, bool, int, int]:
    """Sort key: canonical, GENCODE primary, biotype rank, longest first."""
    return (
        not transcript.is_canonical,
        not transcript.gencode_primary,
        transcript.biotype_rank,
        -transcript.ranking_length,
    )


def rank_transcripts(transcripts: Iterable[Transcript]) -> list[Transcript]:
    """Order transcripts from most to least representative.

    The sort is stable, so transcripts tying on every key keep their input
    order.
    """
    return sorted(transcripts, key=transcript_sort_key)


# =============================================================================
# Conversion from External Shapes
# =============================================================================


def transcript_from_ensembl(record: dict[str, Any]) -> Transcript:
    """Convert one Ensembl `Transcript` entry to a Transcript."""
    translation = record.get("Translation") or {}
    return Transcript(
        transcript_id=record["id"],
        biotype=record.get("biotype") or UNKNOWN_BIOTYPE,
        exons=[(exon["start"], exon["end"]) for exon in record.get("Exon", [])],
        is_canonical=bool(record.get("is_canonical")),
        gencode_primary=record.get("gencode_primary") == 1,
        translation_length=translation.get("length"),
        display_name=record.get("display_name"),
    )


def transcripts_from_ensembl(gene_lookup: dict[str, Any]) -> list[Transcript]:
    """Convert an Ensembl symbol lookup (expand=1) to ranked transcripts."""
    return rank_transcripts(
        transcript_from_ensembl(record) for record in gene_lookup.get("Transcript", [])
    )


def transcripts_from_gene_model(model: dict[str, Any]) -> list[Transcript]:
    """Convert a parsed GTF gene model to ranked transcripts.

    GTF gene models carry no canonical flag, so ranking falls through to
    biotype (when a transcript_biotype/transcript_type is present) and
    exonic length.
    """
    transcripts = []
    for record in model.get("transcripts", []):
        biotype = (
            record.get("transcript_biotype")
            or record.get("transcript_type")
            or record.get("biotype")
            or UNKNOWN_BIOTYPE
        )
        transcripts.append(
            Transcript(
                transcript_id=record["transcript_id"],
                biotype=biotype,
                exons=[(exon["start"], exon["end"]) for exon in record.get("exons", [])],
                display_name=record.get("transcript_name"),
            )
        )
    return rank_transcripts(transcripts)
