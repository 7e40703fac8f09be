"""Classification of transcripts against splicing events.

For one event and the transcripts of its gene, decide which transcripts
carry the inclusion isoform and which carry the skipping isoform:

1. retained_intron transcripts only count for RI events.
2. The inclusion isoform is the set of inclusion-tagged exon blocks; the
   skipping isoform is the flanking exons plus the skip-tagged exon blocks.
3. A transcript supports an isoform when each isoform exon appears in it
   with identical coordinates and no other transcript exon overlaps the
   region spanned by the isoform exons.
4. For RI events the inclusion isoform is a single exon covering the whole
   event span.

The best candidate on each side is the first matching transcript in input
order, so callers pass transcripts already ordered by rank_transcripts().

Example:
    >>> from splicescope.annotation.classify import classify
    >>> result = classify(event, transcripts)
    >>> result.inclusion_biotype, result.skipping_transcript_id
    ('protein_coding', 'N/A')
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, NamedTuple

import attrs

from splicescope.annotation.transcripts import RETAINED_INTRON_BIOTYPE, Transcript
from splicescope.events.geometry import (
    FLANKING_ROLES,
    ExonSpan,
    Span,
    isoform_roles,
    positions,
    splicing_exons,
)
from splicescope.events.models import EventType
from splicescope.utils.intervals import Interval, find_overlaps, hull

NOT_AVAILABLE = "N/A"


# =============================================================================
# Data Structures
# =============================================================================


class TranscriptMatch(NamedTuple):
    """Transcript selected as the best support for one isoform."""

    transcript_id: str
    biotype: str


@attrs.define(frozen=True)
class Classification:
    """Annotation of one event against a transcript set.

    Attributes:
        inclusion: Best transcript carrying the inclusion isoform, if any.
        skipping: Best transcript carrying the skipping isoform, if any.
        inclusion_candidates: IDs of all inclusion-supporting transcripts.
        skipping_candidates: IDs of all skipping-supporting transcripts.
    """

    inclusion: TranscriptMatch | None = None
    skipping: TranscriptMatch | None = None
    inclusion_candidates: tuple[str, ...] = ()
    skipping_candidates: tuple[str, ...] = ()

    @classmethod
    def unavailable(cls) -> "Classification":
        """Classification reported when no transcripts could be obtained."""
        return cls()

    @property
    def inclusion_biotype(self) -> str:
        return self.inclusion.biotype if self.inclusion else NOT_AVAILABLE

    @property
    def inclusion_transcript_id(self) -> str:
        return self.inclusion.transcript_id if self.inclusion else NOT_AVAILABLE

    @property
    def skipping_biotype(self) -> str:
        return self.skipping.biotype if self.skipping else NOT_AVAILABLE

    @property
    def skipping_transcript_id(self) -> str:
        return self.skipping.transcript_id if self.skipping else NOT_AVAILABLE

    def to_columns(self) -> list[str]:
        """Export columns: inclusion biotype, skipping biotype, inclusion id, skipping id."""
        return [
            self.inclusion_biotype,
            self.skipping_biotype,
            self.inclusion_transcript_id,
            self.skipping_transcript_id,
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "inclusion": (
                {"biotype": self.inclusion.biotype, "transcript_id": self.inclusion.transcript_id}
                if self.inclusion
                else NOT_AVAILABLE
            ),
            "skipping": (
                {"biotype": self.skipping.biotype, "transcript_id": self.skipping.transcript_id}
                if self.skipping
                else NOT_AVAILABLE
            ),
        }


# =============================================================================
# Isoform Blocks
# =============================================================================


def inclusion_exons(event: Any) -> list[ExonSpan]:
    """Exon blocks of the inclusion isoform."""
    return [
        block
        for block in splicing_exons(event)
        if not block.is_junction and block.inclusion
    ]


def skipped_exons(event: Any) -> list[ExonSpan]:
    """Exon blocks of the skipping isoform: flanking exons plus skip-form exons."""
    return [
        block
        for block in splicing_exons(event)
        if not block.is_junction and (block.role in FLANKING_ROLES or not block.inclusion)
    ]


# =============================================================================
# Matching
# =============================================================================


def matches_isoform(blocks: Sequence[ExonSpan], transcript: Transcript) -> bool:
    """Check that a transcript carries exactly the given exon blocks.

    Every block must be a transcript exon with identical coordinates, and no
    other transcript exon may overlap the region the blocks span.
    """
    if not blocks:
        return False

    wanted = {Interval(block.start, block.end) for block in blocks}
    if not wanted <= set(transcript.exons):
        return False

    region = hull(wanted)
    return all(exon in wanted for _, exon in find_overlaps(region, transcript.exons))


def spans_event(span: Span, transcript: Transcript) -> bool:
    """Check that one transcript exon covers exactly the event span."""
    if span.is_empty:
        return False
    return Interval(span.start, span.end) in transcript.exons


# =============================================================================
# Classification
# =============================================================================


def classify(event: Any, transcripts: Iterable[Transcript]) -> Classification:
    """Find the transcripts supporting each isoform of an event.

    Args:
        event: Event record.
        transcripts: Transcripts of the event's gene, most representative
            first. Never modified.

    Returns:
        Classification with the first supporting transcript per side, or
        N/A on a side with no support. A side that lost one of its exons to
        a missing coordinate is N/A as well.
    """
    is_ri = event.event_type is EventType.RI
    inc_blocks = inclusion_exons(event)
    skip_blocks = skipped_exons(event)
    span = positions(event)

    inc_roles, skip_roles = isoform_roles(event)
    inc_complete = {block.role for block in inc_blocks} == inc_roles
    skip_complete = {block.role for block in skip_blocks} == skip_roles

    inclusion: list[Transcript] = []
    skipping: list[Transcript] = []
    for transcript in transcripts:
        if transcript.biotype == RETAINED_INTRON_BIOTYPE and not is_ri:
            continue

        if not inc_complete:
            is_inclusion = False
        elif is_ri:
            is_inclusion = spans_event(span, transcript)
        else:
            is_inclusion = matches_isoform(inc_blocks, transcript)

        if is_inclusion:
            inclusion.append(transcript)
        if skip_complete and matches_isoform(skip_blocks, transcript):
            skipping.append(transcript)

    return Classification(
        inclusion=_best(inclusion),
        skipping=_best(skipping),
        inclusion_candidates=tuple(t.transcript_id for t in inclusion),
        skipping_candidates=tuple(t.transcript_id for t in skipping),
    )


def _best(candidates: list[Transcript]) -> TranscriptMatch | None:
    if not candidates:
        return None
    return TranscriptMatch(candidates[0].transcript_id, candidates[0].biotype)
