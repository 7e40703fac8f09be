"""Pytest configuration and shared fixtures for splicescope tests.

Fixtures are organized by category:

- Event fixtures: event factories and single events of each type
- Strain fixtures: strains built from the event fixtures
- File fixtures: rMATS output directories written to tmp_path
"""

import logging
from pathlib import Path

import pytest

from splicescope.events.models import (
    ASSEvent,
    EventType,
    MXEEvent,
    ReadType,
    RIEvent,
    SEEvent,
    Strain,
)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() calls made by a test."""
    yield
    logger = logging.getLogger("splicescope")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def make_se_event():
    """Factory for SE events passing the default filters.

    Defaults: GENE1 on chr1(+), upstream 100-200, target 300-400,
    downstream 500-600, incCount1Avg 12, FDR 0.03, psiDiff 0.25.
    """

    def make(**overrides) -> SEEvent:
        fields = dict(
            id=1,
            gene_id="ENSG01",
            gene_name="GENE1",
            chr="chr1",
            strand="+",
            read_type=ReadType.JCEC,
            inc_count1=[12, 12],
            skip_count1=[3, 3],
            inc_count2=[5, 5],
            skip_count2=[2, 2],
            inc_form_len=2,
            skip_form_len=1,
            p_value=0.001,
            fdr=0.03,
            psi1=[0.5, 0.5],
            psi2=[0.25, 0.25],
            psi_diff=0.25,
            exon_start=300,
            exon_end=400,
            upstream_exon_start=100,
            upstream_exon_end=200,
            downstream_exon_start=500,
            downstream_exon_end=600,
        )
        fields.update(overrides)
        return SEEvent(**fields)

    return make


@pytest.fixture
def se_event(make_se_event) -> SEEvent:
    """SE event on the plus strand."""
    return make_se_event()


@pytest.fixture
def ri_event() -> RIEvent:
    """RI event on the minus strand: upstream 100-200, downstream 500-600."""
    return RIEvent(
        id=7,
        gene_id="ENSG03",
        gene_name="GENE3",
        chr="chr10",
        strand="-",
        read_type=ReadType.JCEC,
        inc_count1=[15],
        fdr=0.01,
        psi1=[0.6],
        psi2=[0.3],
        ri_exon_start=100,
        ri_exon_end=600,
        upstream_exon_start=100,
        upstream_exon_end=200,
        downstream_exon_start=500,
        downstream_exon_end=600,
    )


@pytest.fixture
def mxe_event() -> MXEEvent:
    """MXE event on the plus strand with exon 1 at 300-350 and exon 2 at 400-450."""
    return MXEEvent(
        id=3,
        gene_id="ENSG04",
        gene_name="GENE4",
        chr="chr2",
        strand="+",
        read_type=ReadType.JCEC,
        inc_count1=[30],
        fdr=0.001,
        psi1=[0.7],
        psi2=[0.2],
        exon1_start=300,
        exon1_end=350,
        exon2_start=400,
        exon2_end=450,
        upstream_exon_start=100,
        upstream_exon_end=200,
        downstream_exon_start=500,
        downstream_exon_end=600,
    )


@pytest.fixture
def a3ss_event() -> ASSEvent:
    """A3SS event on the plus strand: flanking 100-200, long 300-400, short 350-400."""
    return ASSEvent(
        id=4,
        event_type=EventType.A3SS,
        gene_id="ENSG05",
        gene_name="GENE5",
        chr="chr3",
        strand="+",
        read_type=ReadType.JCEC,
        inc_count1=[11],
        fdr=0.02,
        psi1=[0.4],
        psi2=[0.1],
        long_exon_start=300,
        long_exon_end=400,
        short_exon_start=350,
        short_exon_end=400,
        flanking_exon_start=100,
        flanking_exon_end=200,
    )


# One coordinate layout per event type and strand. Exon blocks are given
# left to right; on the minus strand the 3' exon is leftmost, except for RI
# where upstream/downstream name the genomic sides.
EVENT_LAYOUTS = {
    ("SE", "+"): dict(
        upstream_exon_start=100, upstream_exon_end=200,
        exon_start=300, exon_end=400,
        downstream_exon_start=500, downstream_exon_end=600,
    ),
    ("SE", "-"): dict(
        downstream_exon_start=100, downstream_exon_end=200,
        exon_start=300, exon_end=400,
        upstream_exon_start=500, upstream_exon_end=600,
    ),
    ("MXE", "+"): dict(
        upstream_exon_start=100, upstream_exon_end=200,
        exon1_start=300, exon1_end=350,
        exon2_start=400, exon2_end=450,
        downstream_exon_start=500, downstream_exon_end=600,
    ),
    ("MXE", "-"): dict(
        downstream_exon_start=100, downstream_exon_end=200,
        exon2_start=300, exon2_end=350,
        exon1_start=400, exon1_end=450,
        upstream_exon_start=500, upstream_exon_end=600,
    ),
    ("A3SS", "+"): dict(
        flanking_exon_start=100, flanking_exon_end=200,
        long_exon_start=300, long_exon_end=400,
        short_exon_start=350, short_exon_end=400,
    ),
    ("A3SS", "-"): dict(
        long_exon_start=100, long_exon_end=200,
        short_exon_start=100, short_exon_end=150,
        flanking_exon_start=400, flanking_exon_end=500,
    ),
    ("A5SS", "+"): dict(
        long_exon_start=100, long_exon_end=250,
        short_exon_start=100, short_exon_end=200,
        flanking_exon_start=400, flanking_exon_end=500,
    ),
    ("A5SS", "-"): dict(
        flanking_exon_start=100, flanking_exon_end=200,
        long_exon_start=300, long_exon_end=450,
        short_exon_start=350, short_exon_end=450,
    ),
    ("RI", "+"): dict(
        upstream_exon_start=100, upstream_exon_end=200,
        ri_exon_start=100, ri_exon_end=600,
        downstream_exon_start=500, downstream_exon_end=600,
    ),
    ("RI", "-"): dict(
        upstream_exon_start=100, upstream_exon_end=200,
        ri_exon_start=100, ri_exon_end=600,
        downstream_exon_start=500, downstream_exon_end=600,
    ),
}


def layout_event(event_type: str, strand: str, **overrides):
    """Event of the given type and strand with its EVENT_LAYOUTS coordinates."""
    fields = dict(
        id=1, gene_id="ENSG01", gene_name="GENE1", chr="chr1", strand=strand,
        **EVENT_LAYOUTS[(event_type, strand)],
    )
    fields.update(overrides)
    if event_type in ("A3SS", "A5SS"):
        return ASSEvent(event_type=event_type, **fields)
    return {"SE": SEEvent, "MXE": MXEEvent, "RI": RIEvent}[event_type](**fields)


# =============================================================================
# Strain Fixtures
# =============================================================================


@pytest.fixture
def two_strains(make_se_event, ri_event) -> list[Strain]:
    """Two strains sharing one SE event; only knockout has the RI event."""
    wild_type = Strain(name="wild_type", colour="#4e79a7", se=[make_se_event()])
    knockout = Strain(
        name="knockout",
        colour="#f28e2b",
        se=[
            make_se_event(id=11),
            make_se_event(id=12, gene_id="ENSG02", gene_name="GENE2", psi_diff=0.1),
        ],
        ri=[ri_event],
    )
    return [wild_type, knockout]


# =============================================================================
# rMATS File Fixtures
# =============================================================================

COMMON_HEADER = [
    "ID",
    "IJC_SAMPLE_1",
    "SJC_SAMPLE_1",
    "IJC_SAMPLE_2",
    "SJC_SAMPLE_2",
    "IncFormLen",
    "SkipFormLen",
    "PValue",
    "FDR",
    "IncLevel1",
    "IncLevel2",
    "IncLevelDifference",
]

SE_TABLE = [
    [
        "ID", "GeneID", "geneSymbol", "chr", "strand",
        "exonStart_0base", "exonEnd", "upstreamES", "upstreamEE",
        "downstreamES", "downstreamEE", *COMMON_HEADER,
    ],
    [
        "1", '"ENSG01"', '"GENE1"', "chr1", "+",
        "299", "400", "99", "200", "499", "600",
        "99", "12,12", "3,3", "5,5", "2,2", "2", "1", "0.001", "0.03",
        "0.5,0.5", "0.25,0.25", "0.25",
    ],
    [
        "2", '"ENSG02"', '"GENE2"', "chr2_random", "-",
        "999", "NA", "799", "900", "1199", "1300",
        "2", "20,NA", "1,1", "4,4", "2,2", "2", "1", "0.01", "0.04",
        "0.5,NA", "0.2,0.2", "0.3",
    ],
]

RI_TABLE = [
    [
        "ID", "GeneID", "geneSymbol", "chr", "strand",
        "riExonStart_0base", "riExonEnd", "upstreamES", "upstreamEE",
        "downstreamES", "downstreamEE", *COMMON_HEADER,
    ],
    [
        "1", '"ENSG03"', '"GENE3"', "chr10", "-",
        "99", "600", "99", "200", "499", "600",
        "1", "15", "2", "3", "4", "2", "1", "0.0001", "0.01",
        "0.6", "0.3", "0.3",
    ],
]


def write_table(path: Path, rows: list[list[str]]) -> Path:
    """Write rows as a tab separated file."""
    with open(path, "w") as f:
        for row in rows:
            f.write("\t".join(row) + "\n")
    return path


@pytest.fixture
def rmats_dir(tmp_path: Path) -> Path:
    """rMATS output directory with an SE (JCEC) and an RI (JC) table."""
    directory = tmp_path / "knockout"
    directory.mkdir()
    write_table(directory / "SE.MATS.JCEC.txt", SE_TABLE)
    write_table(directory / "RI.MATS.JC.txt", RI_TABLE)
    (directory / "summary.txt").write_text("not an event table\n")
    return directory
