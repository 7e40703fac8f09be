"""Tests for delimited event export."""

import csv
from types import SimpleNamespace

import pytest

from splicescope.annotation import AnnotationLookupError, EventAnnotator, Transcript
from splicescope.config import FilterSettings
from splicescope.events import EventType, UnknownEventTypeError, canonical_id
from splicescope.export import (
    ANNOTATION_COLUMNS,
    BASE_COLUMNS,
    export_filename,
    export_header,
    export_row,
    export_strains,
    format_array,
    format_value,
    write_events,
    write_gene_membership,
)
from splicescope.filtering import FilterPipeline


def read_rows(path, delimiter="\t"):
    with open(path, newline="") as f:
        return list(csv.reader(f, delimiter=delimiter))


class TestExportHeader:
    """Tests for export_header()."""

    @pytest.mark.parametrize(
        "event_type, n_specific",
        [("SE", 10), ("MXE", 14), ("A3SS", 10), ("A5SS", 10), ("RI", 10)],
    )
    def test_column_counts(self, event_type, n_specific):
        """Base columns plus the type-specific coordinate and count columns."""
        header = export_header(event_type)
        assert len(header) == len(BASE_COLUMNS) + n_specific
        assert header[: len(BASE_COLUMNS)] == list(BASE_COLUMNS)

    def test_annotation_columns(self):
        """Classifier columns are appended when requested."""
        header = export_header(EventType.SE, include_annotation=True)
        assert header[-4:] == list(ANNOTATION_COLUMNS)

    def test_unknown_type(self):
        """Unknown event types raise."""
        with pytest.raises(UnknownEventTypeError, match="unrecognized event type"):
            export_header("XYZ")


class TestExportRow:
    """Tests for export_row() and value formatting."""

    def test_format_value(self):
        """Integral floats drop their fraction; missing values are N/A."""
        assert format_value(12.0) == "12"
        assert format_value(0.25) == "0.25"
        assert format_value(None) == "N/A"
        assert format_value(float("nan")) == "N/A"

    def test_format_array(self):
        """Arrays are comma joined; empty arrays are N/A."""
        assert format_array([1.0, 2.5]) == "1,2.5"
        assert format_array([]) == "N/A"

    def test_se_row(self, se_event):
        """Rows follow the header order."""
        row = export_row(se_event)
        cells = dict(zip(export_header("SE"), row))

        assert len(row) == len(export_header("SE"))
        assert row[0] == canonical_id(se_event)
        assert cells["gene_name"] == "GENE1"
        assert cells["inc_count1"] == "12,12"
        assert cells["fdr"] == "0.03"
        assert cells["exon_start"] == "300"
        assert cells["target_count"] == "N/A"

    def test_missing_coordinate(self, make_se_event):
        """Missing coordinates are written as N/A."""
        cells = dict(zip(export_header("SE"), export_row(make_se_event(exon_end=None))))
        assert cells["exon_end"] == "N/A"

    def test_classification_columns(self, se_event):
        """A classification adds the four classifier cells."""
        annotator = EventAnnotator(
            SimpleNamespace(transcripts_for=lambda event: [
                Transcript("T1", biotype="protein_coding", exons=[(100, 200), (300, 400), (500, 600)])
            ])
        )
        row = export_row(se_event, annotator.annotate(se_event))
        assert row[-4:] == ["protein_coding", "N/A", "T1", "N/A"]

    def test_unknown_type(self):
        """Rows for records of unknown type raise."""
        with pytest.raises(UnknownEventTypeError):
            export_row(SimpleNamespace(event_type="XYZ", gene_name="G", chr="chr1", strand="+"))


class TestWriteEvents:
    """Tests for write_events()."""

    def test_write(self, tmp_path, make_se_event):
        """Header plus one row per event."""
        path = tmp_path / "se.tsv"
        n = write_events([make_se_event(id=1), make_se_event(id=2, chr="chr2")], path)

        rows = read_rows(path)
        assert n == 2
        assert rows[0] == export_header("SE")
        assert rows[2][2] == "chr2"

    def test_comma_delimiter(self, tmp_path, se_event):
        """Array cells survive a comma delimiter through quoting."""
        path = tmp_path / "se.csv"
        write_events([se_event], path, delimiter=",")

        rows = read_rows(path, delimiter=",")
        assert rows[1][4] == "12,12"

    def test_empty_needs_type(self, tmp_path):
        """An empty table needs an explicit event type."""
        with pytest.raises(ValueError):
            write_events([], tmp_path / "x.tsv")

        write_events([], tmp_path / "ri.tsv", event_type="RI")
        assert read_rows(tmp_path / "ri.tsv") == [export_header("RI")]

    def test_mixed_types(self, tmp_path, se_event, ri_event):
        """Events of different types cannot share a table."""
        with pytest.raises(ValueError, match="mix"):
            write_events([se_event, ri_event], tmp_path / "x.tsv")

    def test_classifications_must_line_up(self, tmp_path, se_event):
        """One classification per event is required."""
        with pytest.raises(ValueError):
            write_events([se_event], tmp_path / "x.tsv", classifications=[])


class TestExportStrains:
    """Tests for export_strains()."""

    def test_one_file_per_strain_and_type(self, tmp_path, two_strains):
        """Each visible strain gets one file per selected type."""
        pipeline = FilterPipeline(FilterSettings(selected_event_type="SE"), two_strains)
        paths = export_strains(pipeline, tmp_path / "out")

        assert [p.name for p in paths] == ["wild_type_SE.tsv", "knockout_SE.tsv"]
        assert len(read_rows(paths[1])) == 2

    def test_annotated_export_with_failures(self, tmp_path, two_strains):
        """Genes that cannot be looked up get N/A; the export continues."""

        def transcripts_for(event):
            raise AnnotationLookupError("service unavailable")

        pipeline = FilterPipeline(FilterSettings(selected_event_type="SE"), two_strains)
        paths = export_strains(
            pipeline,
            tmp_path,
            annotator=EventAnnotator(SimpleNamespace(transcripts_for=transcripts_for)),
            delimiter=",",
        )

        rows = read_rows(paths[0], delimiter=",")
        assert paths[0].name == "wild_type_SE.csv"
        assert rows[0][-4:] == list(ANNOTATION_COLUMNS)
        assert rows[1][-4:] == ["N/A"] * 4

    def test_filename_sanitized(self):
        """Unsafe characters in strain names are replaced."""
        assert export_filename("KO #1/rep", EventType.MXE) == "KO_1_rep_MXE.tsv"


class TestGeneMembershipExport:
    """Tests for write_gene_membership()."""

    def test_write(self, tmp_path):
        """One row per gene, sorted by gene ID."""
        path = tmp_path / "genes.tsv"
        write_gene_membership({"G2": ["ko"], "G1": ["wt", "ko"]}, path)

        assert read_rows(path) == [
            ["gene_id", "n_strains", "strains"],
            ["G1", "2", "wt,ko"],
            ["G2", "1", "ko"],
        ]
