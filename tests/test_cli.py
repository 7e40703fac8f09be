"""Tests for the splicescope command-line interface."""

import csv

import pytest
from click.testing import CliRunner

from splicescope.cli import main

from conftest import SE_TABLE, write_table


@pytest.fixture
def runner():
    return CliRunner()


# =============================================================================
# Options
# =============================================================================


class TestHelp:
    """Test command help output."""

    def test_main_help(self, runner):
        """Main --help lists the commands."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("summary", "chromosomes", "filter", "export"):
            assert command in result.output

    def test_filter_help_shows_options(self, runner):
        """Filter --help shows the filter setting options."""
        result = runner.invoke(main, ["filter", "--help"])
        assert result.exit_code == 0
        for option in ("--chr", "--event-type", "--read-type", "--fdr", "--psi-limits"):
            assert option in result.output

    def test_read_type_help_mentions_duplicates(self, runner):
        """--read-type help warns that 'all' lists JC and JCEC rows separately."""
        result = runner.invoke(main, ["filter", "--help"])
        assert "twice" in result.output

    def test_export_help_shows_annotation(self, runner):
        """Export --help shows the annotation options."""
        result = runner.invoke(main, ["export", "--help"])
        assert result.exit_code == 0
        assert "--annotate" in result.output
        assert "--gene-models" in result.output


# =============================================================================
# Commands
# =============================================================================


class TestSummaryCommand:
    """Test the summary command."""

    def test_counts(self, runner, rmats_dir):
        """Strain name and per-type counts are shown."""
        result = runner.invoke(main, ["summary", str(rmats_dir)])
        assert result.exit_code == 0
        assert "knockout" in result.output
        assert "3 events" in result.output

    def test_directory_without_tables(self, runner, tmp_path):
        """A directory with no rMATS tables is an error."""
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(main, ["summary", str(empty)])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestChromosomesCommand:
    """Test the chromosomes command."""

    def test_lists_chromosomes(self, runner, rmats_dir):
        """All, then chromosome names with suffixes removed."""
        result = runner.invoke(main, ["-q", "chromosomes", str(rmats_dir)])
        names = result.output.split()

        assert result.exit_code == 0
        assert names[0] == "All"
        assert "chr1" in names
        assert "chr2" in names
        assert "chr2_random" not in names


class TestFilterCommand:
    """Test the filter command."""

    def test_default_settings(self, runner, rmats_dir):
        """Default settings keep JCEC events only."""
        result = runner.invoke(main, ["filter", str(rmats_dir)])
        assert result.exit_code == 0
        assert "knockout: 2 of 2 events pass" in result.output

    def test_overrides(self, runner, rmats_dir):
        """Options override the configured settings."""
        result = runner.invoke(
            main, ["filter", str(rmats_dir), "--read-type", "all", "--chr", "chr2"]
        )
        assert result.exit_code == 0
        assert "knockout: 1 of 1 events pass" in result.output

    def test_all_read_types_list_events_twice(self, runner, rmats_dir):
        """With both tables present, 'all' counts each event once per read type."""
        write_table(rmats_dir / "SE.MATS.JC.txt", SE_TABLE)

        result = runner.invoke(main, ["filter", str(rmats_dir), "--read-type", "all"])
        assert result.exit_code == 0
        assert "knockout: 5 of 5 events pass" in result.output

    def test_config_file(self, runner, rmats_dir, tmp_path):
        """Settings are read from the configuration file."""
        config = tmp_path / "splicescope.toml"
        config.write_text('[filter]\nselected_read_type = "all"\nfdr_thresh = 0.02\n')

        result = runner.invoke(main, ["--config", str(config), "filter", str(rmats_dir)])
        assert result.exit_code == 0
        assert "knockout: 1 of 3 events pass" in result.output

    def test_invalid_config(self, runner, rmats_dir, tmp_path):
        """Unknown configuration keys are an error."""
        config = tmp_path / "splicescope.toml"
        config.write_text("[filter]\nmin_reads = 3\n")

        result = runner.invoke(main, ["--config", str(config), "filter", str(rmats_dir)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_membership_output(self, runner, rmats_dir, tmp_path):
        """-o writes the gene membership table."""
        output = tmp_path / "genes.tsv"
        result = runner.invoke(main, ["-q", "filter", str(rmats_dir), "-o", str(output)])

        assert result.exit_code == 0
        with open(output, newline="") as f:
            rows = list(csv.reader(f, delimiter="\t"))
        assert rows == [
            ["gene_id", "n_strains", "strains"],
            ["ENSG01", "1", "knockout"],
            ["ENSG02", "1", "knockout"],
        ]


class TestExportCommand:
    """Test the export command."""

    def test_export_tables(self, runner, rmats_dir, tmp_path):
        """One table per strain and selected event type."""
        out = tmp_path / "out"
        result = runner.invoke(
            main, ["export", str(rmats_dir), "-o", str(out), "--event-type", "SE"]
        )

        assert result.exit_code == 0
        assert "Wrote 1 tables" in result.output
        with open(out / "knockout_SE.tsv", newline="") as f:
            rows = list(csv.reader(f, delimiter="\t"))
        assert len(rows) == 3
        assert rows[0][0] == "event_id"

    def test_export_comma(self, runner, rmats_dir, tmp_path):
        """--delimiter comma writes .csv files."""
        out = tmp_path / "out"
        result = runner.invoke(
            main,
            ["export", str(rmats_dir), "-o", str(out), "--event-type", "SE", "--delimiter", "comma"],
        )
        assert result.exit_code == 0
        assert (out / "knockout_SE.csv").exists()

    def test_gene_models_requires_file(self, runner, rmats_dir, tmp_path):
        """--annotate gene-models without --gene-models is an error."""
        result = runner.invoke(
            main, ["export", str(rmats_dir), "-o", str(tmp_path / "out"), "--annotate", "gene-models"]
        )
        assert result.exit_code == 1
        assert "--gene-models is required" in result.output
