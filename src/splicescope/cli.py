"""Command-line interface for splicescope.

This module provides the main entry point for the splicescope CLI tool.
It uses Click to define commands that load rMATS output directories as
strains, filter their events and export the results.

Commands:
    summary: Event counts per strain and event type
    chromosomes: Chromosomes present in the loaded strains
    filter: Run the two-stage filter and report passing events
    export: Write filtered events, optionally annotated with transcripts

Example:
    $ splicescope summary rmats/wild_type rmats/knockout
    $ splicescope filter rmats/wild_type rmats/knockout --chr chr2 --fdr 0.01 -o genes.tsv
    $ splicescope export rmats/knockout -o exports/ --annotate ensembl --species mus_musculus
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console

from splicescope import __version__
from splicescope.config import Config
from splicescope.filtering import FilterPipeline
from splicescope.io.rmats import load_strain, palette_colour
from splicescope.utils.logging import setup_logging

# Initialize rich console for pretty output
console = Console()

EVENT_TYPE_CHOICES = ["All", "A3SS", "A5SS", "MXE", "RI", "SE"]
READ_TYPE_CHOICES = ["JC", "JCEC", "all"]


@click.group()
@click.version_option(version=__version__, prog_name="splicescope")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="TOML configuration file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, config_path: Optional[Path]) -> None:
    """splicescope: Filter, compare and annotate rMATS splicing events.

    Each RMATS_DIR argument is one rMATS output directory, loaded as a
    strain named after the directory.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    setup_logging(verbosity=2 if verbose else 0 if quiet else 1)

    try:
        ctx.obj["config"] = Config.load(config_path)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)


# =============================================================================
# Shared options
# =============================================================================


def filter_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the filter setting options to a command."""
    options = [
        click.argument(
            "rmats_dirs",
            nargs=-1,
            required=True,
            type=click.Path(exists=True, file_okay=False, path_type=Path),
        ),
        click.option("--chr", "chromosome", type=str, help="Chromosome name prefix, or 'All'."),
        click.option(
            "--event-type",
            type=click.Choice(EVENT_TYPE_CHOICES, case_sensitive=False),
            help="Event type to keep.",
        ),
        click.option(
            "--read-type",
            type=click.Choice(READ_TYPE_CHOICES, case_sensitive=False),
            help=(
                "Read counting mode to keep. 'all' keeps both, so an event present in "
                "the JC and the JCEC table is listed twice."
            ),
        ),
        click.option("--min-reads", type=float, help="Minimum mean inclusion count (condition 1)."),
        click.option("--fdr", type=float, help="Maximum FDR."),
        click.option("--psi-diff", type=float, help="Minimum absolute PSI difference."),
        click.option(
            "--psi-limits/--no-psi-limits",
            default=None,
            help="Keep only events with mean PSI (condition 1) within 0.05-0.95.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_pipeline(
    ctx: click.Context,
    rmats_dirs: tuple[Path, ...],
    chromosome: Optional[str],
    event_type: Optional[str],
    read_type: Optional[str],
    min_reads: Optional[float],
    fdr: Optional[float],
    psi_diff: Optional[float],
    psi_limits: Optional[bool],
) -> FilterPipeline:
    """Load strains and build a pipeline from config plus command-line overrides."""
    quiet = ctx.obj.get("quiet", False)
    settings = ctx.obj["config"].filter.copy()

    overrides = {
        "selected_chr": chromosome,
        "selected_event_type": event_type,
        "selected_read_type": read_type,
        "read_count_thresh": min_reads,
        "fdr_thresh": fdr,
        "psi_diff_thresh": psi_diff,
        "extraneous_psi_limits": psi_limits,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)

    strains = []
    for index, directory in enumerate(rmats_dirs):
        if not quiet:
            console.print(f"[blue]Loading strain from:[/blue] {directory}")
        strains.append(load_strain(directory, colour=palette_colour(index)))

    return FilterPipeline(settings, strains)


def _fail(ctx: click.Context, error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    if ctx.obj.get("verbose", False):
        import traceback
        traceback.print_exc()
    raise SystemExit(1)


# =============================================================================
# summary command
# =============================================================================


@main.command()
@click.argument(
    "rmats_dirs",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.pass_context
def summary(ctx: click.Context, rmats_dirs: tuple[Path, ...]) -> None:
    """Show event counts per strain and event type.

    Example:
        $ splicescope summary rmats/wild_type rmats/knockout
    """
    try:
        pipeline = FilterPipeline(
            strains=[
                load_strain(directory, colour=palette_colour(index))
                for index, directory in enumerate(rmats_dirs)
            ]
        )

        for info in pipeline.get_strain_info():
            total = sum(info.counts.values())
            console.print(f"\n[bold]{info.name}[/bold] ({total} events)")
            for event_type, count in info.counts.items():
                console.print(f"  {event_type:<5} {count}")

    except Exception as e:
        _fail(ctx, e)


# =============================================================================
# chromosomes command
# =============================================================================


@main.command()
@click.argument(
    "rmats_dirs",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.pass_context
def chromosomes(ctx: click.Context, rmats_dirs: tuple[Path, ...]) -> None:
    """List the chromosome selector values for the given strains.

    Example:
        $ splicescope chromosomes rmats/wild_type
    """
    try:
        pipeline = FilterPipeline(strains=[load_strain(d) for d in rmats_dirs])
        for name in pipeline.get_chromosome_list():
            console.print(name)

    except Exception as e:
        _fail(ctx, e)


# =============================================================================
# filter command
# =============================================================================


@main.command("filter")
@filter_options
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Output gene membership TSV (gene_id, n_strains, strains).",
)
@click.pass_context
def filter_events(
    ctx: click.Context,
    rmats_dirs: tuple[Path, ...],
    chromosome: Optional[str],
    event_type: Optional[str],
    read_type: Optional[str],
    min_reads: Optional[float],
    fdr: Optional[float],
    psi_diff: Optional[float],
    psi_limits: Optional[bool],
    output: Optional[Path],
) -> None:
    """Filter the events of one or more strains.

    Settings come from the configuration file, then the options given here.

    Example:
        $ splicescope filter rmats/wild_type rmats/knockout --event-type SE --fdr 0.01
        $ splicescope filter rmats/knockout --chr chr2 --psi-limits -o genes.tsv
    """
    from splicescope.export import write_gene_membership

    quiet = ctx.obj.get("quiet", False)

    try:
        pipeline = _build_pipeline(
            ctx, rmats_dirs, chromosome, event_type, read_type,
            min_reads, fdr, psi_diff, psi_limits,
        )
        membership = pipeline.get_gene_membership()

        if not quiet:
            console.print("\n[bold]Filter Results:[/bold]")
            for strain in pipeline.get_filtered_strains():
                console.print(
                    f"  {strain.name}: {strain.pass_count} of {strain.n_candidates} events pass"
                )
            console.print(f"  Genes with passing events: {len(membership)}")

        if output is not None:
            n_genes = write_gene_membership(membership, output)
            if not quiet:
                console.print(f"\n[green]Wrote {n_genes} genes to:[/green] {output}")

    except Exception as e:
        _fail(ctx, e)


# =============================================================================
# export command
# =============================================================================


@main.command()
@filter_options
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory for the exported tables.",
)
@click.option(
    "--annotate",
    type=click.Choice(["none", "ensembl", "gene-models"]),
    help="Transcript source for the classifier columns. "
        "Defaults to ensembl when the configuration enables annotation, else none.",
)
@click.option(
    "--gene-models",
    "gene_models_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Parsed gene models JSON (required with --annotate gene-models).",
)
@click.option("--species", type=str, help="Ensembl species name (e.g. mus_musculus).")
@click.option("--workers", type=int, help="Threads used for transcript lookups.")
@click.option(
    "--delimiter",
    type=click.Choice(["tab", "comma"]),
    help="Column delimiter.",
)
@click.pass_context
def export(
    ctx: click.Context,
    rmats_dirs: tuple[Path, ...],
    chromosome: Optional[str],
    event_type: Optional[str],
    read_type: Optional[str],
    min_reads: Optional[float],
    fdr: Optional[float],
    psi_diff: Optional[float],
    psi_limits: Optional[bool],
    output_dir: Path,
    annotate: Optional[str],
    gene_models_path: Optional[Path],
    species: Optional[str],
    workers: Optional[int],
    delimiter: Optional[str],
) -> None:
    """Export filtered events, one table per strain and event type.

    With --annotate, four columns are appended naming the best transcript
    supporting each isoform and its biotype. Genes that cannot be looked
    up get "N/A".

    Example:
        $ splicescope export rmats/knockout -o exports/
        $ splicescope export rmats/knockout -o exports/ --annotate ensembl --species mus_musculus
        $ splicescope export rmats/knockout -o exports/ --annotate gene-models --gene-models hg38.json
    """
    from splicescope.annotation import EnsemblClient, EventAnnotator, GeneModelCatalog
    from splicescope.export import export_strains

    quiet = ctx.obj.get("quiet", False)
    config: Config = ctx.obj["config"]

    try:
        annotator = None
        annotation = config.annotation
        n_workers = workers if workers is not None else annotation.workers
        if annotate is None:
            annotate = "ensembl" if config.export.include_annotation else "none"

        if annotate == "ensembl":
            client = EnsemblClient(
                species=species or annotation.species,
                base_url=annotation.ensembl_url,
                timeout=annotation.timeout,
            )
            annotator = EventAnnotator(client, workers=n_workers)
        elif annotate == "gene-models":
            if gene_models_path is None:
                raise click.UsageError("--gene-models is required with --annotate gene-models")
            catalog = GeneModelCatalog()
            catalog.load_json(gene_models_path, source_id=gene_models_path.stem)
            annotator = EventAnnotator(catalog.source(gene_models_path.stem), workers=n_workers)

        if delimiter is None:
            sep = config.export.delimiter
        else:
            sep = "," if delimiter == "comma" else "\t"

        pipeline = _build_pipeline(
            ctx, rmats_dirs, chromosome, event_type, read_type,
            min_reads, fdr, psi_diff, psi_limits,
        )
        paths = export_strains(pipeline, output_dir, annotator=annotator, delimiter=sep)

        if not quiet:
            console.print(f"\n[green]Wrote {len(paths)} tables to:[/green] {output_dir}")

    except Exception as e:
        _fail(ctx, e)


if __name__ == "__main__":
    main()
