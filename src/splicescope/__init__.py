"""splicescope: Filter, compare and annotate alternative splicing events.

splicescope loads rMATS event tables as strains, derives the exon and
junction geometry of each event, filters events in two stages and
classifies them against annotated transcripts.

Example:
    >>> import splicescope
    >>> splicescope.__version__
    '0.1.0'

Modules:
    events: Event records, strains and event geometry
    annotation: Transcript ranking, isoform classification and lookup sources
    filtering: Two-stage filter pipeline with change notification
    io: rMATS table reader
    export: Delimited export of filtered events
    config: Filter settings and configuration files
    utils: Intervals and logging
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
