"""Annotation of splicing events against transcript models.

- Transcript records and ranking (canonical, GENCODE primary, biotype, length)
- Classification of transcripts into inclusion/skipping support
- Transcript sources: Ensembl REST and parsed GTF gene models
- EventAnnotator: cached, failure-tolerant annotation of many events

Example:
    >>> from splicescope.annotation import classify, rank_transcripts
    >>> result = classify(event, rank_transcripts(transcripts))
    >>> result.to_columns()
    ['protein_coding', 'N/A', 'ENST0001', 'N/A']
"""

from splicescope.annotation.classify import (
    NOT_AVAILABLE,
    Classification,
    TranscriptMatch,
    classify,
    inclusion_exons,
    matches_isoform,
    skipped_exons,
)
from splicescope.annotation.ensembl import EnsemblClient, GeneInfo
from splicescope.annotation.gene_models import GeneModelCatalog, GeneModelSource
from splicescope.annotation.sources import (
    AnnotationLookupError,
    EventAnnotator,
    TranscriptSource,
    annotate_event,
    annotate_events,
)
from splicescope.annotation.transcripts import (
    BIOTYPE_SORT_ORDER,
    Transcript,
    rank_transcripts,
    transcripts_from_ensembl,
    transcripts_from_gene_model,
)

__all__ = [
    # Transcripts
    "Transcript",
    "BIOTYPE_SORT_ORDER",
    "rank_transcripts",
    "transcripts_from_ensembl",
    "transcripts_from_gene_model",
    # Classification
    "Classification",
    "TranscriptMatch",
    "NOT_AVAILABLE",
    "classify",
    "inclusion_exons",
    "skipped_exons",
    "matches_isoform",
    # Sources
    "AnnotationLookupError",
    "TranscriptSource",
    "EventAnnotator",
    "annotate_event",
    "annotate_events",
    "EnsemblClient",
    "GeneInfo",
    "GeneModelCatalog",
    "GeneModelSource",
]
