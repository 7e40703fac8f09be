"""Two-stage filtering of splicing events.

Example:
    >>> from splicescope.filtering import FilterPipeline
    >>> pipeline = FilterPipeline(strains=[wild_type, knockout])
    >>> pipeline.get_gene_membership()
    {'ENSG01': ['wild_type', 'knockout']}
"""

from splicescope.filtering.pipeline import (
    FilteredStrain,
    FilterPipeline,
    FilterSnapshot,
    StrainInfo,
    passes_structural,
    passes_thresholds,
)

__all__ = [
    "FilterPipeline",
    "FilterSnapshot",
    "FilteredStrain",
    "StrainInfo",
    "passes_structural",
    "passes_thresholds",
]
