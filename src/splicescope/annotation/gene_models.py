"""GTF-derived gene models as an annotation source.

Gene models arrive already parsed, one dict per gene::

    {
        "gtf": {"id": "hg38", "name": "hg38 RefSeq"},
        "gene": {"gene_id": "...", "gene_name": "...", "strand": "+"},
        "transcripts": [
            {"transcript_id": "...", "exons": [{"start": 100, "end": 200}, ...]},
        ],
    }

GeneModelCatalog keeps them in memory per source ID and answers lookups
by gene name or gene ID.

Example:
    >>> from splicescope.annotation.gene_models import GeneModelCatalog
    >>> catalog = GeneModelCatalog()
    >>> catalog.load_json("hg38_models.json", source_id="hg38")
    >>> transcripts = catalog.source("hg38").transcripts_for(event)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from splicescope.annotation.sources import AnnotationLookupError
from splicescope.annotation.transcripts import Transcript, transcripts_from_gene_model

logger = logging.getLogger(__name__)


class GeneModelCatalog:
    """In-memory gene models indexed by source, gene ID and gene name."""

    def __init__(self) -> None:
        self._models: dict[str, list[dict[str, Any]]] = {}
        self._by_id: dict[str, dict[str, dict[str, Any]]] = {}
        self._by_name: dict[str, dict[str, dict[str, Any]]] = {}

    @property
    def source_ids(self) -> list[str]:
        """IDs of the sources loaded so far."""
        return list(self._models)

    def add(self, source_id: str, model: dict[str, Any]) -> None:
        """Register one parsed gene model under a source ID."""
        gene = model.get("gene", {})
        self._models.setdefault(source_id, []).append(model)
        by_id = self._by_id.setdefault(source_id, {})
        by_name = self._by_name.setdefault(source_id, {})
        if gene.get("gene_id"):
            by_id.setdefault(gene["gene_id"], model)
        if gene.get("gene_name"):
            by_name.setdefault(gene["gene_name"], model)

    def load_json(self, path: Path | str, source_id: str | None = None) -> int:
        """Load gene models from a JSON file.

        The file holds either a list of gene models or an object with a
        "gene_models" list. The source ID defaults to each model's gtf.id,
        then to the file stem.

        Returns:
            Number of gene models loaded.
        """
        path = Path(path)
        with open(path) as f:
            data = json.load(f)

        models = data.get("gene_models", []) if isinstance(data, dict) else data
        for model in models:
            sid = source_id or model.get("gtf", {}).get("id") or path.stem
            self.add(sid, model)

        logger.info(f"Loaded {len(models)} gene models from {path}")
        return len(models)

    def get_gene_model(
        self,
        source_id: str,
        gene_name: str | None = None,
        gene_id: str | None = None,
    ) -> dict[str, Any]:
        """Find the gene model matching a gene name or ID.

        Names and IDs are matched against both fields, since rMATS tables
        sometimes carry one in place of the other.

        Raises:
            AnnotationLookupError: If the source is unknown or no model matches.
        """
        gene_name = (gene_name or "").strip()
        gene_id = (gene_id or "").strip()
        if not gene_name and not gene_id:
            raise AnnotationLookupError("Missing gene name/gene ID")
        if source_id not in self._models:
            raise AnnotationLookupError(f"Unknown gene model source: {source_id}")

        by_id = self._by_id[source_id]
        by_name = self._by_name[source_id]
        for index, key in (
            (by_id, gene_id),
            (by_name, gene_name),
            (by_id, gene_name),
            (by_name, gene_id),
        ):
            if key and key in index:
                return index[key]

        raise AnnotationLookupError(
            f"No gene model for {gene_name or gene_id} in source {source_id}"
        )

    def source(self, source_id: str) -> "GeneModelSource":
        """Transcript source backed by one set of gene models."""
        return GeneModelSource(self, source_id)


class GeneModelSource:
    """Adapter exposing one catalog source as a transcript source."""

    def __init__(self, catalog: GeneModelCatalog, source_id: str) -> None:
        self.catalog = catalog
        self.source_id = source_id

    def transcripts_for(self, event: Any) -> list[Transcript]:
        """Ranked transcripts of the event's gene.

        Raises:
            AnnotationLookupError: If no model matches or the model is malformed.
        """
        model = self.catalog.get_gene_model(
            self.source_id,
            gene_name=event.gene_name,
            gene_id=event.gene_id,
        )
        try:
            return transcripts_from_gene_model(model)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise AnnotationLookupError(
                f"Malformed gene model for {event.gene_name} in source {self.source_id}: {e!r}"
            ) from e
