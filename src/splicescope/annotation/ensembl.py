"""Ensembl REST client for gene and transcript lookup.

Only the `lookup/symbol` and `lookup/id` endpoints are used, with
`expand=1` so the response carries every transcript and its exons.
Responses are cached per URL for the lifetime of the client.

Example:
    >>> from splicescope.annotation.ensembl import EnsemblClient
    >>> client = EnsemblClient(species="homo_sapiens")
    >>> info = client.get_gene_info("BRCA1")
    >>> info.transcripts[0].transcript_id
    'ENST00000357654'
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

import attrs

from splicescope.annotation.sources import AnnotationLookupError
from splicescope.annotation.transcripts import Transcript, transcripts_from_ensembl
from splicescope.config import DEFAULT_ENSEMBL_URL, DEFAULT_REQUEST_TIMEOUT, DEFAULT_SPECIES

logger = logging.getLogger(__name__)

# Gene names rMATS writes when a gene has no symbol
MISSING_GENE_NAMES = {"", "NA", "N/A", "."}


@attrs.define
class GeneInfo:
    """Gene-level lookup result.

    Attributes:
        gene_id: Ensembl gene ID.
        display_name: Gene symbol.
        seq_region_name: Chromosome name.
        strand: 1 or -1.
        biotype: Gene biotype.
        canonical_transcript: Canonical transcript ID, if reported.
        transcripts: Ranked transcripts.
    """

    gene_id: str
    display_name: str | None = None
    seq_region_name: str | None = None
    strand: int | None = None
    biotype: str | None = None
    canonical_transcript: str | None = None
    transcripts: list[Transcript] = attrs.Factory(list)

    @classmethod
    def from_lookup(cls, data: dict[str, Any]) -> "GeneInfo":
        """Build from an Ensembl lookup response."""
        return cls(
            gene_id=data["id"],
            display_name=data.get("display_name"),
            seq_region_name=data.get("seq_region_name"),
            strand=data.get("strand"),
            biotype=data.get("biotype"),
            canonical_transcript=data.get("canonical_transcript"),
            transcripts=transcripts_from_ensembl(data),
        )


class EnsemblClient:
    """Minimal Ensembl REST client.

    Attributes:
        species: Ensembl species name (e.g. homo_sapiens).
        base_url: REST server root, ending in a slash.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        species: str = DEFAULT_SPECIES,
        base_url: str = DEFAULT_ENSEMBL_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.species = species
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self._cache: dict[str, GeneInfo] = {}
        self._lock = threading.Lock()

    def _get_json(self, path: str) -> Any:
        """GET a REST path and decode the JSON body.

        Raises:
            AnnotationLookupError: On network, HTTP or decoding errors.
        """
        url = self.base_url + path
        request = Request(url, headers={"Content-Type": "application/json"})
        logger.debug(f"GET {url}")
        try:
            with urlopen(request, timeout=self.timeout) as response:
                return json.loads(response.read().decode("utf-8"))
        except HTTPError as e:
            raise AnnotationLookupError(f"HTTP error {e.code} for {url}: {e.reason}") from e
        except (URLError, OSError) as e:
            raise AnnotationLookupError(f"Request failed for {url}: {e}") from e
        except ValueError as e:
            raise AnnotationLookupError(f"Invalid JSON from {url}: {e}") from e

    def _lookup(self, path: str) -> GeneInfo:
        with self._lock:
            cached = self._cache.get(path)
        if cached is not None:
            return cached

        data = self._get_json(path)
        if not isinstance(data, dict):
            raise AnnotationLookupError(f"Unexpected response format for {path}")
        if "error" in data:
            raise AnnotationLookupError(str(data["error"]))
        if "id" not in data:
            raise AnnotationLookupError(f"Unexpected response format for {path}")

        try:
            info = GeneInfo.from_lookup(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise AnnotationLookupError(f"Malformed lookup response for {path}: {e!r}") from e

        with self._lock:
            self._cache[path] = info
        return info

    def get_gene_info(self, symbol: str) -> GeneInfo:
        """Look up a gene by symbol.

        Raises:
            AnnotationLookupError: If the lookup fails.
        """
        return self._lookup(
            f"lookup/symbol/{quote(self.species)}/{quote(symbol)}?expand=1;content-type=application/json"
        )

    def get_gene_info_by_id(self, gene_id: str) -> GeneInfo:
        """Look up a gene by stable ID (version suffix removed).

        Raises:
            AnnotationLookupError: If the lookup fails.
        """
        stable_id = gene_id.split(".")[0]
        return self._lookup(f"lookup/id/{quote(stable_id)}?expand=1;content-type=application/json")

    def transcripts_for(self, event: Any) -> list[Transcript]:
        """Ranked transcripts of an event's gene, by symbol when the event has one."""
        gene_name = (event.gene_name or "").strip()
        if gene_name not in MISSING_GENE_NAMES:
            return self.get_gene_info(gene_name).transcripts
        return self.get_gene_info_by_id(event.gene_id).transcripts
