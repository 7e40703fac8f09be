"""Transcript lookup and per-event annotation.

Annotation sources (the Ensembl REST client, the GTF gene-model catalog)
return the ranked transcripts of an event's gene. EventAnnotator wraps a
source, caches transcript lists per gene and turns lookup failures into
"N/A" classifications so one unreachable gene never stops an export.

Example:
    >>> from splicescope.annotation import EnsemblClient, EventAnnotator
    >>> annotator = EventAnnotator(EnsemblClient(species="mus_musculus"), workers=4)
    >>> classifications = annotator.annotate_all(events)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Protocol

from splicescope.annotation.classify import Classification, classify
from splicescope.annotation.transcripts import Transcript
from splicescope.utils.logging import ProgressLogger

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class AnnotationLookupError(RuntimeError):
    """Raised when the transcripts of a gene cannot be obtained."""

    pass


# =============================================================================
# Source Interface
# =============================================================================


class TranscriptSource(Protocol):
    """Anything that can list the ranked transcripts of an event's gene."""

    def transcripts_for(self, event: Any) -> list[Transcript]:
        """Return the gene's transcripts, most representative first.

        Raises:
            AnnotationLookupError: If the gene cannot be looked up.
        """
        ...


def gene_key(event: Any) -> str:
    """Cache key identifying an event's gene."""
    return f"{event.gene_id}|{event.gene_name}"


# =============================================================================
# Annotator
# =============================================================================


class EventAnnotator:
    """Classify events against transcripts from a source.

    Transcript lists are cached per gene for the annotator's lifetime.
    Failed lookups are cached as well and reported once.

    Attributes:
        source: Transcript source.
        workers: Threads used to prefetch genes in annotate_all().
    """

    def __init__(self, source: TranscriptSource, workers: int = 1) -> None:
        self.source = source
        self.workers = max(1, workers)
        self._cache: dict[str, list[Transcript] | AnnotationLookupError] = {}
        self._lock = threading.Lock()

    def transcripts(self, event: Any) -> list[Transcript]:
        """Get the transcripts of an event's gene.

        Raises:
            AnnotationLookupError: If the lookup failed (now or earlier).
        """
        key = gene_key(event)
        with self._lock:
            cached = self._cache.get(key)

        if cached is None:
            try:
                cached = self.source.transcripts_for(event)
            except AnnotationLookupError as e:
                logger.warning(f"Transcript lookup failed for {event.gene_name} ({event.gene_id}): {e}")
                cached = e
            with self._lock:
                self._cache[key] = cached

        if isinstance(cached, AnnotationLookupError):
            raise cached
        return cached

    def annotate(self, event: Any) -> Classification:
        """Classify one event, N/A on every column if its gene cannot be looked up."""
        try:
            transcripts = self.transcripts(event)
        except AnnotationLookupError:
            return Classification.unavailable()
        return classify(event, transcripts)

    def prefetch(self, events: Iterable[Any]) -> None:
        """Look up every distinct gene once, in parallel when workers > 1."""
        by_gene: dict[str, Any] = {}
        for event in events:
            by_gene.setdefault(gene_key(event), event)

        with self._lock:
            pending = [event for key, event in by_gene.items() if key not in self._cache]

        if self.workers == 1 or len(pending) < 2:
            for event in pending:
                self._fetch_quietly(event)
            return

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._fetch_quietly, event) for event in pending]
            for future in as_completed(futures):
                future.result()

    def annotate_all(self, events: Iterable[Any]) -> list[Classification]:
        """Classify events, keeping input order."""
        events = list(events)
        self.prefetch(events)

        progress = ProgressLogger(logger, total=len(events), description="Annotating")
        results = []
        for event in events:
            results.append(self.annotate(event))
            progress.update()
        return results

    def _fetch_quietly(self, event: Any) -> None:
        try:
            self.transcripts(event)
        except AnnotationLookupError:
            pass


# =============================================================================
# Convenience Functions
# =============================================================================


def annotate_event(event: Any, source: TranscriptSource) -> Classification:
    """Classify one event against the transcripts of its gene.

    Returns the N/A classification if the gene cannot be looked up.
    """
    return EventAnnotator(source).annotate(event)


def annotate_events(
    events: Iterable[Any],
    source: TranscriptSource,
    workers: int = 1,
) -> list[Classification]:
    """Classify many events, looking up each gene once."""
    return EventAnnotator(source, workers=workers).annotate_all(events)
