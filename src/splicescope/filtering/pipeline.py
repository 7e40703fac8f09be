"""Two-stage filtering of splicing events across strains.

Filtering is split so that threshold changes stay cheap:

- Structural stage: strain visibility, event type, chromosome, read type
  and the PSI limits gate. Produces the candidate events of every visible
  strain. Rerun when strains change or a structural setting changes.
- Threshold stage: mean inclusion count, FDR and |delta PSI| applied to the
  candidates only. Rerun after every structural pass and whenever a
  threshold changes. Also builds the gene and event membership indexes.

Each pass publishes an immutable FilterSnapshot; readers never see
threshold results computed from stale candidates. Observers are called
with no arguments after every threshold pass.

Example:
    >>> from splicescope.filtering import FilterPipeline
    >>> pipeline = FilterPipeline()
    >>> pipeline.set_strains([wild_type, knockout])
    >>> unsubscribe = pipeline.subscribe(lambda: print("updated"))
    >>> pipeline.set_filter_settings(fdr_thresh=0.01)
    updated
    >>> pipeline.get_filtered_events()["knockout"][:1]
    [SEEvent(...)]
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterable
from typing import Any

import attrs

from splicescope.config import ALL, PSI_LIMITS, FilterSettings
from splicescope.events.geometry import canonical_id
from splicescope.events.models import Event, Strain

logger = logging.getLogger(__name__)

Observer = Callable[[], None]


# =============================================================================
# Predicates
# =============================================================================


def passes_structural(event: Event, settings: FilterSettings) -> bool:
    """Check the structural filters (read type, chromosome, PSI limits).

    Event type and strain visibility are applied by the caller, which
    chooses the event lists to scan.
    """
    if (
        settings.selected_read_type is not None
        and event.read_type is not None
        and event.read_type is not settings.selected_read_type
    ):
        return False

    if settings.selected_chr != ALL and not (event.chr and event.chr.startswith(settings.selected_chr)):
        return False

    if settings.extraneous_psi_limits:
        low, high = PSI_LIMITS
        if not low <= event.psi1_avg <= high:
            return False

    return True


def passes_thresholds(event: Event, settings: FilterSettings) -> bool:
    """Check the numeric thresholds (read count, FDR, |delta PSI|)."""
    return (
        event.inc_count1_avg >= settings.read_count_thresh
        and event.fdr <= settings.fdr_thresh
        and abs(event.psi_diff) >= settings.psi_diff_thresh
    )


# =============================================================================
# Results
# =============================================================================


@attrs.define(frozen=True)
class FilteredStrain:
    """Events of one visible strain after filtering.

    Attributes:
        name: Strain name.
        colour: Strain colour.
        events: Passing events, in source order.
        n_candidates: Number of events that passed the structural stage.
    """

    name: str
    colour: str
    events: tuple[Event, ...] = ()
    n_candidates: int = 0

    @property
    def pass_count(self) -> int:
        """Number of events passing both stages."""
        return len(self.events)


@attrs.define(frozen=True)
class FilterSnapshot:
    """Result of one complete filter pass.

    Attributes:
        strains: Filtered strains in strain order.
        gene_membership: Gene ID -> names of strains with a passing event.
        event_membership: Canonical event ID -> names of strains where it passes.
        structural_key: Structural settings the candidates were built with.
        numeric_key: Thresholds the events were filtered with.
    """

    strains: tuple[FilteredStrain, ...] = ()
    gene_membership: dict[str, tuple[str, ...]] = attrs.Factory(dict)
    event_membership: dict[str, tuple[str, ...]] = attrs.Factory(dict)
    structural_key: tuple[Any, ...] = ()
    numeric_key: tuple[Any, ...] = ()

    @property
    def total_events(self) -> int:
        """Number of passing events over all strains."""
        return sum(s.pass_count for s in self.strains)


@attrs.define(frozen=True)
class StrainInfo:
    """Summary of a loaded strain."""

    name: str
    colour: str
    visible: bool
    counts: dict[str, int]


# =============================================================================
# Pipeline
# =============================================================================


class FilterPipeline:
    """Filter the events of a set of strains with a FilterSettings context.

    All recomputation is synchronous and serialized by a re-entrant lock.

    Attributes:
        settings: The filter settings in effect. After changing fields
            directly, call refresh() to rerun the affected stages.
    """

    def __init__(
        self,
        settings: FilterSettings | None = None,
        strains: Iterable[Strain] | None = None,
    ) -> None:
        self.settings = settings if settings is not None else FilterSettings()
        self._strains: list[Strain] = []
        self._candidates: list[tuple[Strain, list[Event]]] = []
        self._snapshot = FilterSnapshot()
        self._observers: list[Observer] = []
        self._lock = threading.RLock()
        self._structural_key: tuple[Any, ...] | None = None
        self._numeric_key: tuple[Any, ...] | None = None

        if strains is not None:
            self.set_strains(strains)
        else:
            self._recompute_all()

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Register a callback run after every threshold pass.

        Returns:
            A function that unsubscribes the callback.
        """
        with self._lock:
            self._observers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Observer) -> None:
        """Remove a callback; unknown callbacks are ignored."""
        with self._lock:
            if callback in self._observers:
                self._observers.remove(callback)

    def _notify(self) -> None:
        with self._lock:
            observers = list(self._observers)
        for callback in observers:
            callback()

    # -------------------------------------------------------------------------
    # Strains
    # -------------------------------------------------------------------------

    @property
    def strains(self) -> list[Strain]:
        """Loaded strains (a copy of the list)."""
        with self._lock:
            return list(self._strains)

    def set_strains(self, strains: Iterable[Strain]) -> None:
        """Replace all strains and rerun both stages."""
        with self._lock:
            self._strains = list(strains)
            logger.debug(f"Loaded {len(self._strains)} strains")
            self._recompute_all()
        self._notify()

    def merge_strains(self, strains: Iterable[Strain]) -> None:
        """Add strains, replacing loaded strains with the same name."""
        with self._lock:
            merged = {strain.name: strain for strain in self._strains}
            for strain in strains:
                merged[strain.name] = strain
            self._strains = list(merged.values())
            self._recompute_all()
        self._notify()

    def reset_strains(self) -> None:
        """Remove all strains."""
        self.set_strains([])

    def toggle_strain_visibility(self, strain: int | str) -> bool:
        """Flip the visibility of a strain given by index or name.

        Returns:
            The new visibility.

        Raises:
            KeyError: If no strain has the given name.
            IndexError: If the index is out of range.
        """
        with self._lock:
            target = self._find_strain(strain)
            target.visible = not target.visible
            self._recompute_all()
        self._notify()
        return target.visible

    def _find_strain(self, strain: int | str) -> Strain:
        if isinstance(strain, int):
            return self._strains[strain]
        for candidate in self._strains:
            if candidate.name == strain:
                return candidate
        raise KeyError(f"Strain not found: {strain}")

    def get_strain_info(self) -> list[StrainInfo]:
        """Name, colour, visibility and event counts of every strain."""
        with self._lock:
            return [
                StrainInfo(s.name, s.colour, s.visible, s.counts())
                for s in self._strains
            ]

    def get_strain_events(self, name: str) -> list[Event]:
        """Events of one strain passing the structural filters.

        Visibility is ignored. An unknown strain gives an empty list.
        """
        with self._lock:
            try:
                strain = self._find_strain(name)
            except KeyError:
                logger.warning(f'Strain with name "{name}" not found.')
                return []
            return self._structural_events(strain)

    def get_chromosome_list(self) -> list[str]:
        """Chromosome selector values: "All", then chromosomes in natural order.

        Names are cut at the first underscore, so chr1_random lists as chr1.
        Numbered chromosomes sort numerically ahead of the rest.
        """
        chromosomes: set[str] = set()
        with self._lock:
            for strain in self._strains:
                for event in strain.iter_events():
                    if event.chr:
                        chromosomes.add(event.chr.split("_", 1)[0].strip())
        chromosomes.discard("")
        return [ALL] + sorted(chromosomes, key=_chromosome_sort_key)

    def find_gene_events(self, event: Event) -> list[tuple[Strain, Event]]:
        """Events in every strain sharing the given event's gene ID or name."""
        matches = []
        with self._lock:
            for strain in self._strains:
                for other in strain.iter_events():
                    if other.gene_id == event.gene_id or other.gene_name == event.gene_name:
                        matches.append((strain, other))
        return matches

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def set_filter_settings(self, changes: dict[str, Any] | None = None, **kwargs: Any) -> None:
        """Update some settings and rerun the stages they affect.

        Args:
            changes: Setting name -> new value.
            **kwargs: More setting names and values.

        The update is all or nothing: if any name or value is rejected, no
        setting changes.

        Raises:
            AttributeError: If a name is not a FilterSettings field.
            ValueError: If a selector value cannot be converted.
        """
        updates = dict(changes or {}, **kwargs)
        unknown = set(updates) - set(attrs.fields_dict(FilterSettings))
        if unknown:
            raise AttributeError(f"Unknown filter setting: {', '.join(sorted(unknown))}")

        with self._lock:
            staged = self.settings.copy()
            for name, value in updates.items():
                setattr(staged, name, value)
            for name in updates:
                setattr(self.settings, name, getattr(staged, name))
        self.refresh()

    def reset_settings(self) -> None:
        """Restore default settings and rerun both stages."""
        with self._lock:
            self.settings.reset()
        self.refresh()

    def refresh(self) -> None:
        """Rerun the stages whose settings changed since the last pass."""
        with self._lock:
            if self.settings.structural_key() != self._structural_key:
                self._recompute_all()
            elif self.settings.numeric_key() != self._numeric_key:
                self._recompute_thresholds()
            else:
                return
        self._notify()

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> FilterSnapshot:
        """Result of the latest completed pass."""
        return self._snapshot

    def get_filtered_strains(self) -> list[FilteredStrain]:
        """Filtered strains of the latest pass, in strain order."""
        return list(self._snapshot.strains)

    def get_filtered_events(self) -> dict[str, list[Event]]:
        """Strain name -> passing events, from the latest pass."""
        return {s.name: list(s.events) for s in self._snapshot.strains}

    def get_gene_membership(self) -> dict[str, list[str]]:
        """Gene ID -> names of strains with at least one passing event."""
        return {gene: list(names) for gene, names in self._snapshot.gene_membership.items()}

    def get_event_membership(self) -> dict[str, list[str]]:
        """Canonical event ID -> names of strains where the event passes."""
        return {event: list(names) for event, names in self._snapshot.event_membership.items()}

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _structural_events(self, strain: Strain) -> list[Event]:
        settings = self.settings
        return [
            event
            for event in strain.iter_events(settings.event_types())
            if passes_structural(event, settings)
        ]

    def _recompute_all(self) -> None:
        """Structural stage followed by the threshold stage."""
        self._candidates = [
            (strain, self._structural_events(strain))
            for strain in self._strains
            if strain.visible
        ]
        self._structural_key = self.settings.structural_key()
        logger.debug(
            f"Structural filter: {sum(len(e) for _, e in self._candidates)} candidates "
            f"in {len(self._candidates)} visible strains"
        )
        self._recompute_thresholds()

    def _recompute_thresholds(self) -> None:
        settings = self.settings
        filtered: list[FilteredStrain] = []
        genes: dict[str, list[str]] = {}
        events: dict[str, list[str]] = {}

        for strain, candidates in self._candidates:
            passed = [event for event in candidates if passes_thresholds(event, settings)]
            for event in passed:
                _add_member(genes, event.gene_id, strain.name)
                _add_member(events, canonical_id(event), strain.name)
            filtered.append(
                FilteredStrain(
                    name=strain.name,
                    colour=strain.colour,
                    events=tuple(passed),
                    n_candidates=len(candidates),
                )
            )

        self._numeric_key = settings.numeric_key()
        self._snapshot = FilterSnapshot(
            strains=tuple(filtered),
            gene_membership={k: tuple(v) for k, v in genes.items()},
            event_membership={k: tuple(v) for k, v in events.items()},
            structural_key=self._structural_key or (),
            numeric_key=self._numeric_key,
        )
        logger.debug(f"Threshold filter: {self._snapshot.total_events} events pass")


def _add_member(index: dict[str, list[str]], key: str, strain_name: str) -> None:
    names = index.setdefault(key, [])
    if strain_name not in names:
        names.append(strain_name)


def _chromosome_sort_key(name: str) -> tuple[int, int, str]:
    match = re.match(r"(\d+)", name.removeprefix("chr"))
    if match:
        return (0, int(match.group(1)), name)
    return (1, 0, name)

