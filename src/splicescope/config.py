"""Configuration management for splicescope.

This module holds default values and the attrs configuration classes:

- FilterSettings: the filter context driving the two-stage pipeline
- AnnotationConfig: transcript lookup settings
- ExportConfig: export table settings
- Config: container loaded from a TOML file

Example:
    >>> from splicescope.config import Config
    >>> config = Config.load("splicescope.toml")
    >>> config.filter.fdr_thresh
    0.05

A configuration file may contain any of these tables::

    [filter]
    selected_chr = "chr2"
    read_count_thresh = 20

    [annotation]
    species = "mus_musculus"

    [export]
    delimiter = ","
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import attrs

from splicescope.events.models import EventType, ReadType, parse_event_type

# =============================================================================
# Default Configuration Values
# =============================================================================

# Selector value meaning "no restriction"
ALL = "All"

# Filter defaults
DEFAULT_READ_TYPE = ReadType.JCEC
DEFAULT_READ_COUNT_THRESH = 10.0
DEFAULT_FDR_THRESH = 0.05
DEFAULT_PSI_DIFF_THRESH = 0.2
PSI_LIMITS = (0.05, 0.95)  # psi1Avg range kept when extraneous limits are on

# Annotation defaults
DEFAULT_SPECIES = "homo_sapiens"
DEFAULT_ENSEMBL_URL = "https://rest.ensembl.org/"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_ANNOTATION_WORKERS = 1

# Export defaults
DEFAULT_DELIMITER = "\t"


class ConfigError(ValueError):
    """Raised when a configuration file is malformed."""

    pass


# =============================================================================
# Converters
# =============================================================================


def _to_event_type_selector(value: str | EventType) -> str | EventType:
    if isinstance(value, str) and value.strip().lower() == ALL.lower():
        return ALL
    return parse_event_type(value)


def _to_read_type(value: str | ReadType | None) -> ReadType | None:
    if value is None or isinstance(value, ReadType):
        return value
    if value.strip().lower() in ("", "none", ALL.lower()):
        return None
    return ReadType(value.strip().upper())


# =============================================================================
# Configuration Classes
# =============================================================================


@attrs.define
class FilterSettings:
    """Event filter settings.

    Structural settings (chromosome, event type, read type, PSI limits)
    feed the first filter stage; numeric thresholds feed the second.
    Values are taken as given: a negative threshold simply filters less.

    Attributes:
        selected_chr: "All" or a chromosome name prefix.
        selected_event_type: "All" or one EventType.
        selected_read_type: Read type to show, None for any.
        read_count_thresh: Minimum mean inclusion count in condition 1.
        fdr_thresh: Maximum FDR.
        psi_diff_thresh: Minimum absolute PSI difference.
        extraneous_psi_limits: Keep only events with psi1Avg in PSI_LIMITS.
    """

    selected_chr: str = ALL
    selected_event_type: str | EventType = attrs.field(
        default=ALL, converter=_to_event_type_selector
    )
    selected_read_type: ReadType | None = attrs.field(
        default=DEFAULT_READ_TYPE, converter=_to_read_type
    )
    read_count_thresh: float = DEFAULT_READ_COUNT_THRESH
    fdr_thresh: float = DEFAULT_FDR_THRESH
    psi_diff_thresh: float = DEFAULT_PSI_DIFF_THRESH
    extraneous_psi_limits: bool = False

    STRUCTURAL_FIELDS = (
        "selected_chr",
        "selected_event_type",
        "selected_read_type",
        "extraneous_psi_limits",
    )
    NUMERIC_FIELDS = ("read_count_thresh", "fdr_thresh", "psi_diff_thresh")

    def structural_key(self) -> tuple[Any, ...]:
        """Values of the settings read by the structural filter stage."""
        return tuple(getattr(self, name) for name in self.STRUCTURAL_FIELDS)

    def numeric_key(self) -> tuple[Any, ...]:
        """Values of the settings read by the threshold filter stage."""
        return tuple(getattr(self, name) for name in self.NUMERIC_FIELDS)

    def event_types(self) -> tuple[EventType, ...]:
        """Event types selected for filtering."""
        if self.selected_event_type == ALL:
            return tuple(EventType)
        return (self.selected_event_type,)

    def copy(self) -> "FilterSettings":
        """Independent copy of these settings."""
        return attrs.evolve(self)

    def reset(self) -> None:
        """Restore every setting to its default."""
        defaults = FilterSettings()
        for field in attrs.fields(FilterSettings):
            setattr(self, field.name, getattr(defaults, field.name))


@attrs.define
class AnnotationConfig:
    """Configuration for transcript lookup.

    Attributes:
        species: Ensembl species name.
        ensembl_url: Ensembl REST server root.
        timeout: Request timeout in seconds.
        workers: Threads used to prefetch genes.
    """

    species: str = DEFAULT_SPECIES
    ensembl_url: str = DEFAULT_ENSEMBL_URL
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    workers: int = DEFAULT_ANNOTATION_WORKERS


@attrs.define
class ExportConfig:
    """Configuration for export tables.

    Attributes:
        delimiter: Column delimiter.
        include_annotation: Append the four classifier columns.
    """

    delimiter: str = DEFAULT_DELIMITER
    include_annotation: bool = False


@attrs.define
class Config:
    """Main configuration container for splicescope.

    Attributes:
        filter: Filter settings.
        annotation: Annotation configuration.
        export: Export configuration.
    """

    filter: FilterSettings = attrs.Factory(FilterSettings)
    annotation: AnnotationConfig = attrs.Factory(AnnotationConfig)
    export: ExportConfig = attrs.Factory(ExportConfig)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from a TOML file.

        Args:
            path: Path to configuration file. If None, returns default
                configuration.

        Returns:
            Loaded configuration object.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            ConfigError: If configuration file is invalid.
        """
        if path is None:
            return cls()

        with open(path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {path}: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build configuration from nested dictionaries.

        Raises:
            ConfigError: On unknown tables or keys.
        """
        sections = {
            "filter": FilterSettings,
            "annotation": AnnotationConfig,
            "export": ExportConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigError(f"Unknown configuration tables: {', '.join(sorted(unknown))}")

        kwargs = {}
        for name, section_cls in sections.items():
            table = data.get(name, {})
            known = {field.name for field in attrs.fields(section_cls)}
            bad_keys = set(table) - known
            if bad_keys:
                raise ConfigError(f"Unknown keys in [{name}]: {', '.join(sorted(bad_keys))}")
            try:
                kwargs[name] = section_cls(**table)
            except ValueError as e:
                raise ConfigError(f"Invalid value in [{name}]: {e}") from e

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration.
        """
        return attrs.asdict(self)
