"""Logging configuration for splicescope.

Console output goes through rich; an optional log file always receives
DEBUG records. Modules log through `logging.getLogger(__name__)` and so
inherit the handlers set up here.

Example:
    >>> import logging
    >>> from splicescope.utils.logging import setup_logging
    >>> setup_logging(verbosity=2)
    >>> logger = logging.getLogger(__name__)
    >>> logger.info("Loading strains")
"""

import logging
import time
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

# =============================================================================
# Constants
# =============================================================================

# Root logger of the package
LOGGER_NAME = "splicescope"

# File log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Rich console format
RICH_FORMAT = "%(message)s"

# Log levels by verbosity
VERBOSITY_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logging(
    verbosity: int = 1,
    log_file: Path | str | None = None,
    use_rich: bool = True,
) -> logging.Logger:
    """Configure the splicescope logger.

    Args:
        verbosity: Verbosity level (0=warning, 1=info, 2=debug). Negative
            values are treated as 0.
        log_file: Optional file to log to.
        use_rich: Use rich for console output.

    Returns:
        The package logger.
    """
    level = VERBOSITY_LEVELS.get(max(verbosity, 0), logging.DEBUG)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.handlers.clear()

    if use_rich:
        console_handler: logging.Handler = RichHandler(
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
        )
        console_handler.setFormatter(logging.Formatter(RICH_FORMAT))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger


# =============================================================================
# Progress Logging
# =============================================================================


class ProgressLogger:
    """Periodic progress messages for loops over many items.

    Example:
        >>> progress = ProgressLogger(logger, total=len(events), description="Annotating")
        >>> for event in events:
        ...     annotate(event)
        ...     progress.update()
        >>> progress.finish()
    """

    def __init__(
        self,
        logger: logging.Logger,
        total: int,
        interval: int = 100,
        description: str = "Processing",
    ) -> None:
        self.logger = logger
        self.total = total
        self.interval = max(interval, 1)
        self.description = description
        self.count = 0

    def update(self, n: int = 1) -> None:
        """Count n more items and log on every interval boundary."""
        before = self.count
        self.count += n
        crossed = self.count // self.interval > before // self.interval
        if crossed or self.count == self.total:
            pct = 100 * self.count / self.total if self.total > 0 else 100
            self.logger.info(f"{self.description}: {self.count}/{self.total} ({pct:.1f}%)")

    def finish(self) -> None:
        """Log completion."""
        self.logger.info(f"{self.description}: Complete ({self.count} items)")


# =============================================================================
# Timing Utilities
# =============================================================================


class Timer:
    """Context manager logging the duration of a block.

    Example:
        >>> with Timer("Filtering", logger):
        ...     pipeline.refresh()
        # Logs: "Filtering completed in 0.12s"
    """

    def __init__(
        self,
        description: str,
        logger: logging.Logger | None = None,
        level: int = logging.INFO,
    ) -> None:
        self.description = description
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.level = level
        self.start_time: float = 0
        self.elapsed: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed = time.perf_counter() - self.start_time
        self.logger.log(self.level, f"{self.description} completed in {self.elapsed:.2f}s")
