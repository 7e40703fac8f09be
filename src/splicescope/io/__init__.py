"""Input handlers for splicing event tables.

- rMATS event tables (`<TYPE>.MATS.<JC|JCEC>.txt`) and output directories

Example:
    >>> from splicescope.io import load_strain
    >>> strain = load_strain("rmats_out/knockout")
"""

from splicescope.io.rmats import (
    STRAIN_PALETTE,
    RmatsFormatError,
    find_rmats_tables,
    load_strain,
    palette_colour,
    parse_number_array,
    read_rmats_table,
)

__all__ = [
    "STRAIN_PALETTE",
    "RmatsFormatError",
    "find_rmats_tables",
    "load_strain",
    "palette_colour",
    "parse_number_array",
    "read_rmats_table",
]
