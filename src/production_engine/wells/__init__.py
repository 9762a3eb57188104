"""Wells module - Identifier resolution and roster import."""

from production_engine.wells.registry import WellRegistry, normalize_identifier
from production_engine.wells.roster import (
    ImportMode,
    WellImportResult,
    WellImportRow,
    import_wells,
    parse_well_roster,
)

__all__ = [
    "WellRegistry",
    "normalize_identifier",
    "ImportMode",
    "WellImportRow",
    "WellImportResult",
    "parse_well_roster",
    "import_wells",
]
