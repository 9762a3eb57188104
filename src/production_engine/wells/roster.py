"""Well roster import.

Reads the well master list (one well per row, CSV or Excel) and creates or
updates well records. Columns are matched by header name; anything not
recognised is kept in the well's metadata.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from production_engine.data.cells import cell_text, is_blank, json_safe, parse_number
from production_engine.data.loaders import SheetGrid, WorkbookError, read_workbook, rows_as_records
from production_engine.data.schemas import RecordType, Well, to_record
from production_engine.data.storage import DocumentStore, load_models
from production_engine.reconcile.writer import BatchWriter, WriteOp

logger = logging.getLogger(__name__)

ROSTER_BATCH_SIZE = 50

_NAME_HEADERS = ("well name #1", "wellname #1", "well_name #1", "name")
_NAME2_HEADERS = ("well name #2", "wellname #2", "well_name #2")
_API14_HEADERS = ("api 14", "api14")
_API10_HEADERS = ("api 10", "api10")
_API14_ALT_HEADERS = ("api 14 alt", "api14 alt", "api14alt")

# metadata key -> accepted (lower-cased) headers
_METADATA_COLUMNS: dict[str, tuple[str, ...]] = {
    "tankFactor": ("tank factor", "tankfactor"),
    "liftType": ("lift type", "lifttype"),
    "wi": ("wi",),
    "nri": ("nri",),
    "surface": ("surface",),
    "swd": ("swd",),
    "sec": ("sec",),
    "twn": ("twn",),
    "rng": ("rng",),
    "county": ("county",),
    "state": ("state",),
    "leaseDescription": ("lease description", "leasedescription"),
    "grossAcres": ("gross acres", "grossacres"),
    "operator": ("operator",),
    "field": ("field",),
    "formation": ("formation",),
    "reservoir": ("reservoir",),
    "payZone": ("pay zone", "payzone", "pay_zone"),
    "wellType": ("well type", "welltype", "well_type"),
    "wellboreType": ("wellbore type", "wellboretype", "wellbore_type"),
    "spudDate": ("spud date", "spuddate", "spud_date"),
    "completionDate": ("completion date", "completiondate", "completion_date"),
    "firstProductionDate": (
        "first production date",
        "firstproductiondate",
        "first_production_date",
        "first production",
        "firstprod",
    ),
    "totalDepth": ("total depth", "totaldepth", "total_depth", "td"),
    "tvd": ("tvd", "true vertical depth"),
    "md": ("md", "measured depth"),
    "permitNumber": ("permit number", "permitnumber", "permit_number", "permit"),
    "permitDate": ("permit date", "permitdate", "permit_date"),
    "currentStatus": ("current status", "currentstatus", "current_status"),
    "wellboreStatus": ("wellbore status", "wellborestatus", "wellbore_status"),
}

# metadata key -> header substrings
_POTENTIAL_RATE_COLUMNS: dict[str, tuple[str, ...]] = {
    "potentialOilProductionRate": ("potential oil", "oil production"),
    "potentialGasProductionRate": ("potential gas", "gas production"),
    "potentialWaterProductionRate": ("potential water", "water production"),
}


class ImportMode(str, Enum):
    """How to treat roster rows whose well number already exists."""

    SKIP = "skip"  # report as skipped
    UPDATE = "update"  # merge into the existing well
    ADD_ONLY = "add-only"  # silently ignore


@dataclass
class WellImportRow:
    """One parsed roster row."""

    row_number: int
    name: str
    well_number: str
    location: str | None = None
    status: str | None = None
    secondary_name: str | None = None
    api_alt: list[str] = field(default_factory=list)
    tank_factor: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class WellImportResult:
    """Outcome of a roster import."""

    success: bool = True
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "imported": self.imported,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


def _find(headers: list[str], accepted: tuple[str, ...]) -> int:
    for idx, header in enumerate(headers):
        if header in accepted:
            return idx
    return -1


def _find_containing(headers: list[str], fragments: tuple[str, ...], taken: set[int]) -> int:
    for idx, header in enumerate(headers):
        if idx not in taken and any(fragment in header for fragment in fragments):
            return idx
    return -1


def parse_well_roster(data: bytes | SheetGrid, filename: str | None = None) -> list[WellImportRow]:
    """Parse a well roster from the first sheet of a workbook or a CSV file.

    Args:
        data: File bytes, or an already-loaded row grid
        filename: Original file name (``.csv`` switches to the CSV reader)

    Returns:
        One WellImportRow per data row that has both a name and a well number

    Raises:
        WorkbookError: Unreadable file, no data rows, or missing name/API columns
    """
    if isinstance(data, (bytes, bytearray)):
        workbook = read_workbook(bytes(data), filename)
        grid = next(iter(workbook.values()))
    else:
        grid = data

    if len(grid) < 2:
        raise WorkbookError("Roster must have at least a header row and one data row")

    original_headers, rows = rows_as_records(grid)
    headers = [h.lower() for h in original_headers]

    name_idx = _find(headers, _NAME_HEADERS)
    if name_idx == -1:
        name_idx = next(
            (i for i, h in enumerate(headers) if "well name" in h and "#1" in h), -1
        )
    name2_idx = _find(headers, _NAME2_HEADERS)
    if name2_idx == -1:
        name2_idx = next(
            (i for i, h in enumerate(headers) if "well name" in h and "#2" in h), -1
        )
    api14_idx = _find(headers, _API14_HEADERS)
    api10_idx = _find(headers, _API10_HEADERS)
    api14_alt_idx = _find(headers, _API14_ALT_HEADERS)
    number_idx = next((i for i in (api14_idx, api10_idx, api14_alt_idx) if i != -1), -1)

    if (name_idx == -1 and name2_idx == -1) or number_idx == -1:
        raise WorkbookError(
            "Roster must have 'Well Name #1' (or 'Well Name #2') and 'API 14' (or 'API 10') columns"
        )

    location_idx = _find(headers, ("location", "loc"))
    status_idx = _find(headers, ("status",))

    metadata_idx = {key: _find(headers, accepted) for key, accepted in _METADATA_COLUMNS.items()}
    taken = {name_idx, name2_idx, api14_idx, api10_idx, api14_alt_idx, location_idx, status_idx}
    taken |= set(metadata_idx.values())
    for key, fragments in _POTENTIAL_RATE_COLUMNS.items():
        metadata_idx[key] = _find_containing(headers, fragments, taken)
        taken.add(metadata_idx[key])
    taken.discard(-1)

    parsed = []
    for offset, row in enumerate(rows):
        row_number = offset + 2

        def text(idx: int) -> str:
            return cell_text(row[idx]) if idx >= 0 else ""

        name = text(name_idx) or text(name2_idx)
        well_number = text(number_idx)
        if not name or not well_number:
            continue

        metadata: dict[str, Any] = {}
        for key, idx in (("api10", api10_idx), ("api14", api14_idx), ("api14Alt", api14_alt_idx)):
            if text(idx):
                metadata[key] = text(idx)
        if text(name2_idx):
            metadata["wellName2"] = text(name2_idx)
        for key, idx in metadata_idx.items():
            if idx >= 0 and not is_blank(row[idx]):
                metadata[key] = json_safe(row[idx])
        for idx, header in enumerate(original_headers):
            value = row[idx]
            if idx in taken or not header or is_blank(value) or cell_text(value) == "-":
                continue
            metadata[header] = json_safe(value)

        alternates = [
            text(idx)
            for idx in (api14_idx, api10_idx, api14_alt_idx)
            if idx != number_idx and text(idx)
        ]
        status = text(status_idx).lower() if status_idx >= 0 else None

        parsed.append(
            WellImportRow(
                row_number=row_number,
                name=name,
                well_number=well_number,
                location=text(location_idx) or None,
                status=("inactive" if status == "inactive" else "active") if status is not None else None,
                secondary_name=text(name2_idx) or None,
                api_alt=alternates,
                tank_factor=parse_number(metadata.get("tankFactor")),
                metadata=metadata,
            )
        )

    logger.info(f"Parsed {len(parsed)} wells from roster")
    return parsed


def import_wells(
    rows: list[WellImportRow],
    store: DocumentStore,
    mode: ImportMode | str = ImportMode.SKIP,
    existing: Any = None,
    now: datetime | None = None,
) -> WellImportResult:
    """Create or update well records from parsed roster rows.

    Existing wells are matched by well number (case-insensitive). Writes go
    out in batches of 50; counts reflect committed records only.

    Args:
        rows: Output of ``parse_well_roster``
        store: Document store
        mode: ``skip``, ``update`` or ``add-only`` for already-known wells
        existing: Current well collection (queried from the store when omitted)
        now: Timestamp for created/updated fields

    Returns:
        WellImportResult
    """
    mode = ImportMode(mode)
    now = now or datetime.now(timezone.utc)
    result = WellImportResult()

    if existing is None:
        existing = store.query(RecordType.WELLS)
    by_number: dict[str, Well] = {}
    for well in load_models(existing, Well):
        by_number.setdefault(well.well_number.lower().strip(), well)

    ops: list[WriteOp] = []
    created_ids: set[str] = set()
    seen: set[str] = set()

    for row in rows:
        key = row.well_number.lower().strip()
        if key in seen:
            result.errors.append(
                {"row": row.row_number, "error": f"Well {row.well_number} appears more than once - skipped"}
            )
            result.skipped += 1
            continue
        seen.add(key)

        current = by_number.get(key)
        if current is not None:
            if mode is ImportMode.SKIP:
                result.errors.append(
                    {"row": row.row_number, "error": f"Well {row.well_number} already exists - skipped"}
                )
                result.skipped += 1
                continue
            if mode is ImportMode.ADD_ONLY:
                result.skipped += 1
                continue

            updated = current.model_copy(
                update={
                    "name": row.name,
                    "well_number": row.well_number,
                    "status": row.status or current.status,
                    "location": row.location or current.location,
                    "secondary_name": row.secondary_name or current.secondary_name,
                    "api_alt": row.api_alt or current.api_alt,
                    "tank_factor": row.tank_factor if row.tank_factor is not None else current.tank_factor,
                    "metadata": {**current.metadata, **row.metadata},
                    "updated_at": now,
                }
            )
            ops.append(WriteOp.upsert(RecordType.WELLS, to_record(updated)))
            continue

        well = Well(
            id=uuid.uuid4().hex,
            well_number=row.well_number,
            name=row.name,
            api_alt=row.api_alt,
            secondary_name=row.secondary_name,
            status=row.status or "active",
            tank_factor=row.tank_factor,
            location=row.location,
            metadata=row.metadata,
            created_at=now,
            updated_at=now,
        )
        created_ids.add(well.id)
        ops.append(WriteOp.upsert(RecordType.WELLS, to_record(well)))

    commit = BatchWriter(store, batch_size=ROSTER_BATCH_SIZE).commit(ops)
    for op in commit.committed:
        if op.record_id in created_ids:
            result.imported += 1
        else:
            result.updated += 1
    if not commit.success:
        result.success = False
        result.errors.append({"row": 0, "error": commit.error})

    logger.info(
        f"Well roster import ({mode.value}): {result.imported} imported, "
        f"{result.updated} updated, {result.skipped} skipped"
    )
    return result
