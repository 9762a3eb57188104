"""Import reconciliation.

Turns parsed workbook rows into store writes. Re-importing the same day
replaces what is already stored instead of adding to it: for every
(well, tank, day) and (well, meter type, day) touched by an import, the
records already on file are deleted before the new one is inserted.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from production_engine.config import ImportConfig
from production_engine.data.dates import day_anchor
from production_engine.data.schemas import (
    BaselineDataset,
    ImportRowError,
    MeterReading,
    MeterType,
    RecordType,
    TankGauging,
    to_record,
)
from production_engine.data.storage import DocumentStore, Snapshot, load_models, load_snapshot
from production_engine.ingest.baseline import parse_baseline
from production_engine.ingest.field_log import FieldLogParseResult, FieldLogRow, parse_field_log
from production_engine.reconcile.writer import BatchWriter, CommitResult, WriteOp
from production_engine.wells.registry import WellRegistry

logger = logging.getLogger(__name__)

IMPORT_SOURCE = "gauging_log"
GENERAL_SHEET = "General"

GaugingKey = tuple[str, str, str]  # (well_id, tank_label, day)
ReadingKey = tuple[str, str, str]  # (well_id, meter_type, day)


# =============================================================================
# Results
# =============================================================================


@dataclass
class FieldLogImportResult:
    """Outcome of a field-log import. Counts are committed records."""

    success: bool = True
    tank_gaugings: int = 0
    meter_readings: int = 0
    skipped: int = 0
    errors: list[ImportRowError] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "imported": {
                "tankGaugings": self.tank_gaugings,
                "meterReadings": self.meter_readings,
            },
            "errors": [error.to_payload() for error in self.errors],
            "skipped": self.skipped,
        }


@dataclass
class BaselineImportResult:
    success: bool = True
    id: str | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.id is not None:
            payload["id"] = self.id
        if self.error is not None:
            payload["error"] = self.error
        return payload


# =============================================================================
# Import run state
# =============================================================================


class ImportRun:
    """Pending writes for one import invocation.

    Indexes the prior snapshot by natural key and records which keys have
    already had their prior records scheduled for deletion, so each key is
    cleared once per run. A second row for the same key within the run
    replaces the pending insert instead of adding another record.
    """

    def __init__(self, snapshot: Snapshot):
        self.ops: list[WriteOp] = []
        self.deleted_keys: set[tuple[str, ...]] = set()
        self._pending: dict[tuple[str, ...], int] = {}

        self._gaugings: dict[GaugingKey, list[str]] = {}
        for gauging in snapshot.gaugings:
            key = (gauging.well_id, gauging.tank_label, gauging.day)
            self._gaugings.setdefault(key, []).append(gauging.id)

        self._readings: dict[ReadingKey, list[str]] = {}
        for reading in snapshot.readings:
            key = (reading.well_id, reading.meter_type.value, reading.day)
            self._readings.setdefault(key, []).append(reading.id)

    def _replace(
        self,
        key: tuple[str, ...],
        record_type: str,
        prior_ids: list[str],
        record: dict[str, Any],
    ) -> None:
        scoped_key = (record_type, *key)
        if scoped_key not in self.deleted_keys:
            self.ops.extend(WriteOp.delete(record_type, record_id) for record_id in prior_ids)
            self.deleted_keys.add(scoped_key)

        op = WriteOp.upsert(record_type, record)
        if scoped_key in self._pending:
            self.ops[self._pending[scoped_key]] = op
        else:
            self._pending[scoped_key] = len(self.ops)
            self.ops.append(op)

    def replace_gauging(self, gauging: TankGauging) -> None:
        key = (gauging.well_id, gauging.tank_label, gauging.day)
        self._replace(key, RecordType.TANK_GAUGINGS, self._gaugings.get(key, []), to_record(gauging))

    def replace_reading(self, reading: MeterReading) -> None:
        key = (reading.well_id, reading.meter_type.value, reading.day)
        self._replace(key, RecordType.METER_READINGS, self._readings.get(key, []), to_record(reading))


def find_orphans(snapshot: Snapshot) -> tuple[list[TankGauging], list[MeterReading]]:
    """Gaugings and readings whose well no longer exists."""
    well_ids = {well.id for well in snapshot.wells}
    gaugings = [g for g in snapshot.gaugings if g.well_id not in well_ids]
    readings = [r for r in snapshot.readings if r.well_id not in well_ids]
    return gaugings, readings


# =============================================================================
# Reconciler
# =============================================================================


class Reconciler:
    """Apply imports and single entries to a document store.

    Imports through one Reconciler are serialised; separate processes
    writing the same store are last-writer-wins.

    Example:
        >>> reconciler = Reconciler(InMemoryStore())
        >>> result = reconciler.import_field_log_workbook(data, user_id="u1")
        >>> result.to_payload()["imported"]
        {'tankGaugings': 3, 'meterReadings': 5}
    """

    def __init__(self, store: DocumentStore, config: ImportConfig | None = None):
        self.store = store
        self.config = config or ImportConfig()
        self.writer = BatchWriter(store, batch_size=self.config.batch_size)
        self._lock = threading.Lock()

    def _snapshot(self, snapshot: Snapshot | None) -> Snapshot:
        return snapshot if snapshot is not None else load_snapshot(self.store)

    # -------------------------------------------------------------------------
    # Field log
    # -------------------------------------------------------------------------

    def _row_records(
        self,
        row: FieldLogRow,
        sheet_name: str,
        well_id: str,
        user_id: str,
        now: datetime,
    ) -> tuple[TankGauging | None, list[MeterReading]]:
        timestamp = day_anchor(row.day)
        common = {
            **({"comment": row.comment} if row.comment else {}),
            **row.metadata,
            "importSource": IMPORT_SOURCE,
            "sheetName": sheet_name,
        }

        gauging = None
        if row.has_gauging:
            gauging = TankGauging(
                id=uuid.uuid4().hex,
                well_id=well_id,
                tank_label=row.tank,
                level_inches=row.total_inches,
                timestamp=timestamp,
                user_id=user_id,
                metadata={**common, "oilFeet": row.oil_feet, "oilInches": row.oil_inches},
                created_at=now,
            )

        readings = [
            MeterReading(
                id=uuid.uuid4().hex,
                well_id=well_id,
                meter_type=meter_type,
                value=value,
                timestamp=timestamp,
                user_id=user_id,
                metadata=dict(common),
                created_at=now,
            )
            for meter_type, value in row.meter_values()
        ]
        return gauging, readings

    def import_field_log(
        self,
        parsed: FieldLogParseResult,
        user_id: str | None = None,
        snapshot: Snapshot | None = None,
        now: datetime | None = None,
    ) -> FieldLogImportResult:
        """Reconcile parsed field-log rows against the store.

        Args:
            parsed: Output of ``parse_field_log``
            user_id: Recorded on every new record
            snapshot: Current wells/gaugings/readings (queried when omitted)
            now: Creation timestamp

        Returns:
            FieldLogImportResult
        """
        user_id = user_id or self.config.default_user_id
        now = now or datetime.now(timezone.utc)
        result = FieldLogImportResult(errors=list(parsed.errors))
        result.skipped = sum(1 for error in parsed.errors if error.row > 1)

        with self._lock:
            snapshot = self._snapshot(snapshot)
            registry = WellRegistry(snapshot.wells)
            run = ImportRun(snapshot)

            for sheet in parsed.sheets:
                for row in sheet.rows:
                    well_id = registry.resolve_id(row.well_identifier)
                    if well_id is None:
                        result.errors.append(
                            ImportRowError(
                                sheet=sheet.name,
                                row=row.row_number,
                                message=(
                                    f'Well "{row.well_identifier}" not found. Tried matching by '
                                    "API number, Well Name #1, and Well Name #2."
                                ),
                            )
                        )
                        result.skipped += 1
                        continue

                    gauging, readings = self._row_records(row, sheet.name, well_id, user_id, now)
                    if gauging is not None:
                        run.replace_gauging(gauging)
                    for reading in readings:
                        run.replace_reading(reading)

            commit = self.writer.commit(run.ops)

        result.tank_gaugings = commit.count(RecordType.TANK_GAUGINGS)
        result.meter_readings = commit.count(RecordType.METER_READINGS)
        if not commit.success:
            result.success = False
            result.errors.append(ImportRowError(sheet=GENERAL_SHEET, row=-1, message=commit.error))

        logger.info(
            f"Field log import: {result.tank_gaugings} gaugings, {result.meter_readings} readings, "
            f"{result.skipped} skipped, {len(result.errors)} errors"
        )
        return result

    def import_field_log_workbook(
        self,
        data: bytes,
        filename: str | None = None,
        user_id: str | None = None,
        snapshot: Snapshot | None = None,
        now: datetime | None = None,
    ) -> FieldLogImportResult:
        """Parse and import a field-log workbook.

        Raises:
            WorkbookError: If the workbook is unreadable or has no sheets
        """
        parsed = parse_field_log(data, filename)
        return self.import_field_log(parsed, user_id=user_id, snapshot=snapshot, now=now)

    # -------------------------------------------------------------------------
    # Baseline
    # -------------------------------------------------------------------------

    def import_baseline(
        self,
        dataset: BaselineDataset,
        existing: Any = None,
        now: datetime | None = None,
    ) -> BaselineImportResult:
        """Replace the stored baseline dataset with ``dataset``.

        Every existing baseline record is deleted and exactly one new record
        is inserted.
        """
        now = now or datetime.now(timezone.utc)
        record = dataset.model_copy(
            update={"id": uuid.uuid4().hex, "created_at": now, "updated_at": now}
        )

        with self._lock:
            if existing is None:
                existing = self.store.query(RecordType.BASELINE)
            ops = [
                WriteOp.delete(RecordType.BASELINE, old.id)
                for old in load_models(existing, BaselineDataset)
                if old.id
            ]
            ops.append(WriteOp.upsert(RecordType.BASELINE, to_record(record)))
            commit = self.writer.commit(ops)

        if not commit.success:
            return BaselineImportResult(success=False, error=commit.error)

        logger.info(f"Baseline import: replaced {len(ops) - 1} records with {record.id}")
        return BaselineImportResult(success=True, id=record.id)

    def import_baseline_workbook(
        self, data: bytes, filename: str | None = None, now: datetime | None = None
    ) -> BaselineImportResult:
        """Parse and import a baseline workbook.

        Raises:
            WorkbookError: If the workbook is unreadable or has no sheets
        """
        return self.import_baseline(parse_baseline(data, filename), now=now)

    # -------------------------------------------------------------------------
    # Single entries and cleanup
    # -------------------------------------------------------------------------

    def _commit_single(self, run: ImportRun) -> CommitResult:
        commit = self.writer.commit(run.ops)
        if not commit.success:
            raise RuntimeError(commit.error)
        return commit

    def enter_tank_gauging(
        self,
        well_id: str,
        tank_label: str,
        level_inches: float,
        timestamp: datetime,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        snapshot: Snapshot | None = None,
    ) -> TankGauging:
        """Record one gauging, replacing any on file for the same tank and day.

        Raises:
            RuntimeError: If the store write fails
        """
        gauging = TankGauging(
            id=uuid.uuid4().hex,
            well_id=well_id,
            tank_label=tank_label,
            level_inches=level_inches,
            timestamp=timestamp,
            user_id=user_id or self.config.default_user_id,
            metadata=metadata or {},
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            run = ImportRun(self._snapshot(snapshot))
            run.replace_gauging(gauging)
            self._commit_single(run)
        return gauging

    def enter_meter_reading(
        self,
        well_id: str,
        meter_type: MeterType | str,
        value: float,
        timestamp: datetime,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        snapshot: Snapshot | None = None,
    ) -> MeterReading:
        """Record one meter reading, replacing any on file for the same meter and day.

        Raises:
            RuntimeError: If the store write fails
        """
        reading = MeterReading(
            id=uuid.uuid4().hex,
            well_id=well_id,
            meter_type=meter_type,
            value=value,
            timestamp=timestamp,
            user_id=user_id or self.config.default_user_id,
            metadata=metadata or {},
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            run = ImportRun(self._snapshot(snapshot))
            run.replace_reading(reading)
            self._commit_single(run)
        return reading

    def delete_orphans(self, snapshot: Snapshot | None = None) -> dict[str, int]:
        """Delete gaugings and readings whose well no longer exists.

        Returns:
            Committed deletions per record type
        """
        with self._lock:
            gaugings, readings = find_orphans(self._snapshot(snapshot))
            ops = [WriteOp.delete(RecordType.TANK_GAUGINGS, g.id) for g in gaugings]
            ops += [WriteOp.delete(RecordType.METER_READINGS, r.id) for r in readings]
            commit = self.writer.commit(ops)

        deleted = {
            RecordType.TANK_GAUGINGS: commit.count(RecordType.TANK_GAUGINGS, "delete"),
            RecordType.METER_READINGS: commit.count(RecordType.METER_READINGS, "delete"),
        }
        if not commit.success:
            logger.error(f"Orphan cleanup incomplete: {commit.error}")
        logger.info(f"Deleted orphans: {deleted}")
        return deleted
