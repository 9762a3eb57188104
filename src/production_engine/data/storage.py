"""Document store backends.

The persistence layer is a collaborator exposing three operations:

- ``query(record_type, filters)``: records of one type, as a list or an
  id-keyed mapping (callers normalize with ``to_list``)
- ``batch_upsert(record_type, records)``: insert/replace records by ``id``
- ``batch_delete(record_type, ids)``: remove records by ``id``

Two backends are provided:

- memory: InMemoryStore, for tests and single-process use
- sql: SqlDocumentStore, one JSON payload row per record via SQLAlchemy
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

import sqlalchemy as sa
from pydantic import BaseModel, ValidationError

from production_engine.data.schemas import (
    BaselineDataset,
    MeterReading,
    RecordType,
    TankGauging,
    Well,
)

if TYPE_CHECKING:
    from production_engine.config import StorageConfig

logger = logging.getLogger(__name__)

Record = dict[str, Any]
ModelT = TypeVar("ModelT", bound=BaseModel)


def to_list(collection: Iterable[Any] | Mapping[str, Any] | None) -> list[Any]:
    """Normalize a store collection (list or id-keyed mapping) to a list.

    Example:
        >>> to_list({"a": {"id": "a"}, "b": {"id": "b"}})
        [{'id': 'a'}, {'id': 'b'}]
    """
    if collection is None:
        return []
    if isinstance(collection, Mapping):
        return list(collection.values())
    return list(collection)


def _matches(record: Record, filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(record.get(key) == value for key, value in filters.items())


class DocumentStore(ABC):
    """Abstract base class for document store backends."""

    @abstractmethod
    def query(
        self, record_type: str, filters: dict[str, Any] | None = None
    ) -> list[Record] | dict[str, Record]:
        """Get records of one type, optionally filtered by field equality."""
        pass

    @abstractmethod
    def batch_upsert(self, record_type: str, records: list[Record]) -> None:
        """Insert or replace records. Every record carries its ``id``."""
        pass

    @abstractmethod
    def batch_delete(self, record_type: str, ids: list[str]) -> None:
        """Delete records by id. Unknown ids are ignored."""
        pass


class InMemoryStore(DocumentStore):
    """Dict-backed store. Queries return lists."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Record]] = {}

    def query(self, record_type: str, filters: dict[str, Any] | None = None) -> list[Record]:
        records = self._collections.get(record_type, {})
        return [copy.deepcopy(r) for r in records.values() if _matches(r, filters)]

    def batch_upsert(self, record_type: str, records: list[Record]) -> None:
        collection = self._collections.setdefault(record_type, {})
        for record in records:
            if not record.get("id"):
                raise ValueError(f"Record without id in {record_type} upsert")
            collection[record["id"]] = copy.deepcopy(record)

    def batch_delete(self, record_type: str, ids: list[str]) -> None:
        collection = self._collections.get(record_type, {})
        for record_id in ids:
            collection.pop(record_id, None)


class SqlDocumentStore(DocumentStore):
    """SQLAlchemy-backed store keeping each record as a JSON payload.

    Queries return id-keyed mappings. Each batch runs in one transaction.
    """

    def __init__(self, url: str, table: str = "records") -> None:
        self.engine = sa.create_engine(url)
        metadata = sa.MetaData()
        self.table = sa.Table(
            table,
            metadata,
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("record_type", sa.String(64), nullable=False, index=True),
            sa.Column("payload", sa.JSON, nullable=False),
        )
        metadata.create_all(self.engine)

    def query(self, record_type: str, filters: dict[str, Any] | None = None) -> dict[str, Record]:
        stmt = sa.select(self.table.c.id, self.table.c.payload).where(
            self.table.c.record_type == record_type
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return {row.id: row.payload for row in rows if _matches(row.payload, filters)}

    def batch_upsert(self, record_type: str, records: list[Record]) -> None:
        if not records:
            return
        ids = [record["id"] for record in records]
        with self.engine.begin() as conn:
            conn.execute(sa.delete(self.table).where(self.table.c.id.in_(ids)))
            conn.execute(
                sa.insert(self.table),
                [{"id": r["id"], "record_type": record_type, "payload": r} for r in records],
            )

    def batch_delete(self, record_type: str, ids: list[str]) -> None:
        if not ids:
            return
        with self.engine.begin() as conn:
            conn.execute(
                sa.delete(self.table).where(
                    self.table.c.record_type == record_type,
                    self.table.c.id.in_(ids),
                )
            )


def create_store(config: StorageConfig) -> DocumentStore:
    """Factory function to create the configured backend."""
    if config.backend == "memory":
        logger.info("Creating InMemoryStore")
        return InMemoryStore()

    if config.backend == "sql":
        if not config.url:
            raise ValueError("url required for sql storage backend")
        logger.info(f"Creating SqlDocumentStore (table: {config.table})")
        return SqlDocumentStore(config.url, config.table)

    raise ValueError(f"Unknown storage backend: {config.backend}")


# =============================================================================
# Typed snapshots
# =============================================================================


def load_models(
    collection: Iterable[Any] | Mapping[str, Any] | None,
    model: type[ModelT],
) -> list[ModelT]:
    """Validate raw records into models, skipping (and logging) invalid ones."""
    models = []
    for raw in to_list(collection):
        if isinstance(raw, model):
            models.append(raw)
            continue
        try:
            models.append(model.model_validate(raw))
        except ValidationError as e:
            record_id = raw.get("id") if isinstance(raw, Mapping) else None
            logger.warning(f"Skipping invalid {model.__name__} record {record_id}: {e}")
    return models


@dataclass
class Snapshot:
    """Point-in-time view of the persisted time series."""

    wells: list[Well] = field(default_factory=list)
    gaugings: list[TankGauging] = field(default_factory=list)
    readings: list[MeterReading] = field(default_factory=list)
    baseline: BaselineDataset | None = None


def load_snapshot(store: DocumentStore) -> Snapshot:
    """Read wells, gaugings, readings and the baseline dataset from a store."""
    baselines = load_models(store.query(RecordType.BASELINE), BaselineDataset)
    baselines.sort(key=lambda b: b.updated_at.isoformat() if b.updated_at else "")
    return Snapshot(
        wells=load_models(store.query(RecordType.WELLS), Well),
        gaugings=load_models(store.query(RecordType.TANK_GAUGINGS), TankGauging),
        readings=load_models(store.query(RecordType.METER_READINGS), MeterReading),
        baseline=baselines[-1] if baselines else None,
    )
