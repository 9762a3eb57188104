"""Batched store writes.

Write operations are committed in fixed-size batches, sequentially. Inside
a batch every delete is applied before any upsert, so a delete-then-insert
for one key never lands in the wrong order. The first failing batch stops
the run: earlier batches stay committed and later ones are not attempted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from production_engine.config import MAX_BATCH_SIZE, MIN_BATCH_SIZE
from production_engine.data.storage import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteOp:
    """One pending store mutation."""

    record_type: str
    action: Literal["delete", "upsert"]
    record_id: str
    record: dict[str, Any] | None = None

    @classmethod
    def delete(cls, record_type: str, record_id: str) -> "WriteOp":
        return cls(record_type, "delete", record_id)

    @classmethod
    def upsert(cls, record_type: str, record: dict[str, Any]) -> "WriteOp":
        return cls(record_type, "upsert", record["id"], record)


@dataclass
class CommitResult:
    """Outcome of committing a list of operations."""

    committed: list[WriteOp] = field(default_factory=list)
    batches: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def count(self, record_type: str, action: str = "upsert") -> int:
        """Committed operations of one type and action."""
        return sum(
            1 for op in self.committed if op.record_type == record_type and op.action == action
        )


class BatchWriter:
    """Commit write operations against a store in sequential batches.

    Args:
        store: Target document store
        batch_size: Operations per batch (50-100)

    Example:
        >>> writer = BatchWriter(store, batch_size=100)
        >>> result = writer.commit([WriteOp.upsert("wells", {"id": "w1"})])
        >>> result.success
        True
    """

    def __init__(self, store: DocumentStore, batch_size: int = MAX_BATCH_SIZE):
        if not MIN_BATCH_SIZE <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}"
            )
        self.store = store
        self.batch_size = batch_size

    def _apply(self, batch: list[WriteOp]) -> None:
        deletes: dict[str, list[str]] = {}
        upserts: dict[str, list[dict[str, Any]]] = {}
        for op in batch:
            if op.action == "delete":
                deletes.setdefault(op.record_type, []).append(op.record_id)
            else:
                upserts.setdefault(op.record_type, []).append(op.record)

        for record_type, ids in deletes.items():
            self.store.batch_delete(record_type, ids)
        for record_type, records in upserts.items():
            self.store.batch_upsert(record_type, records)

    def commit(self, ops: list[WriteOp]) -> CommitResult:
        """Commit operations in order, stopping at the first failed batch."""
        result = CommitResult()
        for start in range(0, len(ops), self.batch_size):
            batch = ops[start : start + self.batch_size]
            try:
                self._apply(batch)
            except Exception as e:
                result.error = f"Failed to commit transactions: {e}"
                logger.error(
                    f"Batch {result.batches + 1} failed after "
                    f"{len(result.committed)} committed operations: {e}"
                )
                break
            result.committed.extend(batch)
            result.batches += 1
        return result
