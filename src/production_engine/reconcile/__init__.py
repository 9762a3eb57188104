"""Reconcile module - Idempotent imports and batched store writes."""

from production_engine.reconcile.writer import BatchWriter, CommitResult, WriteOp
from production_engine.reconcile.importer import (
    BaselineImportResult,
    FieldLogImportResult,
    ImportRun,
    Reconciler,
    find_orphans,
)

__all__ = [
    # Writer
    "BatchWriter",
    "CommitResult",
    "WriteOp",
    # Importer
    "Reconciler",
    "ImportRun",
    "FieldLogImportResult",
    "BaselineImportResult",
    "find_orphans",
]
