"""
Backup import pipeline.

raw file text -> decode_backup -> analyze (migrate + filter) -> ImportPreview
-> reconcile(policy) -> collections to persist
"""

from .analyzer import analyze
from .codec import (
    BackupDecodeError,
    build_auto_backup,
    build_envelope,
    decode_backup,
    restore_auto_backup,
)
from .migrations import (
    MIGRATION_STEPS,
    MigrationResult,
    MigrationStep,
    load_session,
    load_template,
    migrate,
)
from .models import DateRange, ImportCounts, ImportPreview, MergePolicy
from .reconciler import Reconciliation, merge_by_id, reconcile

__all__ = [
    "analyze",
    "BackupDecodeError",
    "build_auto_backup",
    "build_envelope",
    "decode_backup",
    "restore_auto_backup",
    "MIGRATION_STEPS",
    "MigrationResult",
    "MigrationStep",
    "load_session",
    "load_template",
    "migrate",
    "DateRange",
    "ImportCounts",
    "ImportPreview",
    "MergePolicy",
    "Reconciliation",
    "merge_by_id",
    "reconcile",
]
