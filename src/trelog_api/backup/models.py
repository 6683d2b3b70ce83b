"""
Backup Models

Pydantic models describing an analyzed import and the reconciliation policy.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from trelog_api.models import CURRENT_SCHEMA_VERSION, Session, Template


class MergePolicy(str, Enum):
    """How an analyzed import is folded into the stored records"""
    MERGE = "merge"      # imported records overwrite same-id records, others kept
    REPLACE = "replace"  # imported collection becomes authoritative (if non-empty)


class ImportCounts(BaseModel):
    """Number of records that survived analysis"""
    model_config = ConfigDict(frozen=True)

    sessions: int = 0
    templates: int = 0


class DateRange(BaseModel):
    """Earliest and latest session date (yyyy-mm-dd) in an import"""
    model_config = ConfigDict(frozen=True)

    min: Optional[str] = None
    max: Optional[str] = None


class ImportPreview(BaseModel):
    """Immutable result of analyzing a backup, ready to hand to the reconciler"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sessions: Tuple[Session, ...] = ()
    templates: Tuple[Template, ...] = ()
    counts: ImportCounts = Field(default_factory=ImportCounts)
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    warnings: Tuple[str, ...] = ()

    version: int = CURRENT_SCHEMA_VERSION
    backup_type: Optional[str] = Field(
        default=None,
        alias="backupType",
        description="__type tag found in the file; enforcing it is up to the caller",
    )

    @property
    def is_empty(self) -> bool:
        return not self.sessions and not self.templates
