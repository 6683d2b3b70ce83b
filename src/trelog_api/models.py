"""Data models for the training log.

Field names are snake_case in Python and camelCase on the wire (the backup
file format). Optional numbers use ``None`` as the "empty" value in Python and
are written as ``""`` in JSON, which is what the persisted records have always
looked like.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

CURRENT_SCHEMA_VERSION = 1

BACKUP_TYPE = "trelog-backup"
AUTO_BACKUP_TYPE = "trelog-auto-backup"

# Allowed perceived-effort ratings (half-point steps)
RPE_SCALE = (6, 6.5, 7, 7.5, 8, 8.5, 9, 9.5, 10)

Number = Union[int, float]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class Record(BaseModel):
    """Base for persisted records: frozen, alias-aware, tolerant of extra keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


class SetEntry(Record):
    """One logged set, or a group of identical sets when sets_count > 1."""
    id: str
    set_number: int = Field(default=1, ge=1, alias="setNumber")
    weight_kg: Optional[Number] = Field(default=None, alias="weightKg")
    reps: Optional[Number] = None
    sets_count: Optional[Number] = Field(default=1, alias="setsCount")
    rpe: Optional[Number] = None
    interval_sec: Optional[Number] = Field(default=None, alias="intervalSec")
    duration_sec: Optional[Number] = Field(default=None, alias="durationSec")
    note: str = ""

    @field_validator(
        "weight_kg", "reps", "sets_count", "rpe", "interval_sec", "duration_sec",
        mode="before",
    )
    @classmethod
    def _empty_numbers(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("rpe")
    @classmethod
    def _rpe_on_scale(cls, value: Optional[Number]) -> Optional[Number]:
        if value is not None and value not in RPE_SCALE:
            raise ValueError(f"rpe must be one of {RPE_SCALE}")
        return value

    @field_serializer(
        "weight_kg", "reps", "sets_count", "rpe", "interval_sec", "duration_sec",
    )
    def _serialize_empty(self, value: Optional[Number]) -> Union[Number, str]:
        return "" if value is None else value

    @property
    def multiplier(self) -> Number:
        """How many identical sets this row stands for."""
        return self.sets_count if self.sets_count is not None else 1

    @property
    def volume(self) -> Number:
        """weight x reps x multiplier, or 0 when load or reps are missing."""
        if self.weight_kg is None or self.reps is None:
            return 0
        return self.weight_kg * self.reps * self.multiplier


class ExerciseBlock(Record):
    """One exercise within a session or template."""
    id: str
    name: str = ""
    variant: str = ""
    note: str = ""
    sets: List[SetEntry] = Field(default_factory=list)


class Session(Record):
    """One workout occurrence."""
    id: str
    title: str = ""
    date: str = ""  # yyyy-mm-dd
    start_time: str = Field(default="", alias="startTime")  # HH:MM
    end_time: str = Field(default="", alias="endTime")
    bodyweight_kg: Optional[Number] = Field(default=None, alias="bodyweightKg")
    notes: str = ""
    exercises: List[ExerciseBlock] = Field(default_factory=list)

    @field_validator("bodyweight_kg", mode="before")
    @classmethod
    def _empty_bodyweight(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_serializer("bodyweight_kg")
    def _serialize_bodyweight(self, value: Optional[Number]) -> Union[Number, str]:
        return "" if value is None else value


class Template(Record):
    """Reusable exercise-list skeleton. Cloned with fresh ids when applied."""
    id: str
    name: str = ""
    notes: str = ""
    exercises: List[ExerciseBlock] = Field(default_factory=list)


class BackupFile(Record):
    """Versioned backup envelope."""
    backup_type: str = Field(default=BACKUP_TYPE, alias="__type")
    version: int = CURRENT_SCHEMA_VERSION
    exported_at: str = Field(..., alias="exportedAt")
    sessions: List[Session] = Field(default_factory=list)
    templates: Optional[List[Template]] = None
    meta: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize as the backup file layout (``meta`` first, absent parts omitted)."""
        payload: Dict[str, Any] = {}
        if self.meta is not None:
            payload["meta"] = self.meta
        payload.update({
            "__type": self.backup_type,
            "version": self.version,
            "exportedAt": self.exported_at,
            "sessions": [s.to_wire() for s in self.sessions],
        })
        if self.templates is not None:
            payload["templates"] = [t.to_wire() for t in self.templates]
        return payload
