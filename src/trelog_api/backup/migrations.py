"""
Schema Migrations

Turns an arbitrary decoded backup payload into current-version records.

- Every schema change is a MigrationStep that upgrades a raw payload by one
  version. ``migrate`` applies the step registered for the payload's version
  until no step matches, so a new schema version only needs a new step.
- The upgraded payload is then loaded leniently: wrong-typed values become
  empty, never errors. Records whose identity fields are unusable come out with
  an empty ``id``/``date``/``name`` and are left for the analyzer to reject.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from trelog_api.models import (
    CURRENT_SCHEMA_VERSION,
    RPE_SCALE,
    ExerciseBlock,
    Session,
    SetEntry,
    Template,
)

logger = logging.getLogger(__name__)

RawPayload = Dict[str, Any]


@dataclass(frozen=True)
class MigrationStep:
    """Upgrade of a raw payload from one schema version to the next"""
    from_version: int
    to_version: int
    transform: Callable[[RawPayload], RawPayload]


@dataclass(frozen=True)
class MigrationResult:
    sessions: List[Session]
    templates: List[Template]
    version: int


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Raw value helpers
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _or_default(entry: Dict[str, Any], key: str, default: Any) -> Any:
    """Value under key, or default when the key is missing or null."""
    value = entry.get(key)
    return default if value is None else value


def _id_or_new(entry: Dict[str, Any]) -> Any:
    value = entry.get("id")
    return new_id() if value is None else value


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _number(value: Any) -> Optional[float]:
    return value if _is_number(value) else None


def _declared_version(payload: RawPayload) -> int:
    version = payload.get("version")
    if version is None:
        return 0
    if isinstance(version, bool) or not isinstance(version, int):
        logger.warning(f"Ignoring non-integer backup version {version!r}, assuming 0")
        return 0
    return version


# ---------------------------------------------------------------------------
# v0 -> v1
# ---------------------------------------------------------------------------

def _v0_set(raw: Any, position: int) -> RawPayload:
    entry = _as_dict(raw)
    return {
        "id": _id_or_new(entry),
        "setNumber": _or_default(entry, "setNumber", position),
        "weightKg": _or_default(entry, "weightKg", ""),
        "reps": _or_default(entry, "reps", ""),
        "durationSec": _or_default(entry, "durationSec", ""),
        "setsCount": _or_default(entry, "setsCount", 1),
        "intervalSec": _or_default(entry, "intervalSec", ""),
        "rpe": _or_default(entry, "rpe", ""),
        "note": _or_default(entry, "note", ""),
    }


def _v0_exercise(raw: Any) -> RawPayload:
    entry = _as_dict(raw)
    return {
        "id": _id_or_new(entry),
        "name": _or_default(entry, "name", ""),
        "variant": _or_default(entry, "variant", ""),
        "note": _or_default(entry, "note", ""),
        "sets": [
            _v0_set(st, i + 1)
            for i, st in enumerate(_as_list(entry.get("sets")))
        ],
    }


def _v0_session(raw: Any) -> RawPayload:
    entry = _as_dict(raw)
    return {
        "id": _id_or_new(entry),
        "date": _or_default(entry, "date", ""),
        "title": _or_default(entry, "title", ""),
        "startTime": _or_default(entry, "startTime", ""),
        "endTime": _or_default(entry, "endTime", ""),
        "bodyweightKg": _or_default(entry, "bodyweightKg", ""),
        "notes": _or_default(entry, "notes", ""),
        "exercises": [_v0_exercise(ex) for ex in _as_list(entry.get("exercises"))],
    }


def _v0_template(raw: Any) -> RawPayload:
    entry = _as_dict(raw)
    return {
        "id": _id_or_new(entry),
        "name": _or_default(entry, "name", ""),
        # v0 templates called their free text "description"
        "notes": _or_default(entry, "notes", _or_default(entry, "description", "")),
        "exercises": [_v0_exercise(ex) for ex in _as_list(entry.get("exercises"))],
    }


def migrate_v0_to_v1(payload: RawPayload) -> RawPayload:
    """Rebuild every record field by field, filling missing fields with defaults."""
    upgraded = dict(payload)
    upgraded["sessions"] = [_v0_session(s) for s in _as_list(payload.get("sessions"))]
    upgraded["templates"] = [_v0_template(t) for t in _as_list(payload.get("templates"))]
    upgraded["version"] = 1
    return upgraded


MIGRATION_STEPS: List[MigrationStep] = [
    MigrationStep(from_version=0, to_version=1, transform=migrate_v0_to_v1),
]


# ---------------------------------------------------------------------------
# Lenient loading of current-version records
# ---------------------------------------------------------------------------

def load_set(raw: Any, position: int = 1) -> SetEntry:
    """Build a SetEntry from raw data, replacing unusable values with empties."""
    entry = _as_dict(raw)

    set_number = entry.get("setNumber")
    if not _is_number(set_number) or set_number < 1 or int(set_number) != set_number:
        set_number = position

    rpe = _number(entry.get("rpe"))
    if rpe is not None and rpe not in RPE_SCALE:
        rpe = None

    return SetEntry(
        id=_text(entry.get("id")),
        set_number=int(set_number),
        weight_kg=_number(entry.get("weightKg")),
        reps=_number(entry.get("reps")),
        sets_count=_number(entry.get("setsCount")),
        rpe=rpe,
        interval_sec=_number(entry.get("intervalSec")),
        duration_sec=_number(entry.get("durationSec")),
        note=_text(entry.get("note")),
    )


def load_exercise(raw: Any) -> ExerciseBlock:
    entry = _as_dict(raw)
    return ExerciseBlock(
        id=_text(entry.get("id")),
        name=_text(entry.get("name")),
        variant=_text(entry.get("variant")),
        note=_text(entry.get("note")),
        sets=[load_set(st, i + 1) for i, st in enumerate(_as_list(entry.get("sets")))],
    )


def load_session(raw: Any) -> Session:
    entry = _as_dict(raw)
    return Session(
        id=_text(entry.get("id")),
        title=_text(entry.get("title")),
        date=_text(entry.get("date")),
        start_time=_text(entry.get("startTime")),
        end_time=_text(entry.get("endTime")),
        bodyweight_kg=_number(entry.get("bodyweightKg")),
        notes=_text(entry.get("notes")),
        exercises=[load_exercise(ex) for ex in _as_list(entry.get("exercises"))],
    )


def load_template(raw: Any) -> Template:
    entry = _as_dict(raw)
    return Template(
        id=_text(entry.get("id")),
        name=_text(entry.get("name")),
        notes=_text(entry.get("notes")),
        exercises=[load_exercise(ex) for ex in _as_list(entry.get("exercises"))],
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def migrate(raw: Any, declared_version: Optional[int] = None) -> MigrationResult:
    """
    Bring a decoded backup up to the current schema.

    Args:
        raw: Any decoded JSON value; only an object with ``sessions`` /
            ``templates`` / ``version`` yields records.
        declared_version: Overrides the payload's own ``version`` tag.

    Returns:
        MigrationResult whose version is always CURRENT_SCHEMA_VERSION.
    """
    payload = dict(raw) if isinstance(raw, dict) else {}
    version = declared_version if declared_version is not None else _declared_version(payload)

    steps = {step.from_version: step for step in MIGRATION_STEPS}
    while version in steps:
        step = steps[version]
        logger.debug(f"Migrating backup payload v{step.from_version} -> v{step.to_version}")
        payload = step.transform(payload)
        version = step.to_version

    if version != CURRENT_SCHEMA_VERSION:
        logger.warning(
            f"No migration path from backup version {version} to "
            f"{CURRENT_SCHEMA_VERSION}; loading records as-is"
        )

    sessions = [load_session(s) for s in _as_list(payload.get("sessions"))]
    templates = [load_template(t) for t in _as_list(payload.get("templates"))]

    return MigrationResult(
        sessions=sessions,
        templates=templates,
        version=CURRENT_SCHEMA_VERSION,
    )
