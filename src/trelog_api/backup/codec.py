"""
Backup Codec

Reading and writing the backup envelope:

{
  "__type": "trelog-backup",
  "version": 1,
  "exportedAt": "<ISO-8601 timestamp>",
  "sessions": [...],
  "templates": [...]      # optional
}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple, Union

from trelog_api.backup.migrations import load_session, load_template
from trelog_api.models import (
    AUTO_BACKUP_TYPE,
    BACKUP_TYPE,
    CURRENT_SCHEMA_VERSION,
    BackupFile,
    Session,
    Template,
)

logger = logging.getLogger(__name__)


class BackupDecodeError(ValueError):
    """Raised when backup content is not valid JSON."""


def _reject_constant(name: str) -> None:
    raise BackupDecodeError(f"Invalid JSON: {name} is not a JSON number")


def decode_backup(content: Union[str, bytes]) -> Any:
    """
    Decode raw file content into a JSON value.

    Raises:
        BackupDecodeError: content is not UTF-8 text or not valid JSON
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise BackupDecodeError(f"Backup is not UTF-8 text: {e}") from e

    try:
        return json.loads(content, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid backup JSON: {e}")
        raise BackupDecodeError(f"Invalid JSON: {e}") from e


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp like 2024-01-01T08:30:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_envelope(
    sessions: Sequence[Session],
    templates: Optional[Sequence[Template]] = None,
    backup_type: str = BACKUP_TYPE,
    exported_at: Optional[datetime] = None,
) -> BackupFile:
    """Wrap records in a current-version envelope. ``templates=None`` omits the key."""
    return BackupFile(
        backup_type=backup_type,
        version=CURRENT_SCHEMA_VERSION,
        exported_at=iso_timestamp(exported_at),
        sessions=list(sessions),
        templates=list(templates) if templates is not None else None,
    )


def build_auto_backup(
    sessions: Sequence[Session],
    templates: Sequence[Template],
) -> dict:
    """Snapshot written by the debounced auto-backup."""
    return build_envelope(sessions, templates, backup_type=AUTO_BACKUP_TYPE).to_wire()


def restore_auto_backup(
    snapshot: Any,
) -> Tuple[Optional[List[Session]], Optional[List[Template]]]:
    """
    Read an auto-backup snapshot back into records.

    Each collection is returned only when the snapshot carries it as a list;
    ``None`` means "leave the live collection alone".
    """
    if not isinstance(snapshot, dict):
        return None, None

    sessions = snapshot.get("sessions")
    templates = snapshot.get("templates")
    return (
        [load_session(s) for s in sessions] if isinstance(sessions, list) else None,
        [load_template(t) for t in templates] if isinstance(templates, list) else None,
    )
