"""
Import Analyzer

Runs the schema migration on a decoded backup, drops records that cannot be
identified, and summarizes what an import would bring in. Nothing is mutated;
the returned ImportPreview is handed to the reconciler as-is.
"""

import logging
from typing import Any, List

from trelog_api.backup.migrations import migrate
from trelog_api.backup.models import DateRange, ImportCounts, ImportPreview
from trelog_api.models import Session, Template

logger = logging.getLogger(__name__)


def _is_valid_session(session: Session) -> bool:
    return bool(session.id) and bool(session.date)


def _is_valid_template(template: Template) -> bool:
    return bool(template.id) and bool(template.name)


def _date_range(sessions: List[Session]) -> DateRange:
    # ISO dates sort chronologically as plain strings
    dates = sorted(s.date for s in sessions if s.date)
    if not dates:
        return DateRange()
    return DateRange(min=dates[0], max=dates[-1])


def analyze(raw: Any) -> ImportPreview:
    """
    Analyze a decoded backup payload.

    Args:
        raw: Decoded JSON value (normally the backup envelope object)

    Returns:
        ImportPreview with the kept records, counts, date range and warnings
    """
    migrated = migrate(raw)

    sessions = [s for s in migrated.sessions if _is_valid_session(s)]
    templates = [t for t in migrated.templates if _is_valid_template(t)]

    warnings: List[str] = []
    dropped_sessions = len(migrated.sessions) - len(sessions)
    if dropped_sessions:
        warnings.append(
            f"{dropped_sessions} session(s) are malformed (missing id or date) and will be excluded."
        )
    dropped_templates = len(migrated.templates) - len(templates)
    if dropped_templates:
        warnings.append(
            f"{dropped_templates} template(s) are malformed (missing id or name) and will be excluded."
        )

    for warning in warnings:
        logger.warning(f"Import analysis: {warning}")

    backup_type = raw.get("__type") if isinstance(raw, dict) else None

    return ImportPreview(
        sessions=tuple(sessions),
        templates=tuple(templates),
        counts=ImportCounts(sessions=len(sessions), templates=len(templates)),
        date_range=_date_range(sessions),
        warnings=tuple(warnings),
        version=migrated.version,
        backup_type=backup_type if isinstance(backup_type, str) else None,
    )
