"""Export service for converting the training log to downloadable formats."""
import csv
import io
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from trelog_api import __version__
from trelog_api.backup.codec import build_envelope
from trelog_api.models import Session, Template
from trelog_api.services.aggregator import round_half_up, session_volume

APP_NAME = "trelog-api"

CSV_COLUMNS = [
    "date",
    "title",
    "exercise",
    "variant",
    "setNumber",
    "setsCount",
    "weightKg",
    "reps",
    "durationSec",
    "intervalSec",
    "rpe",
    "sessionNote",
    "exerciseNote",
    "setNote",
]


class BackupScope(str, Enum):
    ALL = "all"
    SESSIONS = "sessions"
    TEMPLATES = "templates"


def _cell(value: Optional[Any]) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ExportService:
    """Service for exporting sessions and templates."""

    @staticmethod
    def csv_rows(sessions: Sequence[Session]) -> List[List[str]]:
        """One row per set row, header first."""
        rows = [list(CSV_COLUMNS)]
        for s in sessions:
            for ex in s.exercises:
                for st in ex.sets:
                    rows.append([
                        s.date,
                        s.title,
                        ex.name,
                        ex.variant,
                        _cell(st.set_number),
                        _cell(st.multiplier),
                        _cell(st.weight_kg),
                        _cell(st.reps),
                        _cell(st.duration_sec),
                        _cell(st.interval_sec),
                        _cell(st.rpe),
                        s.notes,
                        ex.note,
                        st.note,
                    ])
        return rows

    @staticmethod
    def render_sessions_csv(sessions: Sequence[Session]) -> str:
        """
        Render sessions as CSV.

        Every field is quoted and embedded quotes are doubled.

        Args:
            sessions: Sessions to export (usually the filtered history)

        Returns:
            CSV text
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerows(ExportService.csv_rows(sessions))
        return buffer.getvalue()

    @staticmethod
    def backup_meta(sessions: Sequence[Session], templates: Sequence[Template]) -> Dict[str, Any]:
        dates = sorted(s.date for s in sessions if s.date)
        total_volume = int(round_half_up(sum(session_volume(s) for s in sessions)))
        return {
            "appName": APP_NAME,
            "appVersion": __version__,
            "counts": {"sessions": len(sessions), "templates": len(templates)},
            "stats": {
                "totalVolume": total_volume,
                "dateRange": {
                    "min": dates[0] if dates else None,
                    "max": dates[-1] if dates else None,
                },
            },
        }

    @staticmethod
    def build_backup(
        sessions: Sequence[Session],
        templates: Sequence[Template],
        scope: BackupScope = BackupScope.ALL,
    ) -> Dict[str, Any]:
        """
        Build a backup file payload.

        ``all`` carries both collections plus a ``meta`` block, ``sessions``
        leaves templates out, ``templates`` carries an empty session list.
        """
        scope = BackupScope(scope)
        if scope is BackupScope.SESSIONS:
            return build_envelope(sessions).to_wire()
        if scope is BackupScope.TEMPLATES:
            return build_envelope([], templates).to_wire()

        envelope = build_envelope(sessions, templates).model_copy(
            update={"meta": ExportService.backup_meta(sessions, templates)}
        )
        return envelope.to_wire()

    @staticmethod
    def export_filename(kind: str, day: Optional[date] = None) -> str:
        """e.g. trelog-backup-2024-01-31.json, trelog-filtered-2024-01-31.csv"""
        day = day or date.today()
        extension = "csv" if kind == "filtered" else "json"
        return f"trelog-{kind}-{day.isoformat()}.{extension}"
