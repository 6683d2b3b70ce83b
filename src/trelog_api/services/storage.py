"""Persistence for the training log.

``JsonFileStore`` is a tiny key-value store kept as one JSON document on disk.
``TrainingLogRepository`` gives typed access to the keys the app uses and
notifies the auto-backup scheduler after every history or template write.
"""
import json
import logging
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Dict, List, Mapping, Optional, Union

from apscheduler.schedulers.background import BackgroundScheduler

from trelog_api.backup.codec import build_auto_backup, restore_auto_backup
from trelog_api.backup.migrations import load_session, load_template
from trelog_api.backup.models import ImportPreview, MergePolicy
from trelog_api.backup.reconciler import Reconciliation, reconcile
from trelog_api.models import Session, Template
from trelog_api.services.auto_backup import AutoBackupScheduler
from trelog_api.services.draft_service import new_session

logger = logging.getLogger(__name__)

CURRENT_SESSION_KEY = "trelog/session/current"
HISTORY_KEY = "trelog/session/history"
TEMPLATES_KEY = "trelog/templates/v1"
AUTO_BACKUP_KEY = "trelog/autoBackup/v1"


class StoreError(RuntimeError):
    """Raised when the store file exists but cannot be read as a JSON object."""


class JsonFileStore:
    """Key-value store persisted as a single JSON object."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8").strip() or "{}"
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Could not parse {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"{self.path} must contain a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        with NamedTemporaryFile("w", dir=self.path.parent, delete=False, encoding="utf-8") as tmp:
            tmp.write(payload)
            temp_path = Path(tmp.name)
        temp_path.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, Any]) -> None:
        """Write several keys in one atomic file replace."""
        with self._lock:
            data = self._read()
            data.update(values)
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


def _load_list(raw: Any, loader) -> List[Any]:
    if not isinstance(raw, list):
        return []
    return [loader(item) for item in raw]


class TrainingLogRepository:
    """Typed access to history, templates, the draft and the auto-backup."""

    def __init__(
        self,
        store: JsonFileStore,
        auto_backup_delay: Optional[float] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.store = store
        # Serializes every read-modify-write of history and templates
        self._lock = threading.RLock()
        delay = 2.5 if auto_backup_delay is None else auto_backup_delay
        self.auto_backup = AutoBackupScheduler(
            self.write_auto_backup, delay_seconds=delay, scheduler=scheduler
        )

    def close(self) -> None:
        """Flush a pending auto-backup and stop its scheduler."""
        self.auto_backup.flush()
        self.auto_backup.shutdown()

    # History ---------------------------------------------------------------

    def load_history(self) -> List[Session]:
        return _load_list(self.store.get(HISTORY_KEY, []), load_session)

    def save_history(self, sessions: List[Session]) -> None:
        with self._lock:
            self.store.set(HISTORY_KEY, [s.to_wire() for s in sessions])
            self._changed(sessions=sessions)

    def add_session(self, session: Session) -> List[Session]:
        """Put a session at the top of the history (newest first)."""
        with self._lock:
            history = [session, *(s for s in self.load_history() if s.id != session.id)]
            self.save_history(history)
            return history

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            history = self.load_history()
            kept = [s for s in history if s.id != session_id]
            if len(kept) == len(history):
                return False
            self.save_history(kept)
            return True

    # Templates -------------------------------------------------------------

    def load_templates(self) -> List[Template]:
        return _load_list(self.store.get(TEMPLATES_KEY, []), load_template)

    def save_templates(self, templates: List[Template]) -> None:
        with self._lock:
            self.store.set(TEMPLATES_KEY, [t.to_wire() for t in templates])
            self._changed(templates=templates)

    def add_template(self, template: Template) -> List[Template]:
        with self._lock:
            templates = [template, *self.load_templates()]
            self.save_templates(templates)
            return templates

    def get_template(self, template_id: str) -> Optional[Template]:
        return next((t for t in self.load_templates() if t.id == template_id), None)

    def delete_template(self, template_id: str) -> bool:
        with self._lock:
            templates = self.load_templates()
            kept = [t for t in templates if t.id != template_id]
            if len(kept) == len(templates):
                return False
            self.save_templates(kept)
            return True

    # Draft -----------------------------------------------------------------

    def load_draft(self) -> Session:
        raw = self.store.get(CURRENT_SESSION_KEY)
        if not isinstance(raw, dict):
            return new_session()
        draft = load_session(raw)
        return draft if draft.id else new_session()

    def save_draft(self, session: Session) -> None:
        self.store.set(CURRENT_SESSION_KEY, session.to_wire())

    # Import ----------------------------------------------------------------

    def apply_import(self, preview: ImportPreview, policy: MergePolicy) -> Reconciliation:
        """
        Reconcile an analyzed import with the stored log and persist the result.

        Load, reconcile and commit run under the repository lock, so concurrent
        imports and saves are applied one after the other.
        """
        with self._lock:
            result = reconcile(self.load_history(), self.load_templates(), preview, policy)
            self.commit(result)
            return result

    def commit(self, reconciliation: Reconciliation) -> None:
        """Persist the outcome of a reconciliation in a single store write."""
        with self._lock:
            self.store.update({
                HISTORY_KEY: [s.to_wire() for s in reconciliation.sessions],
                TEMPLATES_KEY: [t.to_wire() for t in reconciliation.templates],
            })
            self._changed(sessions=reconciliation.sessions, templates=reconciliation.templates)
        logger.info(
            f"Committed import: {len(reconciliation.sessions)} sessions, "
            f"{len(reconciliation.templates)} templates"
        )

    # Auto-backup -----------------------------------------------------------

    def write_auto_backup(self, sessions: List[Session], templates: List[Template]) -> None:
        self.store.set(AUTO_BACKUP_KEY, build_auto_backup(sessions, templates))

    def load_auto_backup(self) -> Optional[Dict[str, Any]]:
        raw = self.store.get(AUTO_BACKUP_KEY)
        return raw if isinstance(raw, dict) else None

    def restore_auto_backup(self) -> bool:
        """
        Replace history and/or templates with the auto-backup snapshot.

        Returns False when there is no snapshot. The restore itself does not
        schedule a new auto-backup.
        """
        snapshot = self.load_auto_backup()
        if snapshot is None:
            return False

        sessions, templates = restore_auto_backup(snapshot)
        with self._lock:
            self.auto_backup.cancel()
            restored: Dict[str, Any] = {}
            if sessions is not None:
                restored[HISTORY_KEY] = [s.to_wire() for s in sessions]
            if templates is not None:
                restored[TEMPLATES_KEY] = [t.to_wire() for t in templates]
            if restored:
                self.store.update(restored)
        logger.info(f"Restored auto-backup from {snapshot.get('exportedAt', 'unknown time')}")
        return True

    def _changed(
        self,
        sessions: Optional[List[Session]] = None,
        templates: Optional[List[Template]] = None,
    ) -> None:
        self.auto_backup.notify(
            sessions if sessions is not None else self.load_history(),
            templates if templates is not None else self.load_templates(),
        )
