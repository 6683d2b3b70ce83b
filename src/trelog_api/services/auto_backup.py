"""Debounced auto-backup of the session history and templates.

Each change replaces the scheduled one-shot job, so the snapshot is written
once the log has been quiet for ``delay_seconds``.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from trelog_api.models import Session, Template

logger = logging.getLogger(__name__)

AUTO_BACKUP_JOB_ID = "trelog_auto_backup"

Snapshot = Tuple[List[Session], List[Template]]
BackupWriter = Callable[[List[Session], List[Template]], None]


class AutoBackupScheduler:
    """Cancellable, debounced writer of backup snapshots."""

    def __init__(
        self,
        write: BackupWriter,
        delay_seconds: float = 2.5,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self._write = write
        self.delay_seconds = delay_seconds
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or BackgroundScheduler(daemon=True)
        if self._owns_scheduler:
            self._scheduler.start()
        self._lock = threading.Lock()
        self._pending: Optional[Snapshot] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def notify(self, sessions: Sequence[Session], templates: Sequence[Template]) -> None:
        """Record a change and push the write back by the quiet period."""
        with self._lock:
            self._pending = (list(sessions), list(templates))
            self._scheduler.add_job(
                self._fire,
                trigger=DateTrigger(
                    run_date=datetime.now() + timedelta(seconds=self.delay_seconds)
                ),
                id=AUTO_BACKUP_JOB_ID,
                name="Trelog auto-backup",
                replace_existing=True,
            )

    def cancel(self) -> None:
        """Drop the pending snapshot without writing it."""
        with self._lock:
            self._remove_job()
            self._pending = None

    def flush(self) -> bool:
        """Write the pending snapshot now. Returns False when nothing was pending."""
        with self._lock:
            self._remove_job()
            snapshot, self._pending = self._pending, None
        if snapshot is None:
            return False
        self._run(snapshot)
        return True

    def shutdown(self) -> None:
        """Drop the pending job and stop the scheduler thread if it is ours."""
        self.cancel()
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def _fire(self) -> None:
        # A flush or cancel may have taken the snapshot before the job ran
        with self._lock:
            snapshot, self._pending = self._pending, None
        if snapshot is not None:
            self._run(snapshot)

    def _remove_job(self) -> None:
        try:
            self._scheduler.remove_job(AUTO_BACKUP_JOB_ID)
        except JobLookupError:
            pass

    def _run(self, snapshot: Snapshot) -> None:
        sessions, templates = snapshot
        try:
            self._write(sessions, templates)
            logger.info(f"Auto-backup written ({len(sessions)} sessions, {len(templates)} templates)")
        except Exception as e:
            logger.exception(f"Auto-backup write failed: {e}")
