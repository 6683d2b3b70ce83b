"""Shared dependencies for the API routers."""
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from trelog_api.backup.models import ImportPreview
from trelog_api.config import settings
from trelog_api.services.storage import JsonFileStore, TrainingLogRepository

logger = logging.getLogger(__name__)


class PreviewCache:
    """
    Analyzed imports waiting for the user to pick a policy, keyed by import id.

    Holds at most ``max_entries`` previews; the oldest is evicted first, and a
    preview older than ``ttl_seconds`` is treated as gone.
    """

    def __init__(
        self,
        max_entries: int = 20,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Tuple[float, ImportPreview]]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            self._expire()
            return len(self._entries)

    def put(self, import_id: str, preview: ImportPreview) -> None:
        with self._lock:
            self._expire()
            self._entries[import_id] = (self._clock(), preview)
            self._entries.move_to_end(import_id)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.info(f"Evicted import preview {evicted} (cache full)")

    def get(self, import_id: str) -> Optional[ImportPreview]:
        with self._lock:
            self._expire()
            entry = self._entries.get(import_id)
            return entry[1] if entry else None

    def pop(self, import_id: str) -> Optional[ImportPreview]:
        with self._lock:
            self._expire()
            entry = self._entries.pop(import_id, None)
            return entry[1] if entry else None

    def _expire(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        # Entries are in insertion order, so expired ones are at the front
        while self._entries:
            import_id, (created, _) = next(iter(self._entries.items()))
            if created > cutoff:
                break
            del self._entries[import_id]
            logger.info(f"Expired import preview {import_id}")


_repository: Optional[TrainingLogRepository] = None
_repository_lock = threading.Lock()

_preview_cache = PreviewCache(
    max_entries=settings.PREVIEW_CACHE_SIZE,
    ttl_seconds=settings.PREVIEW_TTL_SEC,
)


def get_repository() -> TrainingLogRepository:
    """Repository backed by the configured data file (created on first use)."""
    global _repository
    with _repository_lock:
        if _repository is None:
            store = JsonFileStore(settings.DATA_FILE)
            _repository = TrainingLogRepository(
                store, auto_backup_delay=settings.AUTO_BACKUP_DELAY_SEC
            )
            logger.info(f"Using data file {store.path}")
        return _repository


def get_preview_cache() -> PreviewCache:
    return _preview_cache


def close_repository() -> None:
    """Write any pending auto-backup and stop the scheduler before the process exits."""
    global _repository
    with _repository_lock:
        if _repository is not None:
            _repository.close()
            _repository = None
            logger.info("Closed training log repository")
