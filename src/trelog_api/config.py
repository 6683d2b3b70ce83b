"""Configuration settings for the training log API."""
import os
from typing import List, Literal, Optional


EnvironmentType = Literal["development", "staging", "production"]


def _float_or_none(raw: Optional[str]) -> Optional[float]:
    try:
        return float(raw) if raw not in (None, "") else None
    except ValueError:
        return None


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"
    LOG_LEVEL: str = "INFO"

    # Storage
    DATA_FILE: str = "~/.trelog/store.json"

    # Seconds of quiet after the last change before the auto-backup is written
    AUTO_BACKUP_DELAY_SEC: float = 2.5

    # Import previews kept in memory until executed or discarded
    PREVIEW_CACHE_SIZE: int = 20
    PREVIEW_TTL_SEC: float = 3600

    # Bodyweight prefilled into new drafts
    DEFAULT_BODYWEIGHT_KG: Optional[float] = None

    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Storage
        self.DATA_FILE = os.getenv("TRELOG_DATA_FILE", "~/.trelog/store.json")
        delay = _float_or_none(os.getenv("AUTO_BACKUP_DELAY_SEC"))
        self.AUTO_BACKUP_DELAY_SEC = delay if delay is not None and delay >= 0 else 2.5

        # Import previews
        size = _float_or_none(os.getenv("PREVIEW_CACHE_SIZE"))
        self.PREVIEW_CACHE_SIZE = int(size) if size is not None and size >= 1 else 20
        ttl = _float_or_none(os.getenv("PREVIEW_TTL_SEC"))
        self.PREVIEW_TTL_SEC = ttl if ttl is not None and ttl > 0 else 3600

        # Drafts
        self.DEFAULT_BODYWEIGHT_KG = _float_or_none(os.getenv("DEFAULT_BODYWEIGHT_KG"))

        origins = os.getenv("CORS_ORIGINS")
        if origins:
            self.CORS_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]


settings = Settings()
