"""
Test fixtures for trelog-api.

Provides sample backup payloads and a FastAPI TestClient whose repository is
backed by a throwaway JSON store, so tests never touch the real data file.
"""

import sys
from pathlib import Path
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import trelog_api...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from trelog_api.api.deps import PreviewCache, get_preview_cache, get_repository
from trelog_api.main import app
from trelog_api.models import ExerciseBlock, Session, SetEntry, Template
from trelog_api.services.storage import JsonFileStore, TrainingLogRepository


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def make_set(id="set-1", set_number=1, weight_kg=None, reps=None, **kwargs) -> SetEntry:
    return SetEntry(id=id, set_number=set_number, weight_kg=weight_kg, reps=reps, **kwargs)


def make_session(id="s1", date="2024-01-01", title="", exercises=None, **kwargs) -> Session:
    return Session(id=id, date=date, title=title, exercises=exercises or [], **kwargs)


def bench_session(id="s1", date="2024-01-01", weight=100, reps=5, rpe=None) -> Session:
    """One exercise, one set."""
    return make_session(
        id=id,
        date=date,
        title="Push day",
        exercises=[
            ExerciseBlock(
                id=f"{id}-ex1",
                name="Bench Press",
                sets=[make_set(id=f"{id}-set1", weight_kg=weight, reps=reps, rpe=rpe)],
            )
        ],
    )


def make_template(id="t1", name="Push", exercises=None) -> Template:
    return Template(id=id, name=name, exercises=exercises or [])


# ---------------------------------------------------------------------------
# Sample Data Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_backup_dict() -> Dict[str, Any]:
    """Current-version backup file with two sessions and one template."""
    return {
        "__type": "trelog-backup",
        "version": 1,
        "exportedAt": "2024-02-01T10:00:00.000Z",
        "sessions": [
            {
                "id": "s1",
                "date": "2024-01-01",
                "title": "Push day",
                "startTime": "18:00",
                "endTime": "19:00",
                "bodyweightKg": 80,
                "notes": "",
                "exercises": [
                    {
                        "id": "e1",
                        "name": "Bench Press",
                        "variant": "Paused",
                        "note": "",
                        "sets": [
                            {
                                "id": "x1",
                                "setNumber": 1,
                                "weightKg": 100,
                                "reps": 5,
                                "setsCount": 1,
                                "rpe": 8,
                                "intervalSec": "",
                                "durationSec": "",
                                "note": "",
                            }
                        ],
                    }
                ],
            },
            {
                "id": "s2",
                "date": "2024-01-10",
                "title": "Pull day",
                "startTime": "",
                "endTime": "",
                "bodyweightKg": "",
                "notes": "",
                "exercises": [],
            },
        ],
        "templates": [
            {"id": "t1", "name": "Push", "notes": "", "exercises": []},
        ],
    }


@pytest.fixture
def legacy_backup_dict() -> Dict[str, Any]:
    """Unversioned backup with sparse records."""
    return {
        "sessions": [
            {
                "id": "old-1",
                "date": "2023-05-02",
                "exercises": [{"name": "Squat", "sets": [{"weightKg": 120, "reps": 3}]}],
            }
        ],
        "templates": [{"id": "old-t", "name": "Legs", "description": "Heavy"}],
    }


# ---------------------------------------------------------------------------
# Storage / Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "store.json")


@pytest.fixture
def repository(store) -> TrainingLogRepository:
    repo = TrainingLogRepository(store, auto_backup_delay=60)
    yield repo
    repo.auto_backup.shutdown()


@pytest.fixture
def client(repository) -> TestClient:
    """Per-test FastAPI TestClient backed by a temp-file repository."""
    cache = PreviewCache()
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_preview_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
