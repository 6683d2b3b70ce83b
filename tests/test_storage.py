"""Unit tests for the JSON store and the training log repository."""
import json
import threading
import time
from unittest.mock import patch

import pytest

from trelog_api.backup import ImportPreview, MergePolicy, Reconciliation
from trelog_api.backup.reconciler import reconcile
from trelog_api.services.storage import (
    AUTO_BACKUP_KEY,
    HISTORY_KEY,
    JsonFileStore,
    StoreError,
)

from conftest import bench_session, make_session, make_template


class TestJsonFileStore:
    """Test cases for JsonFileStore."""

    def test_missing_file_returns_default(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested" / "store.json")
        assert store.get("anything", []) == []

    def test_set_then_get(self, store):
        store.set("k", {"a": 1})
        assert store.get("k") == {"a": 1}
        assert json.loads(store.path.read_text(encoding="utf-8")) == {"k": {"a": 1}}

    def test_update_writes_keys_together(self, store):
        """Several keys land in a single file replace."""
        store.set("keep", 1)
        with patch.object(store, "_write", wraps=store._write) as write:
            store.update({"a": 1, "b": 2})
        write.assert_called_once()
        assert (store.get("a"), store.get("b"), store.get("keep")) == (1, 2, 1)

    def test_delete(self, store):
        store.set("k", 1)
        store.delete("k")
        assert store.get("k") is None

    def test_corrupt_file(self, store):
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError):
            store.get("k")

    def test_non_object_file(self, store):
        store.path.write_text("[]", encoding="utf-8")
        with pytest.raises(StoreError):
            store.get("k")


class TestTrainingLogRepository:
    """Test cases for TrainingLogRepository."""

    def test_history_round_trip(self, repository):
        repository.save_history([bench_session("a"), make_session("b")])
        assert [s.id for s in repository.load_history()] == ["a", "b"]
        assert repository.load_history()[0].exercises[0].sets[0].weight_kg == 100

    def test_add_session_puts_newest_first(self, repository):
        repository.add_session(make_session("a"))
        repository.add_session(make_session("b"))
        repository.add_session(make_session("a", title="edited"))
        history = repository.load_history()
        assert [s.id for s in history] == ["a", "b"]
        assert history[0].title == "edited"

    def test_delete_session(self, repository):
        repository.save_history([make_session("a"), make_session("b")])
        assert repository.delete_session("a") is True
        assert repository.delete_session("missing") is False
        assert [s.id for s in repository.load_history()] == ["b"]

    def test_templates(self, repository):
        repository.add_template(make_template("t1"))
        repository.add_template(make_template("t2"))
        assert [t.id for t in repository.load_templates()] == ["t2", "t1"]
        assert repository.get_template("t1").name == "Push"
        assert repository.delete_template("t1") is True
        assert repository.get_template("t1") is None

    def test_draft_defaults_to_new_session(self, repository):
        draft = repository.load_draft()
        assert draft.id
        assert draft.exercises == []

    def test_draft_round_trip(self, repository):
        repository.save_draft(bench_session("d"))
        assert repository.load_draft().id == "d"

    def test_corrupted_history_loads_best_effort(self, repository, store):
        store.set(HISTORY_KEY, [{"id": "a", "date": "2024-01-01", "exercises": "oops"}, 7])
        history = repository.load_history()
        assert history[0].exercises == []
        assert history[1].id == ""

    def test_writes_schedule_auto_backup(self, repository):
        repository.save_history([make_session("a")])
        assert repository.auto_backup.pending

    def test_commit(self, repository):
        repository.commit(Reconciliation(sessions=[make_session("x")], templates=[make_template()]))
        assert [s.id for s in repository.load_history()] == ["x"]
        assert [t.id for t in repository.load_templates()] == ["t1"]
        assert repository.auto_backup.pending

    def test_auto_backup_flush_and_restore(self, repository):
        repository.save_history([make_session("a")])
        repository.save_templates([make_template("t1")])
        repository.auto_backup.flush()

        snapshot = repository.load_auto_backup()
        assert snapshot["__type"] == "trelog-auto-backup"

        repository.save_history([])
        repository.save_templates([])
        assert repository.restore_auto_backup() is True
        assert [s.id for s in repository.load_history()] == ["a"]
        assert [t.id for t in repository.load_templates()] == ["t1"]
        assert not repository.auto_backup.pending

    def test_restore_without_snapshot(self, repository):
        assert repository.restore_auto_backup() is False

    def test_restore_keeps_collections_missing_from_snapshot(self, repository, store):
        repository.save_templates([make_template("keep")])
        store.set(AUTO_BACKUP_KEY, {"sessions": [make_session("s").to_wire()]})

        assert repository.restore_auto_backup() is True
        assert [t.id for t in repository.load_templates()] == ["keep"]
        assert [s.id for s in repository.load_history()] == ["s"]

    def test_commit_is_one_store_write(self, repository, store):
        """History and templates of an import are saved together."""
        with patch.object(store, "_write", wraps=store._write) as write:
            repository.commit(Reconciliation(sessions=[make_session("x")], templates=[make_template()]))
        write.assert_called_once()

    def test_apply_import_merges(self, repository):
        repository.save_history([make_session("a")])
        preview = ImportPreview(sessions=(make_session("b"),))

        result = repository.apply_import(preview, MergePolicy.MERGE)

        assert [s.id for s in result.sessions] == ["a", "b"]
        assert [s.id for s in repository.load_history()] == ["a", "b"]

    def test_concurrent_imports_are_not_lost(self, repository):
        """Two merges running on separate threads both end up in the history."""

        def slow_reconcile(*args, **kwargs):
            # Widen the gap between loading and committing
            time.sleep(0.05)
            return reconcile(*args, **kwargs)

        previews = [
            ImportPreview(sessions=(make_session("A"),)),
            ImportPreview(sessions=(make_session("B"),)),
        ]
        with patch("trelog_api.services.storage.reconcile", side_effect=slow_reconcile):
            threads = [
                threading.Thread(target=repository.apply_import, args=(p, MergePolicy.MERGE))
                for p in previews
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert sorted(s.id for s in repository.load_history()) == ["A", "B"]
