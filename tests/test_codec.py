"""Unit tests for the backup codec."""
import pytest

from trelog_api.backup.codec import (
    BackupDecodeError,
    build_auto_backup,
    decode_backup,
    iso_timestamp,
    restore_auto_backup,
)

from conftest import bench_session, make_template


class TestDecodeBackup:
    """Test cases for decode_backup()."""

    def test_decodes_bytes_with_bom(self):
        assert decode_backup('\ufeff{"version": 1}'.encode("utf-8")) == {"version": 1}

    @pytest.mark.parametrize("content", ["{broken", "", b"\xff\xfe\x00"])
    def test_invalid_content(self, content):
        with pytest.raises(BackupDecodeError):
            decode_backup(content)

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_standard_constants_rejected(self, constant):
        """NaN and Infinity are not JSON numbers."""
        with pytest.raises(BackupDecodeError):
            decode_backup(f'{{"sessions": [{{"bodyweightKg": {constant}}}]}}')


class TestAutoBackupSnapshot:
    """Test cases for auto-backup snapshots."""

    def test_snapshot_round_trip(self):
        snapshot = build_auto_backup([bench_session("a")], [make_template()])
        sessions, templates = restore_auto_backup(snapshot)

        assert snapshot["__type"] == "trelog-auto-backup"
        assert [s.id for s in sessions] == ["a"]
        assert [t.id for t in templates] == ["t1"]

    def test_missing_collections_are_none(self):
        assert restore_auto_backup({"sessions": "nope"}) == (None, None)
        assert restore_auto_backup(None) == (None, None)

    def test_iso_timestamp_format(self):
        stamp = iso_timestamp()
        assert stamp.endswith("Z")
        assert len(stamp) == len("2024-01-01T08:30:00.000Z")
