"""Unit tests for the in-memory import preview cache."""
from trelog_api.api.deps import PreviewCache
from trelog_api.backup import ImportPreview

from conftest import make_session


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _preview(session_id="s"):
    return ImportPreview(sessions=(make_session(session_id),))


class TestPreviewCache:
    """Test cases for PreviewCache."""

    def test_put_get_pop(self):
        cache = PreviewCache()
        cache.put("a", _preview())

        assert cache.get("a").sessions[0].id == "s"
        assert cache.pop("a") is not None
        assert cache.pop("a") is None
        assert cache.get("missing") is None

    def test_oldest_evicted_past_capacity(self):
        cache = PreviewCache(max_entries=3)
        for i in range(200):
            cache.put(f"import-{i}", _preview(str(i)))

        assert len(cache) == 3
        assert cache.get("import-0") is None
        assert cache.get("import-199") is not None

    def test_entries_expire(self):
        clock = FakeClock()
        cache = PreviewCache(ttl_seconds=60, clock=clock)
        cache.put("old", _preview())
        clock.now += 30
        cache.put("new", _preview())

        clock.now += 31
        assert cache.get("old") is None
        assert cache.get("new") is not None

        clock.now += 60
        assert len(cache) == 0
